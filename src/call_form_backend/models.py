from __future__ import annotations

from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr

NonEmptyStr = Annotated[StrictStr, Field(min_length=1)]
ShortStr = Annotated[StrictStr, Field(max_length=100)]

FREE_TEXT_FIELDS = ("gewerbe_nutzung", "gedanken_community", "einbringen", "sonstiges")
SHORT_FIELDS = ("name", "email", "website", "telefon", "interessentin", "paket")


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class FormInfo(_Strict):
    id: Optional[NonEmptyStr] = None
    name: Optional[NonEmptyStr] = None


class FieldRecord(_Strict):
    id: Optional[NonEmptyStr] = None
    type: Optional[NonEmptyStr] = None
    title: Optional[NonEmptyStr] = None
    value: Optional[StrictStr] = None
    raw_value: Optional[StrictStr] = None
    required: Optional[StrictStr] = None


class ShortFieldRecord(FieldRecord):
    value: Optional[ShortStr] = None
    raw_value: Optional[ShortStr] = None


class FormFields(_Strict):
    gewerbe_nutzung: Optional[FieldRecord] = None
    gedanken_community: Optional[FieldRecord] = None
    einbringen: Optional[FieldRecord] = None
    sonstiges: Optional[FieldRecord] = None
    name: Optional[ShortFieldRecord] = None
    email: Optional[ShortFieldRecord] = None
    website: Optional[ShortFieldRecord] = None
    telefon: Optional[ShortFieldRecord] = None
    interessentin: Optional[ShortFieldRecord] = None
    paket: Optional[ShortFieldRecord] = None

    def value_of(self, key: str) -> str:
        """Display value of a field, or an empty string when the record or value is missing."""
        record: Optional[FieldRecord] = getattr(self, key, None)
        if record is None or record.value is None:
            return ""
        return record.value


class Submission(_Strict):
    """One form-fill event as delivered by the website's form plugin."""

    form: Optional[FormInfo] = None
    fields: FormFields = Field(default_factory=FormFields)
    meta: Optional[Dict[str, Any]] = None

    def value_of(self, key: str) -> str:
        return self.fields.value_of(key)


class TaskDraft(BaseModel):
    name: str
    notes: str
    label_ids: List[int]
