"""
PDF summary of a call application.

The renderer works on the raw submission mapping rather than the validated
model so archived submissions from older form versions, which may lack
fields added later, render with ``-`` placeholders instead of failing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, List, Mapping, Optional, Union
from xml.sax.saxutils import escape
from zoneinfo import ZoneInfo

from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle
from reportlab.platypus import Flowable, Paragraph, SimpleDocTemplate, Spacer

from .utils import escape_value

logger = logging.getLogger(__name__)

MARGIN = 72
LINE = 14

TITLE_STYLE = ParagraphStyle("title", fontName="Helvetica-Bold", fontSize=18, leading=22, alignment=TA_CENTER)
BODY_STYLE = ParagraphStyle("body", fontName="Helvetica", fontSize=12, leading=LINE)
FOOTER_STYLE = ParagraphStyle("footer", fontName="Helvetica", fontSize=8, leading=10)

INLINE_FIELDS = (
    ("Name", "name"),
    ("E-Mail", "email"),
    ("Website", "website"),
    ("Telefon", "telefon"),
    ("Paket", "paket"),
    ("Schon Interessent*in", "interessentin"),
)

BLOCK_FIELDS = (
    ("Wie möchtest Du die Gewerbefläche nutzen?", "gewerbe_nutzung"),
    ("Was gefällt Dir an dem Gedanken, Teil der Genossenschaft die HausWirtschaft zu werden?", "gedanken_community"),
    ("Wie möchtest Du dich in die Gemeinschaft einbringen?", "einbringen"),
    ("Sonstige Fragen und Infos?", "sonstiges"),
)

Destination = Union[str, Path, BinaryIO]


def field_value(body: Mapping[str, Any], key: str) -> Optional[str]:
    """Display value of ``fields[key]``, or ``None`` when any level is missing."""
    fields = body.get("fields")
    if not isinstance(fields, Mapping):
        return None
    record = fields.get(key)
    if not isinstance(record, Mapping):
        return None
    value = record.get("value")
    return value if isinstance(value, str) else None


def display_text(value: Optional[str]) -> str:
    return escape(escape_value(value or "")) or "-"


def generated_at(timezone: str) -> str:
    return datetime.now(ZoneInfo(timezone)).strftime("%d.%m.%Y, %H:%M:%S")


def build_story(body: Mapping[str, Any], timezone: str, story: List[Flowable]) -> None:
    name = escape(escape_value(field_value(body, "name") or ""))
    story.append(Paragraph(f"Call-Bewerbung<br/>{name}", TITLE_STYLE))
    story.append(Spacer(1, LINE))

    for label, key in INLINE_FIELDS:
        story.append(Paragraph(f"<b>{escape(label)}:</b>&nbsp;&nbsp;{display_text(field_value(body, key))}", BODY_STYLE))
    story.append(Spacer(1, LINE))

    for label, key in BLOCK_FIELDS:
        story.append(Paragraph(f"<b>{escape(label)}</b>", BODY_STYLE))
        story.append(Paragraph(display_text(field_value(body, key)), BODY_STYLE))
        story.append(Spacer(1, LINE))

    story.append(Spacer(1, LINE))
    story.append(Paragraph(f"Generiert um {generated_at(timezone)}", FOOTER_STYLE))


def render_document(body: Mapping[str, Any], destination: Destination, timezone: str = "Europe/Vienna") -> None:
    """
    Render the submission summary as an A4 PDF.

    Args:
        body: Raw or validated submission mapping (``{"fields": {...}}``)
        destination: File path or writable binary stream
        timezone: IANA zone used for the "generated at" line

    Note:
        Errors while composing the content are logged; the document is
        still built from whatever was composed so the output is always a
        complete PDF.
    """
    if isinstance(destination, Path):
        destination = str(destination)
    doc = SimpleDocTemplate(
        destination,
        pagesize=A4,
        title="Call-Bewerbung",
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
    )
    story: List[Flowable] = []
    try:
        build_story(body, timezone, story)
    except Exception:
        logger.exception("Failed to compose document content")
    finally:
        doc.build(story or [Spacer(1, 0)])
