"""
Derive the tracker task (title, notes, labels) from a validated submission.
"""

from __future__ import annotations

import re
from typing import List, Optional

from .configuration import LabelSettings
from .models import Submission, TaskDraft
from .utils import escape_task_text

PACKAGE_PATTERN = re.compile(r"Paket ([1-4])", re.IGNORECASE)
INTERESTED_PATTERN = re.compile(r"ja|yes", re.IGNORECASE)

INTERESTED_NOTE = "Ist bereits Interessent*In"

# field key -> (note label, min length, max length)
NOTE_FIELDS = (
    ("email", "E-Mail", 6, 100),
    ("telefon", "Telefon", 8, 20),
    ("website", "Website", 6, 100),
)


def package_tier(package: str) -> Optional[int]:
    """Tier 1-4 from the first ``Paket <n>`` in the package choice, if any."""
    match = PACKAGE_PATTERN.search(package)
    return int(match.group(1)) if match else None


def is_already_interested(value: str) -> bool:
    return bool(INTERESTED_PATTERN.search(value))


def note_line(label: str, value: str, min_length: int, max_length: int) -> str:
    if min_length <= len(value) <= max_length:
        return f"{label}: {value}"
    return f"{label}: -"


def build_notes(submission: Submission) -> List[str]:
    notes = [
        note_line(label, escape_task_text(submission.value_of(key)), min_length, max_length)
        for key, label, min_length, max_length in NOTE_FIELDS
    ]
    if is_already_interested(submission.value_of("interessentin")):
        notes.append(INTERESTED_NOTE)
    return notes


def build_label_ids(submission: Submission, labels: LabelSettings) -> List[int]:
    label_ids = [labels.funnel_website]
    if is_already_interested(submission.value_of("interessentin")):
        label_ids.append(labels.interested)
    label_ids.append(labels.for_package(package_tier(submission.value_of("paket"))))
    return label_ids


def build_task_draft(submission: Submission, labels: LabelSettings) -> TaskDraft:
    """
    Map a submission onto the task that gets created in the tracker.

    Args:
        submission: Validated submission
        labels: Configured label ids

    Returns:
        TaskDraft with a sanitized name, newline-joined notes and label ids
    """
    return TaskDraft(
        name=escape_task_text(submission.value_of("name")),
        notes="\n".join(build_notes(submission)),
        label_ids=build_label_ids(submission, labels),
    )
