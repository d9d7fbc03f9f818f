"""Status vocabulary and transition rules for text entries and translations."""

from __future__ import annotations

import os
from enum import Enum

# purpose: keep status values closed and decide which status changes are allowed
# status: active
# inputs: current and requested status, strict flag
# outputs: normalized status strings, transition decisions


class TextStatus(str, Enum):
    PENDING = "pending"
    REVIEW_REQUESTED = "review_requested"
    SOURCE_CONSULTATION = "source_consultation"
    COMPLETED = "completed"
    OMITTED = "omitted"


class TranslationStatus(str, Enum):
    PENDING = "pending"
    REVIEW_REQUESTED = "review_requested"
    COMPLETED = "completed"
    OMITTED = "omitted"


INITIAL_STATUS = TextStatus.PENDING.value

STRICT_STATUS_WORKFLOW = os.getenv("STRICT_STATUS_WORKFLOW", "0") == "1"

# labels used by the spreadsheets the team exchanges with writers
STATUS_LABELS: dict[str, str] = {
    "未処理": TextStatus.PENDING.value,
    "確認依頼": TextStatus.REVIEW_REQUESTED.value,
    "原文相談": TextStatus.SOURCE_CONSULTATION.value,
    "完了": TextStatus.COMPLETED.value,
    "オミット": TextStatus.OMITTED.value,
}

_STRICT_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"review_requested", "source_consultation", "omitted"}),
    "review_requested": frozenset({"completed", "pending", "source_consultation", "omitted"}),
    "source_consultation": frozenset({"pending", "review_requested", "omitted"}),
    "completed": frozenset({"review_requested", "omitted"}),
    "omitted": frozenset({"pending"}),
}

TEXT_STATUSES = frozenset(status.value for status in TextStatus)
TRANSLATION_STATUSES = frozenset(status.value for status in TranslationStatus)


def normalize_status(value: str | None, *, translation: bool = False) -> str | None:
    """Map an English value or a spreadsheet label onto a status value.

    Returns ``None`` when the value is not part of the vocabulary for the
    given kind of text (``source_consultation`` is not a translation status).
    """

    if value is None:
        return None
    candidate = STATUS_LABELS.get(value.strip(), value.strip().lower())
    allowed = TRANSLATION_STATUSES if translation else TEXT_STATUSES
    return candidate if candidate in allowed else None


def allowed_transitions(current: str, *, translation: bool = False, strict: bool | None = None) -> frozenset[str]:
    allowed = TRANSLATION_STATUSES if translation else TEXT_STATUSES
    if strict is None:
        strict = STRICT_STATUS_WORKFLOW
    if not strict:
        return allowed
    return (_STRICT_TRANSITIONS.get(current, frozenset()) | {current}) & allowed


def can_transition(
    current: str | None,
    target: str,
    *,
    translation: bool = False,
    strict: bool | None = None,
) -> bool:
    allowed = TRANSLATION_STATUSES if translation else TEXT_STATUSES
    if target not in allowed:
        return False
    if current is None or current == target:
        return True
    return target in allowed_transitions(current, translation=translation, strict=strict)
