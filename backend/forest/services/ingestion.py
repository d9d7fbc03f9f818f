"""CSV import and export of text entries."""

# purpose: reconcile spreadsheet rows into text entries/translations in one transaction and project them back out
# status: active
# depends_on: forest.services.text_entries, forest.workflow, forest.models
# inputs: decoded CSV text or row mappings, acting user, update_existing flag
# outputs: ImportSummary, export row dicts, CSV text, FileHistory rows

from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Literal
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from .. import models
from ..errors import ConflictError, NotFoundError, ValidationError
from ..workflow import can_transition, normalize_status
from . import text_entries

logger = logging.getLogger(__name__)

REQUIRED_HEADERS = ("label", "original_text", "language_code")
EXPORT_HEADERS = [
    "id",
    "label",
    "file_category",
    "original_text",
    "source_language_code",
    "language_code",
    "translated_text",
    "status",
    "max_chars",
    "max_lines",
    "created_at",
    "updated_at",
]
ROW_ERRORS = (ValidationError, ConflictError, NotFoundError)


@dataclass
class CsvRow:
    """One data record; ``values`` is ``None`` when its column count is wrong."""

    line: int
    values: dict[str, str] | None


@dataclass
class ImportSummary:
    total_rows: int
    created: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)
    file_history_id: UUID | None = None

    @property
    def success(self) -> bool:
        return not self.errors or bool(self.created or self.updated)

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "created": self.created,
            "updated": self.updated,
            "errors": list(self.errors),
            "total_rows": self.total_rows,
            "file_history_id": self.file_history_id,
        }


def parse_csv(text: str) -> list[CsvRow]:
    """Split CSV text into numbered rows keyed by header.

    The header is line 1, so the first data record is line 2. Blank records
    are skipped but still counted, keeping numbers aligned with the sheet.
    """

    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    records = list(reader)
    while records and not any(cell.strip() for cell in records[-1]):
        records.pop()
    if not records:
        raise ValidationError("CSV file is empty")
    headers = [header.strip() for header in records[0]]
    missing = [header for header in REQUIRED_HEADERS if header not in headers]
    if missing:
        raise ValidationError(f"Missing required headers: {', '.join(missing)}")

    rows: list[CsvRow] = []
    for index, values in enumerate(records[1:], start=2):
        if not any(cell.strip() for cell in values):
            continue
        if len(values) != len(headers):
            rows.append(CsvRow(line=index, values=None))
            continue
        rows.append(CsvRow(line=index, values=dict(zip(headers, values))))
    if not rows:
        raise ValidationError("CSV file must have at least a header and one data row")
    return rows


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_int(value: str | None, name: str) -> int | None:
    value = _clean(value)
    if value is None:
        return None
    try:
        number = int(value)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer") from exc
    if number < 0:
        raise ValidationError(f"{name} must not be negative")
    return number


def _resolve_existing(db: Session, values: dict[str, str], label: str) -> models.TextEntry | None:
    raw_id = _clean(values.get("id"))
    if raw_id:
        try:
            entry_id = UUID(raw_id)
        except ValueError as exc:
            raise ValidationError(f"Invalid id: {raw_id}") from exc
        entry = db.get(models.TextEntry, entry_id)
        if entry is not None:
            return entry
    return text_entries.find_entry_by_label(db, label)


def _import_row(
    db: Session,
    values: dict[str, str],
    actor_id: UUID | None,
    actor_role: str | None,
    update_existing: bool,
) -> Literal["created", "updated"]:
    # every check happens before the first write so a rejected row leaves nothing behind
    label = _clean(values.get("label"))
    original_text = values.get("original_text")
    if not label or not _clean(original_text):
        raise ValidationError("Missing required fields")

    source_language = _clean(values.get("source_language_code")) or text_entries.DEFAULT_SOURCE_LANGUAGE
    language = _clean(values.get("language_code")) or source_language
    translated_text = values.get("translated_text") or None
    is_translation = language != source_language and translated_text is not None

    status = None
    raw_status = _clean(values.get("status"))
    if raw_status:
        status = normalize_status(raw_status, translation=is_translation)
        if status is None:
            raise ValidationError(f"Unknown status: {raw_status}")

    fields: dict[str, Any] = {
        "label": label,
        "file_category": _clean(values.get("file_category")),
        "original_text": original_text,
        "max_chars": _parse_int(values.get("max_chars"), "max_chars"),
        "max_lines": _parse_int(values.get("max_lines"), "max_lines"),
    }
    if status and not is_translation:
        fields["status"] = status
    translation_fields = {"translated_text": translated_text, "status": status}

    existing = _resolve_existing(db, values, label) if update_existing else None
    if existing is not None:
        if is_translation and status:
            current = text_entries.get_translation(db, existing.id, language)
            if current is not None and not can_transition(current.status, status, translation=True):
                raise ValidationError(f"Cannot move status from {current.status} to {status}")
        if is_translation and language == existing.language_code:
            raise ValidationError("Translation language must differ from the source language")
        text_entries.update_text_entry(db, existing.id, fields, actor_id)
        if is_translation:
            text_entries.upsert_translation(db, existing.id, language, translation_fields, actor_id, actor_role)
        return "updated"

    fields["language_code"] = source_language
    entry = text_entries.create_text_entry(db, fields, actor_id)
    if is_translation:
        text_entries.upsert_translation(db, entry.id, language, translation_fields, actor_id, actor_role)
    return "created"


def _write_file_history(
    db: Session,
    *,
    filename: str,
    file_type: str,
    record_count: int,
    status: str,
    user_id: UUID | None,
    error_message: str | None = None,
) -> models.FileHistory:
    record = models.FileHistory(
        filename=filename,
        file_type=file_type,
        file_format="csv",
        record_count=record_count,
        status=status,
        error_message=error_message,
        user_id=user_id,
    )
    db.add(record)
    db.flush()
    return record


def import_batch(
    db: Session,
    rows: Iterable[CsvRow],
    actor_id: UUID | None,
    *,
    actor_role: str | None = None,
    update_existing: bool = False,
    filename: str = "import.csv",
) -> ImportSummary:
    """Apply every row inside one transaction and commit it with a FileHistory row.

    Rows that fail validation are reported as ``Row N: ...`` and skipped.
    Anything else aborts the batch: it is rolled back, a ``failed``
    FileHistory row is committed on its own, and the error is re-raised.
    """

    rows = list(rows)
    summary = ImportSummary(total_rows=len(rows))
    try:
        for row in rows:
            try:
                if row.values is None:
                    raise ValidationError("Column count mismatch")
                outcome = _import_row(db, row.values, actor_id, actor_role, update_existing)
            except ROW_ERRORS as exc:
                summary.errors.append(f"Row {row.line}: {exc}")
                continue
            if outcome == "created":
                summary.created += 1
            else:
                summary.updated += 1
        processed = summary.created + summary.updated
        record = _write_file_history(
            db,
            filename=filename,
            file_type="import",
            record_count=processed,
            status="success" if summary.success else "failed",
            user_id=actor_id,
            error_message="; ".join(summary.errors) or None,
        )
        summary.file_history_id = record.id
        db.commit()
    except Exception as exc:
        logger.exception("import of %s aborted, rolling back", filename)
        db.rollback()
        _record_failed_import(db, filename, actor_id, exc)
        raise

    if summary.errors:
        logger.warning(
            "import of %s skipped %s of %s rows", filename, len(summary.errors), summary.total_rows
        )
    logger.info(
        "imported %s: %s created, %s updated", filename, summary.created, summary.updated
    )
    return summary


def _record_failed_import(db: Session, filename: str, actor_id: UUID | None, exc: Exception) -> None:
    try:
        _write_file_history(
            db,
            filename=filename,
            file_type="import",
            record_count=0,
            status="failed",
            user_id=actor_id,
            error_message=str(exc) or exc.__class__.__name__,
        )
        db.commit()
    except SQLAlchemyError:
        logger.exception("could not record failed import of %s", filename)
        db.rollback()


def _stamp(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


def export_rows(
    db: Session,
    *,
    status: str | None = None,
    category: str | None = None,
    search: str | None = None,
    include_translations: bool = True,
) -> list[dict[str, Any]]:
    """Project entries into flat rows, one per translation when translations are included."""

    query = db.query(models.TextEntry).options(selectinload(models.TextEntry.translations))
    if status:
        resolved = normalize_status(status)
        if resolved is None:
            raise ValidationError(f"Unknown status: {status}")
        query = query.filter(models.TextEntry.status == resolved)
    if category:
        query = query.filter(models.TextEntry.file_category == category)
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                models.TextEntry.label.ilike(pattern),
                models.TextEntry.original_text.ilike(pattern),
            )
        )

    rows: list[dict[str, Any]] = []
    for entry in query.order_by(models.TextEntry.created_at, models.TextEntry.label).all():
        base = {
            "id": str(entry.id),
            "label": entry.label,
            "file_category": entry.file_category or "",
            "original_text": entry.original_text or "",
            "source_language_code": entry.language_code,
            "language_code": entry.language_code,
            "translated_text": "",
            "status": entry.status,
            "max_chars": _blank_if_none(entry.max_chars),
            "max_lines": _blank_if_none(entry.max_lines),
            "created_at": _stamp(entry.created_at),
            "updated_at": _stamp(entry.updated_at),
        }
        if not include_translations:
            base.pop("translated_text")
            rows.append(base)
            continue
        if not entry.translations:
            rows.append(base)
            continue
        for translation in entry.translations:
            rows.append(
                {
                    **base,
                    "language_code": translation.language_code,
                    "translated_text": translation.translated_text or "",
                    "status": translation.status,
                }
            )
    return rows


def render_csv(rows: list[dict[str, Any]]) -> str:
    if not rows:
        raise ValidationError("No data to export")
    fieldnames = [header for header in EXPORT_HEADERS if header in rows[0]]
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return output.getvalue()


def export_batch(
    db: Session,
    actor_id: UUID | None,
    *,
    status: str | None = None,
    category: str | None = None,
    search: str | None = None,
    include_translations: bool = True,
) -> tuple[str, str, int]:
    """Render the export and stage its FileHistory row; the caller commits."""

    rows = export_rows(
        db,
        status=status,
        category=category,
        search=search,
        include_translations=include_translations,
    )
    content = render_csv(rows)
    filename = f"text_entries_{datetime.now(timezone.utc).date().isoformat()}.csv"
    _write_file_history(
        db,
        filename=filename,
        file_type="export",
        record_count=len(rows),
        status="success",
        user_id=actor_id,
    )
    logger.info("exported %s rows to %s", len(rows), filename)
    return filename, content, len(rows)


def list_file_history(
    db: Session,
    *,
    limit: int = 50,
    offset: int = 0,
    file_type: str | None = None,
) -> list[models.FileHistory]:
    query = db.query(models.FileHistory)
    if file_type:
        query = query.filter(models.FileHistory.file_type == file_type)
    return (
        query.order_by(models.FileHistory.created_at.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), 200))
        .all()
    )
