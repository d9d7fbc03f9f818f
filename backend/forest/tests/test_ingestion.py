import csv
import io

import pytest

from forest import history, models
from forest.errors import ValidationError
from forest.services import ingestion, text_entries
from .conftest import create_user, unique_label


def _csv(rows, headers=("label", "original_text", "language_code", "status")):
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    writer.writerows(rows)
    return output.getvalue()


def test_parse_csv_requires_headers():
    with pytest.raises(ValidationError) as exc:
        ingestion.parse_csv("label,original_text\nx,y\n")
    assert "language_code" in str(exc.value)


def test_parse_csv_requires_a_data_row():
    with pytest.raises(ValidationError):
        ingestion.parse_csv("label,original_text,language_code\n")


def test_parse_csv_numbers_rows_from_the_header_and_flags_bad_widths():
    rows = ingestion.parse_csv(
        "\ufefflabel,original_text,language_code\n"
        'a,"quoted, with comma",ja\n'
        "b,too,many,cells\n"
    )
    assert [r.line for r in rows] == [2, 3]
    assert rows[0].values["original_text"] == "quoted, with comma"
    assert rows[1].values is None


def test_partial_failure_keeps_good_rows(db_session):
    actor = create_user("admin")
    labels = [unique_label("imp") for _ in range(3)]
    text = _csv(
        [
            (labels[0], "一行目", "ja", ""),
            (labels[1], "", "ja", ""),
            (labels[2], "三行目", "ja", "完了"),
        ]
    )
    summary = ingestion.import_batch(
        db_session, ingestion.parse_csv(text), actor.id, filename="partial.csv"
    )

    assert summary.total_rows == 3
    assert summary.created == 2
    assert summary.updated == 0
    assert len(summary.errors) == 1
    assert summary.errors[0].startswith("Row 3:")
    assert summary.success is True

    third = text_entries.find_entry_by_label(db_session, labels[2])
    assert third.status == "completed"
    assert text_entries.find_entry_by_label(db_session, labels[1]) is None
    records, total = history.list_history(db_session, third.id)
    assert total == 1 and records[0].edit_type == "create"

    file_record = db_session.get(models.FileHistory, summary.file_history_id)
    assert file_record.file_type == "import"
    assert file_record.status == "success"
    assert file_record.record_count == 2
    assert "Row 3" in file_record.error_message


def test_row_errors_cover_bad_values(db_session):
    actor = create_user("admin")
    existing = unique_label("dup")
    text_entries.create_text_entry(db_session, {"label": existing, "original_text": "x"}, actor.id)
    db_session.commit()
    text = _csv(
        [
            (existing, "again", "ja", ""),
            (unique_label(), "bad status", "ja", "archived"),
        ]
    )
    summary = ingestion.import_batch(db_session, ingestion.parse_csv(text), actor.id)
    assert summary.created == 0
    assert summary.success is False
    assert summary.errors[0].startswith("Row 2:")
    assert "already exists" in summary.errors[0]
    assert summary.errors[1].startswith("Row 3:")
    file_record = db_session.get(models.FileHistory, summary.file_history_id)
    assert file_record.status == "failed"


def test_translation_rows_upsert_translations(db_session):
    actor = create_user("admin")
    label = unique_label("tr")
    text = _csv(
        [(label, "こんにちは", "en", "Hello", "review_requested")],
        headers=("label", "original_text", "language_code", "translated_text", "status"),
    )
    summary = ingestion.import_batch(db_session, ingestion.parse_csv(text), actor.id)
    assert summary.created == 1

    entry = text_entries.find_entry_by_label(db_session, label)
    assert entry.language_code == "ja"
    assert entry.status == "pending"
    translation = text_entries.get_translation(db_session, entry.id, "en")
    assert translation.translated_text == "Hello"
    assert translation.status == "review_requested"
    assert translation.translator_id == actor.id


def test_update_existing_by_id_records_history(db_session):
    actor = create_user("admin")
    entry = text_entries.create_text_entry(
        db_session, {"label": unique_label("upd"), "original_text": "old"}, actor.id
    )
    db_session.commit()
    text = _csv(
        [(str(entry.id), entry.label, "new", "ja", "review_requested")],
        headers=("id", "label", "original_text", "language_code", "status"),
    )
    summary = ingestion.import_batch(
        db_session, ingestion.parse_csv(text), actor.id, update_existing=True
    )
    assert (summary.created, summary.updated, summary.errors) == (0, 1, [])

    db_session.expire_all()
    refreshed = db_session.get(models.TextEntry, entry.id)
    assert refreshed.original_text == "new"
    assert refreshed.status == "review_requested"
    newest = history.list_history(db_session, entry.id)[0][0]
    assert (newest.edit_type, newest.old_text, newest.new_text) == ("update", "old", "new")


def test_without_update_existing_matching_label_is_a_row_error(db_session):
    actor = create_user("admin")
    entry = text_entries.create_text_entry(
        db_session, {"label": unique_label("keep"), "original_text": "keep"}, actor.id
    )
    db_session.commit()
    text = _csv([(entry.label, "changed", "ja", "")])
    summary = ingestion.import_batch(db_session, ingestion.parse_csv(text), actor.id)
    assert summary.updated == 0
    assert len(summary.errors) == 1
    db_session.expire_all()
    assert db_session.get(models.TextEntry, entry.id).original_text == "keep"


def test_fatal_error_rolls_back_whole_batch(db_session, monkeypatch):
    actor = create_user("admin")
    first, second = unique_label("fatal"), unique_label("fatal")
    text = _csv([(first, "ok", "ja", ""), (second, "boom", "ja", "")])
    real_import_row = ingestion._import_row
    calls = []

    def exploding(db, values, *args):
        calls.append(values["label"])
        if values["label"] == second:
            raise OSError("disk went away")
        return real_import_row(db, values, *args)

    monkeypatch.setattr(ingestion, "_import_row", exploding)
    with pytest.raises(OSError):
        ingestion.import_batch(db_session, ingestion.parse_csv(text), actor.id, filename="fatal.csv")

    assert calls == [first, second]
    assert text_entries.find_entry_by_label(db_session, first) is None
    failed = (
        db_session.query(models.FileHistory)
        .filter(models.FileHistory.filename == "fatal.csv")
        .one()
    )
    assert failed.status == "failed"
    assert failed.record_count == 0
    assert "disk went away" in failed.error_message


def test_export_rows_one_per_translation(db_session):
    actor = create_user("admin")
    category = unique_label("cat")
    with_translations = text_entries.create_text_entry(
        db_session,
        {"label": unique_label("exp"), "original_text": "原文", "file_category": category},
        actor.id,
    )
    text_entries.upsert_translation(db_session, with_translations.id, "en", {"translated_text": "Source"}, actor.id)
    text_entries.upsert_translation(db_session, with_translations.id, "fr", {"translated_text": "Source FR"}, actor.id)
    bare = text_entries.create_text_entry(
        db_session,
        {"label": unique_label("exp"), "original_text": "単独", "file_category": category},
        actor.id,
    )
    db_session.commit()

    rows = ingestion.export_rows(db_session, category=category)
    assert len(rows) == 3
    by_language = {(r["label"], r["language_code"]): r for r in rows}
    assert by_language[(with_translations.label, "en")]["translated_text"] == "Source"
    assert by_language[(with_translations.label, "fr")]["source_language_code"] == "ja"
    assert by_language[(bare.label, "ja")]["translated_text"] == ""

    plain = ingestion.export_rows(db_session, category=category, include_translations=False)
    assert len(plain) == 2
    assert "translated_text" not in plain[0]


def test_render_csv_round_trips_through_parse(db_session):
    actor = create_user("admin")
    category = unique_label("rt")
    text_entries.create_text_entry(
        db_session,
        {"label": unique_label("rt"), "original_text": 'line, with "quotes"\nand break', "file_category": category},
        actor.id,
    )
    db_session.commit()
    content = ingestion.render_csv(ingestion.export_rows(db_session, category=category))
    parsed = ingestion.parse_csv(content)
    assert parsed[0].values["original_text"] == 'line, with "quotes"\nand break'


def test_empty_export_is_rejected(db_session):
    actor = create_user("admin")
    with pytest.raises(ValidationError) as exc:
        ingestion.export_batch(db_session, actor.id, category=unique_label("none"))
    assert "No data to export" in str(exc.value)
