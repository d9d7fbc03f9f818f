import uuid

import pytest

from forest import history, models
from forest.errors import NotFoundError, ValidationError
from forest.services import text_entries
from .conftest import create_user, unique_label


def _snapshot(records):
    return [
        (r.id, r.sequence, r.language_code, r.old_text, r.new_text, r.edited_by, r.edit_type)
        for r in records
    ]


def _entry_with_two_edits(db, editor):
    entry = text_entries.create_text_entry(
        db, {"label": unique_label(), "original_text": "A"}, editor.id
    )
    text_entries.update_text_entry(db, entry.id, {"original_text": "B"}, editor.id)
    db.commit()
    return entry


def test_record_edit_assigns_increasing_sequence(db_session):
    editor = create_user("scenario_writer")
    entry = _entry_with_two_edits(db_session, editor)
    records, total = history.list_history(db_session, entry.id)
    assert total == 2
    assert [r.sequence for r in records] == [2, 1]
    assert records[-1].edit_type == "create"
    assert records[-1].old_text is None
    assert records[0].old_text == "A"
    assert records[0].new_text == "B"


def test_revert_restores_text_and_appends_update(db_session):
    editor = create_user("scenario_writer")
    entry = _entry_with_two_edits(db_session, editor)
    records, _ = history.list_history(db_session, entry.id)
    create_record = records[-1]

    reverted = history.revert_to_history(db_session, entry.id, create_record.id, editor.id)
    db_session.commit()

    assert reverted.original_text == "A"
    records, total = history.list_history(db_session, entry.id)
    assert total == 3
    newest = records[0]
    assert newest.edit_type == "update"
    assert newest.old_text == "B"
    assert newest.new_text == "A"
    assert newest.sequence == 3
    assert newest.edited_by == editor.id


def test_reverts_only_ever_append(db_session):
    editor = create_user("scenario_writer")
    entry = _entry_with_two_edits(db_session, editor)
    before, _ = history.list_history(db_session, entry.id)
    frozen = _snapshot(before)
    targets = [before[-1].id, before[0].id, before[-1].id]

    for target in targets:
        history.revert_to_history(db_session, entry.id, target, editor.id)
        db_session.commit()

    after, total = history.list_history(db_session, entry.id)
    assert total == len(before) + len(targets)
    assert all(r.edit_type == "update" for r in after[: len(targets)])
    assert _snapshot(after[len(targets):]) == frozen


def test_list_history_is_repeatable(db_session):
    editor = create_user("scenario_writer")
    entry = _entry_with_two_edits(db_session, editor)
    first = _snapshot(history.list_history(db_session, entry.id, limit=1, offset=1)[0])
    second = _snapshot(history.list_history(db_session, entry.id, limit=1, offset=1)[0])
    assert first == second
    assert len(first) == 1


def test_revert_rejects_history_of_another_entry(db_session):
    editor = create_user("scenario_writer")
    entry_a = _entry_with_two_edits(db_session, editor)
    entry_b = _entry_with_two_edits(db_session, editor)
    foreign = history.list_history(db_session, entry_b.id)[0][-1]
    before = _snapshot(history.list_history(db_session, entry_a.id)[0])

    with pytest.raises(NotFoundError):
        history.revert_to_history(db_session, entry_a.id, foreign.id, editor.id)
    db_session.rollback()

    db_session.expire_all()
    assert db_session.get(models.TextEntry, entry_a.id).original_text == "B"
    assert _snapshot(history.list_history(db_session, entry_a.id)[0]) == before


def test_revert_of_delete_record_is_rejected(db_session):
    editor = create_user("admin")
    entry = _entry_with_two_edits(db_session, editor)
    tombstone = history.record_edit(
        db_session,
        text_entry_id=entry.id,
        language_code=entry.language_code,
        old_text="B",
        new_text="ignored",
        editor_id=editor.id,
        edit_type="delete",
    )
    assert tombstone.new_text is None
    with pytest.raises(ValidationError):
        history.revert_to_history(db_session, entry.id, tombstone.id, editor.id)


def test_unknown_entry_or_record(db_session):
    editor = create_user("scenario_writer")
    entry = _entry_with_two_edits(db_session, editor)
    missing = uuid.uuid4()
    with pytest.raises(NotFoundError):
        history.list_history(db_session, missing)
    with pytest.raises(NotFoundError):
        history.revert_to_history(db_session, entry.id, missing, editor.id)


def test_revert_translation_record_restores_translation(db_session):
    writer = create_user("scenario_writer")
    translator = create_user("translator")
    entry = text_entries.create_text_entry(
        db_session, {"label": unique_label(), "original_text": "こんにちは"}, writer.id
    )
    text_entries.upsert_translation(db_session, entry.id, "en", {"translated_text": "Hello"}, translator.id)
    text_entries.upsert_translation(db_session, entry.id, "en", {"translated_text": "Hi"}, translator.id)
    db_session.commit()

    records, _ = history.list_history(db_session, entry.id)
    first_translation = next(r for r in records if r.language_code == "en" and r.edit_type == "create")
    history.revert_to_history(db_session, entry.id, first_translation.id, translator.id)
    db_session.commit()

    translation = text_entries.get_translation(db_session, entry.id, "en")
    assert translation.translated_text == "Hello"
    assert db_session.get(models.TextEntry, entry.id).original_text == "こんにちは"
    newest = history.list_history(db_session, entry.id)[0][0]
    assert (newest.language_code, newest.old_text, newest.new_text) == ("en", "Hi", "Hello")


def test_history_rows_refuse_in_place_updates(db_session):
    editor = create_user("scenario_writer")
    entry = _entry_with_two_edits(db_session, editor)
    record = history.list_history(db_session, entry.id)[0][0]
    record.new_text = "tampered"
    with pytest.raises(RuntimeError):
        db_session.flush()
    db_session.rollback()


def test_revert_after_source_language_change_restores_original_text(db_session):
    editor = create_user("scenario_writer")
    entry = text_entries.create_text_entry(
        db_session, {"label": unique_label(), "original_text": "A"}, editor.id
    )
    text_entries.update_text_entry(
        db_session, entry.id, {"original_text": "B", "language_code": "en"}, editor.id
    )
    db_session.commit()
    create_record = history.list_history(db_session, entry.id)[0][-1]
    assert create_record.text_kind == "original"

    history.revert_to_history(db_session, entry.id, create_record.id, editor.id)
    db_session.commit()

    db_session.expire_all()
    refreshed = db_session.get(models.TextEntry, entry.id)
    assert refreshed.original_text == "A"
    assert refreshed.language_code == "en"
    assert text_entries.get_translation(db_session, entry.id, "ja") is None
    newest = history.list_history(db_session, entry.id)[0][0]
    assert (newest.text_kind, newest.language_code, newest.old_text, newest.new_text) == (
        "original",
        "en",
        "B",
        "A",
    )


def test_translation_rows_are_marked_as_translation(db_session):
    writer = create_user("scenario_writer")
    entry = text_entries.create_text_entry(
        db_session, {"label": unique_label(), "original_text": "森"}, writer.id
    )
    text_entries.upsert_translation(db_session, entry.id, "en", {"translated_text": "Forest"}, writer.id)
    newest = history.list_history(db_session, entry.id)[0][0]
    assert (newest.text_kind, newest.language_code) == ("translation", "en")


def test_translation_revert_into_current_source_language_is_rejected(db_session):
    writer = create_user("scenario_writer")
    entry = text_entries.create_text_entry(
        db_session, {"label": unique_label(), "original_text": "森"}, writer.id
    )
    text_entries.upsert_translation(db_session, entry.id, "en", {"translated_text": "Forest"}, writer.id)
    translation_record = history.list_history(db_session, entry.id)[0][0]
    db_session.delete(text_entries.get_translation(db_session, entry.id, "en"))
    db_session.flush()
    text_entries.update_text_entry(db_session, entry.id, {"language_code": "en"}, writer.id)
    with pytest.raises(ValidationError):
        history.revert_to_history(db_session, entry.id, translation_record.id, writer.id)
