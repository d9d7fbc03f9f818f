import pytest

from forest.errors import ValidationError
from forest.services import progress, text_entries
from .conftest import client, auth_headers, create_user, unique_label


def _seed(db, category):
    writer = create_user("scenario_writer")
    statuses = ["pending", "completed", "completed"]
    entries = [
        text_entries.create_text_entry(
            db,
            {"label": unique_label("prog"), "original_text": "t", "file_category": category, "status": status},
            writer.id,
        )
        for status in statuses
    ]
    text_entries.upsert_translation(db, entries[0].id, "en", {"translated_text": "a", "status": "completed"}, writer.id)
    text_entries.upsert_translation(db, entries[1].id, "en", {"translated_text": "b"}, writer.id)
    text_entries.upsert_translation(db, entries[1].id, "fr", {"translated_text": "c"}, writer.id)
    db.commit()
    return writer, entries


def test_status_rollup(db_session):
    category = unique_label("cat")
    _seed(db_session, category)
    summary = progress.summarize(db_session, category=category)
    assert summary["total"] == 3
    assert summary["totals"]["completed"] == 2
    assert summary["totals"]["omitted"] == 0
    by_key = {g["key"]: g for g in summary["groups"]}
    assert set(by_key) == {"pending", "completed"}
    assert by_key["completed"]["percentage"] == 66.67
    assert by_key["completed"]["completion_rate"] == 100.0


def test_category_rollup(db_session):
    category = unique_label("cat")
    _seed(db_session, category)
    summary = progress.summarize(db_session, group_by="category", category=category)
    assert len(summary["groups"]) == 1
    group = summary["groups"][0]
    assert group["key"] == category
    assert group["counts"]["pending"] == 1
    assert group["completion_rate"] == 66.67


def test_language_rollup_counts_translations(db_session):
    category = unique_label("cat")
    _seed(db_session, category)
    summary = progress.summarize(db_session, group_by="language", category=category)
    assert [g["key"] for g in summary["groups"]] == ["en", "fr"]
    english = summary["groups"][0]
    assert english["total"] == 2
    assert english["completion_rate"] == 50.0
    assert "source_consultation" not in english["counts"]


def test_recent_activity_lists_latest_edits(db_session):
    category = unique_label("cat")
    writer, entries = _seed(db_session, category)
    activity = progress.recent_activity(db_session, category=category, limit=2)
    assert len(activity) == 2
    assert all(item["editor_name"] == writer.username for item in activity)
    labels = {e.label for e in entries}
    assert all(item["label"] in labels for item in activity)


def test_invalid_group_by(db_session):
    with pytest.raises(ValidationError):
        progress.summarize(db_session, group_by="mood")


def test_progress_endpoint(client):
    headers, _ = auth_headers("translator")
    resp = client.get("/api/progress/", params={"category": unique_label("empty")}, headers=headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["total"] == 0
    assert body["groups"] == []
    assert client.get("/api/progress/", params={"group_by": "mood"}, headers=headers).status_code == 400
