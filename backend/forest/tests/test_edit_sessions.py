from datetime import datetime, timedelta, timezone
import uuid

import pytest

from forest.errors import NotFoundError
from forest.services import edit_sessions, text_entries
from .conftest import client, auth_headers, create_user, unique_label


def _entry(db):
    writer = create_user("scenario_writer")
    entry = text_entries.create_text_entry(db, {"label": unique_label("sess"), "original_text": "t"}, writer.id)
    db.commit()
    return entry


def test_touch_reuses_open_session(db_session):
    entry = _entry(db_session)
    user = create_user("translator")
    first = edit_sessions.touch_session(db_session, entry.id, user.id, "en")
    second = edit_sessions.touch_session(db_session, entry.id, user.id)
    db_session.commit()
    assert first.id == second.id
    assert second.language_code == "en"
    assert [s.id for s in edit_sessions.list_active_sessions(db_session, entry.id)] == [first.id]


def test_sessions_are_advisory_and_expire(db_session):
    entry = _entry(db_session)
    alice = create_user("translator")
    bob = create_user("reviewer")
    edit_sessions.touch_session(db_session, entry.id, alice.id)
    edit_sessions.touch_session(db_session, entry.id, bob.id)
    db_session.commit()

    others = edit_sessions.list_active_sessions(db_session, entry.id, exclude_user_id=alice.id)
    assert [s.user_id for s in others] == [bob.id]
    assert others[0].username == bob.username

    later = datetime.now(timezone.utc) + timedelta(minutes=edit_sessions.EDIT_SESSION_TTL_MINUTES + 1)
    assert edit_sessions.list_active_sessions(db_session, entry.id, now=later) == []

    # an open session never blocks a write by someone else
    text_entries.update_text_entry(db_session, entry.id, {"original_text": "changed"}, alice.id)
    db_session.commit()


def test_end_session(db_session):
    entry = _entry(db_session)
    user = create_user("translator")
    edit_sessions.touch_session(db_session, entry.id, user.id)
    assert edit_sessions.end_session(db_session, entry.id, user.id) == 1
    assert edit_sessions.end_session(db_session, entry.id, user.id) == 0
    db_session.commit()
    assert edit_sessions.list_active_sessions(db_session, entry.id) == []


def test_touch_unknown_entry(db_session):
    user = create_user("translator")
    with pytest.raises(NotFoundError):
        edit_sessions.touch_session(db_session, uuid.uuid4(), user.id)


def test_session_endpoints(client):
    writer_headers, _ = auth_headers("scenario_writer")
    headers, user = auth_headers("translator")
    entry = client.post(
        "/api/text-entries/", json={"label": unique_label("sess"), "original_text": "t"}, headers=writer_headers
    ).json()
    url = f"/api/text-entries/{entry['id']}/sessions"

    resp = client.post(url, json={"language_code": "en"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["username"] == user.username

    detail = client.get(f"/api/text-entries/{entry['id']}", headers=writer_headers).json()
    assert [s["user_id"] for s in detail["active_sessions"]] == [str(user.id)]

    assert client.delete(url, headers=headers).json() == {"closed": 1}
    assert client.get(url, headers=headers).json() == []
