import re
from datetime import timedelta

import pytest

from api.features.conversation import repository
from api.features.conversation.exceptions import InvalidRoleError, SessionNotFoundError
from api.shared.entities.registry import BaseEntity
from api.shared.exceptions import StorageError
from api.shared.utils import ensure_utc

pytestmark = pytest.mark.anyio


async def test_create_session_uses_default_title(store):
    session = await store.create_session()

    assert re.fullmatch(r"session_\d+_[a-z0-9]{9}", session.id)
    assert session.title == "New Chat"
    assert session.created_at == session.updated_at


async def test_create_session_keeps_title_and_ignores_blank(store):
    titled = await store.create_session("Trip planning")
    blank = await store.create_session("   ")

    assert titled.title == "Trip planning"
    assert blank.title == "New Chat"
    assert titled.id != blank.id


async def test_append_message_bumps_updated_at(store):
    session = await store.create_session()
    message = await store.append_message(session.id, "user", "hi")

    stored = await store.get_session(session.id)
    assert message.id is not None
    assert message.role == "user"
    assert ensure_utc(stored.updated_at) == ensure_utc(message.timestamp)
    assert ensure_utc(stored.updated_at) >= ensure_utc(session.created_at)


async def test_append_message_to_missing_session(store):
    with pytest.raises(SessionNotFoundError):
        await store.append_message("session_missing", "user", "hi")

    assert await store.list_all_messages() == []


async def test_append_message_rejects_unknown_role(store):
    session = await store.create_session()

    with pytest.raises(InvalidRoleError):
        await store.append_message(session.id, "tool", "hi")


async def test_timestamps_never_go_backwards(store, monkeypatch):
    session = await store.create_session()
    first = await store.append_message(session.id, "user", "first")

    # Clock steps back between the two appends
    earlier = ensure_utc(first.timestamp) - timedelta(seconds=30)
    monkeypatch.setattr(repository, "utcnow", lambda: earlier)
    second = await store.append_message(session.id, "assistant", "second")

    assert ensure_utc(second.timestamp) == ensure_utc(first.timestamp)
    messages = await store.list_messages(session.id)
    assert [m.content for m in messages] == ["first", "second"]


async def test_list_messages_is_per_session_and_ordered(store):
    a = await store.create_session("a")
    b = await store.create_session("b")
    await store.append_message(a.id, "user", "a1")
    await store.append_message(b.id, "user", "b1")
    await store.append_message(a.id, "assistant", "a2")

    assert [m.content for m in await store.list_messages(a.id)] == ["a1", "a2"]
    assert [m.content for m in await store.list_messages(b.id)] == ["b1"]
    assert [m.content for m in await store.list_all_messages()] == ["a1", "b1", "a2"]
    assert await store.list_messages("session_missing") == []


async def test_list_sessions_most_recent_first(store):
    older = await store.create_session("older")
    newer = await store.create_session("newer")
    assert [s.id for s in await store.list_sessions()] == [newer.id, older.id]

    await store.append_message(older.id, "user", "bump")
    assert [s.id for s in await store.list_sessions()] == [older.id, newer.id]


async def test_delete_session_removes_messages(store):
    session = await store.create_session()
    keep = await store.create_session()
    await store.append_message(session.id, "user", "gone")
    await store.append_message(keep.id, "user", "kept")

    assert await store.delete_session(session.id) is True
    assert await store.get_session(session.id) is None
    assert await store.list_messages(session.id) == []
    assert [m.content for m in await store.list_all_messages()] == ["kept"]

    assert await store.delete_session(session.id) is False


async def test_database_failure_raises_storage_error(store, database):
    async with database.engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.drop_all)

    with pytest.raises(StorageError) as exc_info:
        await store.list_sessions()

    assert exc_info.value.message == "Failed to fetch sessions"
    assert exc_info.value.status_code == 500
