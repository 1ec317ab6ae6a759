import asyncio
import json
from datetime import datetime, timedelta, timezone

import pytest

from agentchat.agent.state import Message, MessageMetadata
from agentchat.errors import StorageError
from agentchat.memory import (
    FileSessionStore,
    InMemorySessionStore,
    messages_to_session_state,
    session_state_to_messages,
)
from tests.conftest import SESSION_ID, make_state


OTHER_ID = "9b2f4c1e-3d5a-4e6f-8a7b-0c1d2e3f4a5b"


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemorySessionStore()
    return FileSessionStore(tmp_path / "sessions")


def test_save_then_load(store) -> None:
    state = make_state(("user", "Hello"), ("assistant", "Hi there"))
    state.messages[-1].agent = "chat"
    state.messages[-1].metadata = MessageMetadata(agent="chat", processing_time=12.5)
    state.context["lastAgent"] = "chat"

    asyncio.run(store.save(SESSION_ID, state))
    loaded = asyncio.run(store.load(SESSION_ID))

    assert loaded.session_id == SESSION_ID
    assert [(m.role, m.content) for m in loaded.messages] == [("user", "Hello"), ("assistant", "Hi there")]
    assert loaded.messages[-1].metadata.processing_time == 12.5
    assert loaded.context == {"lastAgent": "chat"}
    assert loaded.updated_at is not None


def test_unknown_session_loads_as_none(store) -> None:
    assert asyncio.run(store.load(SESSION_ID)) is None


def test_save_overwrites(store) -> None:
    asyncio.run(store.save(SESSION_ID, make_state(("user", "one"))))
    asyncio.run(store.save(SESSION_ID, make_state(("user", "one"), ("assistant", "two"))))

    assert len(asyncio.run(store.load(SESSION_ID)).messages) == 2


def test_loaded_state_is_a_copy(store) -> None:
    asyncio.run(store.save(SESSION_ID, make_state(("user", "Hello"))))

    loaded = asyncio.run(store.load(SESSION_ID))
    loaded.add_message(Message(role="assistant", content="not saved"))

    assert len(asyncio.run(store.load(SESSION_ID)).messages) == 1


def test_delete_and_list(store) -> None:
    first = make_state(("user", "a"))
    first.user_id = "alice"
    second = make_state(("user", "b"), session_id=OTHER_ID)
    second.user_id = "bob"
    asyncio.run(store.save(SESSION_ID, first))
    asyncio.run(store.save(OTHER_ID, second))

    assert sorted(asyncio.run(store.list_sessions())) == sorted([SESSION_ID, OTHER_ID])
    assert asyncio.run(store.list_sessions("alice")) == [SESSION_ID]

    asyncio.run(store.delete(SESSION_ID))
    asyncio.run(store.delete(SESSION_ID))

    assert asyncio.run(store.load(SESSION_ID)) is None
    assert asyncio.run(store.list_sessions()) == [OTHER_ID]


def test_purge_and_stats(store) -> None:
    asyncio.run(store.save(SESSION_ID, make_state(("user", "a"), ("assistant", "b"))))
    asyncio.run(store.save(OTHER_ID, make_state(("user", "c"), session_id=OTHER_ID)))

    stats = asyncio.run(store.stats())
    assert stats == {"totalSessions": 2, "activeSessions": 2, "totalMessages": 3}

    assert asyncio.run(store.purge_older_than(timedelta(hours=24))) == 0
    assert asyncio.run(store.purge_older_than(timedelta(seconds=-1))) == 2
    assert asyncio.run(store.list_sessions()) == []


def test_file_store_writes_camel_case_json(tmp_path) -> None:
    store = FileSessionStore(tmp_path)
    asyncio.run(store.save(SESSION_ID, make_state(("user", "Hello"))))

    document = json.loads((tmp_path / f"{SESSION_ID}.json").read_text(encoding="utf-8"))

    assert document["sessionId"] == SESSION_ID
    assert document["messages"][0]["content"] == "Hello"
    assert list(tmp_path.glob("*.tmp")) == []


def test_file_store_rejects_path_like_ids(tmp_path) -> None:
    store = FileSessionStore(tmp_path)

    with pytest.raises(StorageError):
        asyncio.run(store.load("../escape"))


def test_file_store_corrupt_file_is_a_storage_error(tmp_path) -> None:
    store = FileSessionStore(tmp_path)
    (tmp_path / f"{SESSION_ID}.json").write_text("{broken", encoding="utf-8")

    with pytest.raises(StorageError, match="Failed to load session"):
        asyncio.run(store.load(SESSION_ID))
    # unreadable files are skipped when listing
    assert asyncio.run(store.list_sessions()) == []


def test_memory_store_clear() -> None:
    store = InMemorySessionStore()
    asyncio.run(store.save(SESSION_ID, make_state(("user", "a"))))
    store.clear()

    assert asyncio.run(store.all_sessions()) == []


def test_message_list_conversion_preserves_order() -> None:
    messages = [
        Message(role="user", content="first", timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc)),
        Message(role="assistant", content="second", agent="chat"),
    ]

    state = messages_to_session_state(messages, SESSION_ID, "alice")

    assert state.session_id == SESSION_ID
    assert state.user_id == "alice"
    assert session_state_to_messages(state) == messages
    assert state.context == {}
