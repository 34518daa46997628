"""Tests for conversation snapshot persistence."""

import asyncio
import logging

import pytest

from resume_chat.agents.state import ConversationRecord
from resume_chat.core.config import settings
from resume_chat.services.persistence import (
    ConversationStore,
    InMemoryConversationStore,
    JsonFileConversationStore,
    get_conversation_store,
    schedule_save,
    wait_for_pending_saves,
)


def make_conversation(session_id: str = "session-1") -> ConversationRecord:
    conversation = ConversationRecord.new_assisted(session_id=session_id, category="work")
    conversation.record["personalInfo"]["fullName"] = "Maria Garcia"
    conversation.add_turn("user", "Maria Garcia")
    return conversation


class SlowFirstStore(InMemoryConversationStore):
    """Earlier saves take longer, so unordered saves would land out of order."""

    def __init__(self, delays: list[float]) -> None:
        super().__init__()
        self.delays = list(delays)
        self.saved_names: list[str] = []

    async def save(self, snapshot):
        await asyncio.sleep(self.delays.pop(0))
        self.saved_names.append(snapshot["record"]["personalInfo"]["fullName"])
        await super().save(snapshot)


class FailOnceStore(InMemoryConversationStore):
    def __init__(self) -> None:
        super().__init__()
        self.failed = False

    async def save(self, snapshot):
        if not self.failed:
            self.failed = True
            raise OSError("disk full")
        await super().save(snapshot)


class FailingStore(ConversationStore):
    async def save(self, snapshot):
        raise OSError("disk full")

    async def load(self, session_id):
        return None

    async def delete(self, session_id):
        return False


# =============================================================================
# Stores
# =============================================================================


class TestInMemoryConversationStore:
    """Tests for InMemoryConversationStore."""

    @pytest.mark.asyncio
    async def test_save_and_load(self):
        store = InMemoryConversationStore()
        conversation = make_conversation()

        await store.save(conversation.snapshot())
        loaded = await store.load("session-1")

        assert loaded is not None
        assert loaded.record["personalInfo"]["fullName"] == "Maria Garcia"
        assert loaded.mode == "assisted"
        assert loaded.cursor.category == "work"
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_unknown_session_is_none(self):
        assert await InMemoryConversationStore().load("missing") is None

    @pytest.mark.asyncio
    async def test_delete(self):
        store = InMemoryConversationStore()
        await store.save(make_conversation().snapshot())

        assert await store.delete("session-1") is True
        assert await store.delete("session-1") is False
        assert len(store) == 0


class TestJsonFileConversationStore:
    """Tests for JsonFileConversationStore."""

    @pytest.mark.asyncio
    async def test_round_trip_through_file(self, tmp_path):
        store = JsonFileConversationStore(tmp_path / "conversations")
        conversation = make_conversation()

        await store.save(conversation.snapshot())
        loaded = await store.load("session-1")

        assert (tmp_path / "conversations" / "session-1.json").exists()
        assert loaded is not None
        assert loaded.session_id == "session-1"
        assert [t.content for t in loaded.transcript] == ["Maria Garcia"]

    @pytest.mark.asyncio
    async def test_later_save_replaces_earlier(self, tmp_path):
        store = JsonFileConversationStore(tmp_path)
        conversation = make_conversation()
        await store.save(conversation.snapshot())

        conversation.record["personalInfo"]["email"] = "maria@example.com"
        await store.save(conversation.snapshot())

        loaded = await store.load("session-1")
        assert loaded is not None
        assert loaded.record["personalInfo"]["email"] == "maria@example.com"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["session-1.json"]

    @pytest.mark.asyncio
    async def test_missing_file_is_none(self, tmp_path):
        store = JsonFileConversationStore(tmp_path)

        assert await store.load("missing") is None
        assert await store.delete("missing") is False

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, tmp_path):
        store = JsonFileConversationStore(tmp_path)
        await store.save(make_conversation().snapshot())

        assert await store.delete("session-1") is True
        assert not (tmp_path / "session-1.json").exists()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_id", ["../escape", "a/b", "", "x" * 129])
    async def test_unsafe_session_id_rejected(self, tmp_path, session_id):
        store = JsonFileConversationStore(tmp_path)

        with pytest.raises(ValueError, match="Invalid session id"):
            await store.load(session_id)


class TestGetConversationStore:
    """Tests for get_conversation_store."""

    def test_memory_by_default(self, monkeypatch):
        monkeypatch.setattr(settings, "conversation_store", "memory")
        assert type(get_conversation_store()) is InMemoryConversationStore

    def test_json_uses_persistence_dir(self, monkeypatch, tmp_path):
        monkeypatch.setattr(settings, "conversation_store", "json")
        monkeypatch.setattr(settings, "persistence_dir", str(tmp_path))

        store = get_conversation_store()

        assert type(store) is JsonFileConversationStore
        assert store.directory == tmp_path


# =============================================================================
# Background Saves
# =============================================================================


class TestScheduleSave:
    """Tests for schedule_save and wait_for_pending_saves."""

    def test_without_running_loop_returns_none(self):
        assert schedule_save(InMemoryConversationStore(), make_conversation()) is None

    @pytest.mark.asyncio
    async def test_snapshot_taken_at_schedule_time(self):
        store = InMemoryConversationStore()
        conversation = make_conversation()

        task = schedule_save(store, conversation)
        conversation.record["personalInfo"]["fullName"] = "Changed Later"
        await wait_for_pending_saves()

        assert task is not None
        assert task.done()
        loaded = await store.load("session-1")
        assert loaded is not None
        assert loaded.record["personalInfo"]["fullName"] == "Maria Garcia"

    @pytest.mark.asyncio
    async def test_failed_save_is_logged_not_raised(self, caplog):
        caplog.set_level(logging.ERROR, logger="resume_chat.services.persistence")

        task = schedule_save(FailingStore(), make_conversation())
        await wait_for_pending_saves()
        await asyncio.sleep(0)

        assert task is not None
        assert "Failed to persist conversation snapshot" in caplog.text

    @pytest.mark.asyncio
    async def test_wait_with_nothing_pending(self):
        await wait_for_pending_saves()

    @pytest.mark.asyncio
    async def test_saves_of_one_session_run_in_order(self):
        store = SlowFirstStore([0.03, 0.02, 0.0])
        conversation = make_conversation()

        for name in ("first", "second", "third"):
            conversation.record["personalInfo"]["fullName"] = name
            schedule_save(store, conversation)
        await wait_for_pending_saves()

        assert store.saved_names == ["first", "second", "third"]
        loaded = await store.load("session-1")
        assert loaded is not None
        assert loaded.record["personalInfo"]["fullName"] == "third"

    @pytest.mark.asyncio
    async def test_failed_save_does_not_block_later_saves(self):
        store = FailOnceStore()
        conversation = make_conversation()

        first = schedule_save(store, conversation)
        second = schedule_save(store, conversation)
        await wait_for_pending_saves()

        assert first is not None and first.exception() is not None
        assert second is not None and second.exception() is None
        assert await store.load("session-1") is not None

    @pytest.mark.asyncio
    async def test_rapid_file_saves_keep_latest_snapshot(self, tmp_path):
        store = JsonFileConversationStore(tmp_path)
        conversation = make_conversation()

        for i in range(50):
            conversation.record["personalInfo"]["fullName"] = f"name-{i}"
            schedule_save(store, conversation)
        await wait_for_pending_saves()

        loaded = await store.load("session-1")
        assert loaded is not None
        assert loaded.record["personalInfo"]["fullName"] == "name-49"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["session-1.json"]
