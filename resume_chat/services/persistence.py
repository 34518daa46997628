"""Conversation snapshot persistence.

Stores hold JSON-ready snapshots (``ConversationRecord.snapshot()``) keyed
by session id. Saving is fire-and-forget from the conversation's point of
view: ``schedule_save`` hands the snapshot to an asyncio task, and a failed
save is logged, never raised into the conversation. Saves for the same
session run one after another in scheduling order, so the stored snapshot
is always the latest one.

Two stores:
- InMemoryConversationStore: process-local dict (tests, single process).
- JsonFileConversationStore: one ``<session_id>.json`` file per session.
"""

import asyncio
import json
import logging
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from resume_chat.agents.state import ConversationRecord
from resume_chat.core.config import settings

logger = logging.getLogger(__name__)

_SAFE_SESSION_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")

# Strong references to in-flight saves so they are not garbage collected.
_pending_saves: set[asyncio.Task[None]] = set()

# Most recent save per (store, session); the next save waits for it.
_last_saves: dict[tuple[int, str], asyncio.Task[None]] = {}


class ConversationStore(ABC):
    """Persists conversation snapshots by session id."""

    @abstractmethod
    async def save(self, snapshot: dict[str, Any]) -> None:
        """Store a snapshot, replacing any earlier one for the session."""
        ...

    @abstractmethod
    async def load(self, session_id: str) -> ConversationRecord | None:
        """Return the stored conversation, or None if there is none."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove a stored conversation. Returns True if one existed."""
        ...


class InMemoryConversationStore(ConversationStore):
    def __init__(self) -> None:
        self._snapshots: dict[str, dict[str, Any]] = {}

    async def save(self, snapshot: dict[str, Any]) -> None:
        self._snapshots[snapshot["session_id"]] = snapshot

    async def load(self, session_id: str) -> ConversationRecord | None:
        snapshot = self._snapshots.get(session_id)
        if snapshot is None:
            return None
        return ConversationRecord.model_validate(snapshot)

    async def delete(self, session_id: str) -> bool:
        return self._snapshots.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._snapshots)


class JsonFileConversationStore(ConversationStore):
    """One JSON file per session under ``directory``.

    File I/O runs in a worker thread. Session ids are restricted to
    letters, digits, ``-`` and ``_`` so they map to plain file names.

    Args:
        directory: Storage directory. Defaults to settings.persistence_dir.
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self.directory = Path(directory or settings.persistence_dir)

    def _path_for(self, session_id: str) -> Path:
        if not _SAFE_SESSION_ID.match(session_id):
            msg = f"Invalid session id: {session_id!r}"
            raise ValueError(msg)
        return self.directory / f"{session_id}.json"

    async def save(self, snapshot: dict[str, Any]) -> None:
        path = self._path_for(snapshot["session_id"])
        await asyncio.to_thread(self._write, path, snapshot)

    def _write(self, path: Path, snapshot: dict[str, Any]) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        tmp_path.write_text(json.dumps(snapshot, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)

    async def load(self, session_id: str) -> ConversationRecord | None:
        path = self._path_for(session_id)
        if not path.exists():
            return None
        raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        return ConversationRecord.model_validate_json(raw)

    async def delete(self, session_id: str) -> bool:
        path = self._path_for(session_id)
        if not path.exists():
            return False
        await asyncio.to_thread(path.unlink)
        return True


def get_conversation_store() -> ConversationStore:
    """Build the store selected by settings.conversation_store."""
    if settings.conversation_store == "json":
        return JsonFileConversationStore()
    return InMemoryConversationStore()


def _log_save_failure(task: asyncio.Task[None]) -> None:
    _pending_saves.discard(task)
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            "Failed to persist conversation snapshot",
            exc_info=(type(error), error, error.__traceback__),
        )


async def _save_after(
    previous: asyncio.Task[None] | None,
    store: ConversationStore,
    snapshot: dict[str, Any],
) -> None:
    if previous is not None and not previous.done():
        # asyncio.wait does not re-raise the earlier save's failure
        await asyncio.wait({previous})
    await store.save(snapshot)


def schedule_save(
    store: ConversationStore, conversation: ConversationRecord
) -> asyncio.Task[None] | None:
    """Save a snapshot of the conversation in the background.

    The snapshot is taken now, so later mutations do not leak into it.
    The save starts once the previous save of the same session in the
    same store has finished.

    Returns:
        The save task, or None when no event loop is running (the save is
        skipped).
    """
    snapshot = conversation.snapshot()
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        logger.debug(
            "No running event loop; skipped saving conversation %s",
            conversation.session_id,
        )
        return None

    key = (id(store), conversation.session_id)
    task = loop.create_task(_save_after(_last_saves.get(key), store, snapshot))
    _last_saves[key] = task
    _pending_saves.add(task)
    task.add_done_callback(_log_save_failure)
    task.add_done_callback(lambda done: _forget_last_save(key, done))
    return task


def _forget_last_save(key: tuple[int, str], task: asyncio.Task[None]) -> None:
    if _last_saves.get(key) is task:
        del _last_saves[key]


async def wait_for_pending_saves() -> None:
    """Wait until every scheduled save has finished."""
    if _pending_saves:
        await asyncio.gather(*list(_pending_saves), return_exceptions=True)
