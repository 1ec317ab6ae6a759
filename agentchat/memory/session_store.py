"""
Session persistence.

SessionStore is the interface the API layer depends on. Two backends:
- InMemorySessionStore: process-lifetime dict, for development
- FileSessionStore: one JSON document per session in a directory

Concurrent writes to the same session are last-write-wins.
"""
import asyncio
import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from pathlib import Path
from uuid import uuid4

from pydantic import ValidationError

from agentchat.agent.logging import log_error, log_node_result
from agentchat.agent.state import Message, SessionState
from agentchat.errors import StorageError


ACTIVE_WINDOW = timedelta(hours=1)


def messages_to_session_state(
    messages: list[Message],
    session_id: str,
    user_id: str | None = None,
) -> SessionState:
    """Wrap an ordered message list as a fresh session state."""
    return SessionState(session_id=session_id, user_id=user_id, messages=list(messages))


def session_state_to_messages(state: SessionState) -> list[Message]:
    """Ordered message list of a session state."""
    return list(state.messages)


def _last_updated(state: SessionState) -> datetime:
    return state.updated_at or datetime.min.replace(tzinfo=timezone.utc)


class SessionStore(ABC):
    """
    Keyed persistence of session state.

    Every method may raise StorageError when the backend is unavailable.
    """

    @abstractmethod
    async def save(self, session_id: str, state: SessionState) -> None:
        """Create or overwrite; stamps ``updated_at``."""

    @abstractmethod
    async def load(self, session_id: str) -> SessionState | None:
        """Stored state, or None for an unknown session."""

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def list_sessions(self, user_id: str | None = None) -> list[str]:
        ...

    @abstractmethod
    async def all_sessions(self) -> list[SessionState]:
        """Every stored session state."""

    async def purge_older_than(self, max_age: timedelta) -> int:
        """Delete sessions not updated within ``max_age``. Returns the count."""
        cutoff = datetime.now(timezone.utc) - max_age
        stale = [state.session_id for state in await self.all_sessions() if _last_updated(state) < cutoff]
        for session_id in stale:
            await self.delete(session_id)
        log_node_result("SESSION", {"purged": len(stale)})
        return len(stale)

    async def stats(self) -> dict:
        """Counts of sessions, recently active sessions and messages."""
        states = await self.all_sessions()
        active_since = datetime.now(timezone.utc) - ACTIVE_WINDOW
        return {
            "totalSessions": len(states),
            "activeSessions": sum(1 for s in states if _last_updated(s) > active_since),
            "totalMessages": sum(len(s.messages) for s in states),
        }


class InMemorySessionStore(SessionStore):
    """Dict-backed store; contents live as long as the process."""

    def __init__(self):
        self._sessions: dict[str, SessionState] = {}

    async def save(self, session_id: str, state: SessionState) -> None:
        stored = state.model_copy(deep=True, update={"updated_at": datetime.now(timezone.utc)})
        self._sessions[session_id] = stored

    async def load(self, session_id: str) -> SessionState | None:
        state = self._sessions.get(session_id)
        return state.model_copy(deep=True) if state else None

    async def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    async def list_sessions(self, user_id: str | None = None) -> list[str]:
        if user_id:
            return [sid for sid, state in self._sessions.items() if state.user_id == user_id]
        return list(self._sessions)

    async def all_sessions(self) -> list[SessionState]:
        return list(self._sessions.values())

    def clear(self) -> None:
        self._sessions.clear()


class FileSessionStore(SessionStore):
    """
    JSON-file store: ``<root>/<session_id>.json``.

    Writes go to a temp file first and are moved into place with
    ``os.replace``, so a reader never sees a half-written session.
    """

    def __init__(self, root: str | Path):
        self._root = Path(root).resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        # Session ids are validated UUIDs; reject anything path-like anyway
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise StorageError(f"Invalid session id: {session_id!r}")
        return self._root / f"{session_id}.json"

    def _write(self, path: Path, payload: str) -> None:
        tmp_path = path.with_name(f"{path.stem}.{uuid4().hex}.tmp")
        tmp_path.write_text(payload, encoding="utf-8")
        os.replace(tmp_path, path)

    def _read(self, path: Path) -> SessionState:
        return SessionState.model_validate_json(path.read_text(encoding="utf-8"))

    async def save(self, session_id: str, state: SessionState) -> None:
        path = self._path(session_id)
        stored = state.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        payload = stored.model_dump_json(by_alias=True)
        try:
            await asyncio.to_thread(self._write, path, payload)
        except OSError as exc:
            log_error("Failed to save session", exc)
            raise StorageError("Failed to save session") from exc

    async def load(self, session_id: str) -> SessionState | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, ValidationError, ValueError) as exc:
            log_error("Failed to load session", exc)
            raise StorageError("Failed to load session") from exc

    async def delete(self, session_id: str) -> None:
        path = self._path(session_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError("Failed to delete session") from exc

    async def list_sessions(self, user_id: str | None = None) -> list[str]:
        states = await self.all_sessions()
        return [s.session_id for s in states if not user_id or s.user_id == user_id]

    async def all_sessions(self) -> list[SessionState]:
        states = []
        try:
            paths = sorted(self._root.glob("*.json"))
        except OSError as exc:
            raise StorageError("Failed to list sessions") from exc
        for path in paths:
            try:
                states.append(await asyncio.to_thread(self._read, path))
            except (OSError, ValidationError, ValueError) as exc:
                log_error(f"Skipping unreadable session file {path.name}", exc)
        return states
