"""Short-term session transcripts.

All sessions of a user live in one session-list document keyed by user id.
The active session is the one with the most recent ``updated_at``; once it
has been idle for longer than the configured timeout the next turn opens a
new session instead of extending it.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

from loguru import logger

from .config import SessionConfig
from .models import Message, Role, Session, Tone, utcnow
from .storage.interfaces import SESSIONS, DocumentStore


class SessionStore:
    """Reads and writes the per-user session list."""

    def __init__(
        self,
        store: DocumentStore,
        config: SessionConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._config = config or SessionConfig()
        self._clock = clock

    @property
    def idle_timeout(self) -> timedelta:
        return timedelta(seconds=self._config.idle_timeout_seconds)

    async def _load_all(self, user_id: str) -> list[Session]:
        doc = await self._store.find(SESSIONS, user_id)
        if doc is None:
            return []
        return [Session.model_validate(s) for s in doc.get("sessions", [])]

    async def _save_all(self, user_id: str, sessions: list[Session]) -> None:
        doc: dict[str, Any] = {
            "user_id": user_id,
            "sessions": [s.model_dump(mode="json") for s in sessions],
        }
        await self._store.upsert(SESSIONS, user_id, doc)

    @staticmethod
    def _latest(sessions: list[Session]) -> Session | None:
        if not sessions:
            return None
        return max(sessions, key=lambda s: s.updated_at)

    async def get_active_session(self, user_id: str) -> Session | None:
        """The most recently updated session, or None."""
        return self._latest(await self._load_all(user_id))

    async def list_sessions(
        self,
        user_id: str,
        compressed: bool | None = None,
        limit: int | None = None,
        newest_first: bool = True,
    ) -> list[Session]:
        """Sessions ordered by creation time.

        Args:
            user_id: Owner
            compressed: Filter on ``is_compressed`` (None keeps all)
            limit: Maximum number of sessions returned
            newest_first: Order newest-created first
        """
        sessions = await self._load_all(user_id)
        if compressed is not None:
            sessions = [s for s in sessions if s.is_compressed == compressed]
        sessions.sort(key=lambda s: s.created_at, reverse=newest_first)
        if limit is not None:
            sessions = sessions[:limit]
        return sessions

    async def save_session(self, session: Session, touch: bool = True) -> Session:
        """Replace one session inside the user's session list."""
        if touch:
            session.updated_at = self._clock()
        sessions = await self._load_all(session.user_id)
        for i, existing in enumerate(sessions):
            if existing.id == session.id:
                sessions[i] = session
                break
        else:
            sessions.append(session)
        await self._save_all(session.user_id, sessions)
        return session

    async def append_turn(
        self,
        user_id: str,
        user_message: str,
        assistant_message: str,
        tone: str | None = None,
    ) -> Session:
        """Append a user/assistant pair to the active session.

        A session idle for longer than the timeout is left alone and a new
        session is started.
        """
        now = self._clock()
        sessions = await self._load_all(user_id)
        session = self._latest(sessions)

        if session is not None and now - session.updated_at > self.idle_timeout:
            logger.debug(
                f"Session {session.id} idle since {session.updated_at.isoformat()}, "
                f"starting a new one for {user_id}"
            )
            session = None

        if session is None:
            session = Session(user_id=user_id, created_at=now, updated_at=now)
            sessions.append(session)
            logger.info(f"Session started: {session.id} (user={user_id})")

        tone_value = tone.value if isinstance(tone, Tone) else tone
        session.messages.append(
            Message(role=Role.USER, content=user_message, timestamp=now, tone=tone_value)
        )
        session.messages.append(
            Message(role=Role.ASSISTANT, content=assistant_message, timestamp=now)
        )
        session.updated_at = now

        await self._save_all(user_id, sessions)
        return session

    async def recent_context(self, user_id: str, limit: int | None = None) -> list[Message]:
        """The last ``limit`` messages of the active session, oldest first."""
        if limit is None:
            limit = self._config.context_limit
        if limit <= 0:
            return []
        session = await self.get_active_session(user_id)
        if session is None:
            return []
        return session.messages[-limit:]

    async def history(self, user_id: str, limit: int = 50) -> list[Message]:
        """Chat history view of the active session."""
        return await self.recent_context(user_id, limit=limit)
