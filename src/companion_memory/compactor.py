"""Session compaction.

Folds long, not-yet-compressed sessions into a short summary, keeps only the
tail of the transcript, and records a ConversationSummary with key topics in
long-term memory. The transition is lossy and one-way.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from .config import CompactionConfig, GenerationConfig
from .exceptions import GenerationError
from .generation import GenerationClient, generate_with_deadline
from .memory_store import MemoryStore
from .models import Session
from .session_store import SessionStore
from .topics import extract_topics

SUMMARY_PROMPT = """\
Summarize this conversation in 2-3 sentences, focusing on:
- Key topics discussed
- Important facts about the user mentioned
- Main themes or interests

Conversation:
{conversation}

Summary:"""


@dataclass
class CompactionReport:
    examined: int = 0
    compacted: int = 0
    skipped: int = 0
    failed: int = 0


class Compactor:
    """Compresses old sessions for one user at a time."""

    def __init__(
        self,
        sessions: SessionStore,
        memories: MemoryStore,
        client: GenerationClient | None = None,
        config: CompactionConfig | None = None,
        generation_config: GenerationConfig | None = None,
    ):
        self._sessions = sessions
        self._memories = memories
        self._client = client
        self._config = config or CompactionConfig()
        self._timeout = (generation_config or GenerationConfig()).timeout_seconds

    @staticmethod
    def format_transcript(session: Session) -> str:
        return "\n".join(f"{m.role.value}: {m.content}" for m in session.messages)

    async def summarize(self, transcript: str) -> str:
        """Summary text, or the placeholder when generation is unavailable."""
        try:
            summary = await generate_with_deadline(
                self._client,
                SUMMARY_PROMPT.format(conversation=transcript),
                self._timeout,
            )
        except GenerationError as e:
            logger.warning(f"Summarization unavailable, using placeholder: {e}")
            return self._config.placeholder_summary
        return summary.strip() or self._config.placeholder_summary

    async def compress_session(self, session: Session) -> None:
        transcript = self.format_transcript(session)
        summary = await self.summarize(transcript)

        # Record the summary before truncating; if this fails the session stays
        # uncompressed and is picked up again by the next run.
        key_topics = extract_topics(transcript)
        await self._memories.append_summary(
            session.user_id, summary, key_topics, date=session.created_at
        )

        session.summary = summary
        session.is_compressed = True
        session.messages = session.messages[-self._config.keep_messages:]
        # Leave updated_at alone so compaction never changes which session is active.
        await self._sessions.save_session(session, touch=False)

    async def compress_old_sessions(
        self,
        user_id: str,
        batch_limit: int | None = None,
    ) -> CompactionReport:
        """Compact up to ``batch_limit`` uncompressed sessions, newest first.

        Sessions below the minimum message count are left untouched. A
        failure on one session is logged and does not stop the batch.
        """
        limit = batch_limit if batch_limit is not None else self._config.batch_limit
        candidates = await self._sessions.list_sessions(
            user_id, compressed=False, limit=limit, newest_first=True
        )

        report = CompactionReport(examined=len(candidates))
        for session in candidates:
            if len(session.messages) < self._config.min_messages:
                report.skipped += 1
                continue
            try:
                await self.compress_session(session)
                report.compacted += 1
            except Exception as e:
                report.failed += 1
                logger.error(f"Error compressing session {session.id} for {user_id}: {e}")

        if candidates:
            logger.info(
                f"Compaction for {user_id}: examined={report.examined}, "
                f"compacted={report.compacted}, skipped={report.skipped}, "
                f"failed={report.failed}"
            )
        return report
