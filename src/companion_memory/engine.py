"""Memory Engine - facade the route layer talks to.

One engine is built at process start (``build_engine``) and handed to the
route layer; there is no module-level singleton.

Request path:
    handle_turn -> (tone, memory snapshot, recent context)
    record_turn -> append the user/assistant pair to the active session

Out of band, after the reply has been sent:
    post_process_turn -> fact extraction -> memory update
                      -> topic/preference update
                      -> probabilistic session compaction
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from loguru import logger

from .compactor import CompactionReport, Compactor
from .config import EngineConfig
from .exceptions import ValidationError
from .extraction import FactExtractor
from .generation import GenerationClient, OpenAIGenerationClient
from .memory_store import MemoryStore
from .models import (
    Memory,
    MemorySnapshot,
    Message,
    Role,
    Session,
    Tone,
    TurnContext,
    UserProfile,
    utcnow,
)
from .profile_store import ProfileStore
from .session_store import SessionStore
from .storage import DocumentStore, create_document_store
from .tone import ToneClassifier
from .topics import extract_topics
from .workers import BackgroundWorkerPool


@dataclass
class PostProcessReport:
    """What one background post-processing run did."""

    facts_extracted: int = 0
    topics: list[str] = field(default_factory=list)
    compaction: CompactionReport | None = None
    errors: list[str] = field(default_factory=list)


def _require(field_name: str, value: str | None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(field_name, "must be a non-empty string")
    return value


class MemoryEngine:
    """Orchestrates tone, session, memory and compaction components."""

    def __init__(
        self,
        store: DocumentStore,
        client: GenerationClient | None = None,
        config: EngineConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the engine.

        Args:
            store: Document store shared by all components
            client: Generation collaborator (None disables extraction and
                makes compaction use the placeholder summary)
            config: Engine configuration (defaults if not provided)
            rng: Random source for the compaction trigger
            clock: Wall-clock source
        """
        self.config = config or EngineConfig()
        self.store = store
        self.client = client
        self._rng = rng or random.Random()

        self.tone = ToneClassifier()
        self.profiles = ProfileStore(store, self.config.memory, clock)
        self.memories = MemoryStore(store, self.profiles, self.config.memory, clock)
        self.sessions = SessionStore(store, self.config.session, clock)
        self.extractor = FactExtractor(
            client,
            min_length=self.config.memory.min_fact_length,
            timeout=self.config.generation.timeout_seconds,
        )
        self.compactor = Compactor(
            self.sessions,
            self.memories,
            client,
            self.config.compaction,
            self.config.generation,
        )
        self.workers = BackgroundWorkerPool(self.config.workers)

        logger.info(
            f"MemoryEngine initialized: backend={self.config.storage.backend}, "
            f"generation={'on' if client is not None else 'off'}"
        )

    async def start(self) -> None:
        await self.workers.start()

    async def close(self) -> None:
        await self.workers.stop()
        await self.store.close()
        logger.info("MemoryEngine closed")

    async def get_memory_snapshot(self, user_id: str) -> MemorySnapshot:
        """Profile plus long-term memory, creating both on first contact."""
        _require("user_id", user_id)
        memory = await self.memories.get_or_create(user_id)
        profile = await self.profiles.get_or_create(user_id)
        return MemorySnapshot(
            user_id=user_id,
            name=profile.name,
            preferences=profile.preferences,
            personality_notes=profile.personality_notes,
            facts=memory.facts,
            recent_summaries=memory.conversation_summaries[-self.config.memory.snapshot_summaries:],
            contradictions=memory.contradictions,
        )

    async def get_user_memory(self, user_id: str) -> tuple[UserProfile, Memory]:
        """Profile and the complete Memory record, creating both if absent."""
        _require("user_id", user_id)
        memory = await self.memories.get_or_create(user_id)
        profile = await self.profiles.get_or_create(user_id)
        return profile, memory

    async def handle_turn(self, user_id: str, message: str) -> TurnContext:
        """Gather everything needed to build the reply prompt."""
        _require("user_id", user_id)
        _require("message", message)

        snapshot = await self.get_memory_snapshot(user_id)
        tone = self.tone.detect_tone(message)
        context = await self.sessions.recent_context(user_id)

        previous_tone = next(
            (m.tone for m in reversed(context) if m.role == Role.USER and m.tone),
            None,
        )
        tone_shift = self.tone.detect_tone_shift(tone, previous_tone)
        if tone_shift:
            logger.debug(f"Tone shift for {user_id}: {previous_tone} -> {tone.value}")

        return TurnContext(tone=tone, tone_shift=tone_shift, memory=snapshot, context=context)

    async def record_turn(
        self,
        user_id: str,
        user_message: str,
        assistant_message: str,
        tone: str | None = None,
    ) -> Session:
        _require("user_id", user_id)
        _require("user_message", user_message)
        return await self.sessions.append_turn(user_id, user_message, assistant_message, tone)

    async def set_user_name(self, user_id: str, name: str) -> UserProfile:
        """Set the profile name and upsert the matching personal fact."""
        _require("user_id", user_id)
        _require("name", name)
        profile = await self.profiles.set_name(user_id, name)
        await self.memories.set_name_fact(user_id, name)
        logger.info(f"Name set for {user_id}")
        return profile

    async def post_process_turn(
        self,
        user_id: str,
        user_message: str,
        assistant_message: str,
        tone: str | None = None,
    ) -> PostProcessReport:
        """Background pipeline for one turn.

        Each step is isolated: a failure is logged and recorded in the report
        and the following steps still run.
        """
        report = PostProcessReport()
        conversation = [
            Message(role=Role.USER, content=user_message),
            Message(role=Role.ASSISTANT, content=assistant_message),
        ]

        try:
            facts = await self.extractor.extract(conversation)
            report.facts_extracted = len(facts)
            if facts:
                await self.memories.update_memory(user_id, facts)
        except Exception as e:
            report.errors.append(f"memory_update: {e}")
            logger.error(f"Memory update failed for {user_id}: {e}")

        try:
            report.topics = extract_topics(f"{user_message} {assistant_message}")
            if report.topics or (tone and tone != Tone.NEUTRAL):
                await self.profiles.update_preferences(user_id, report.topics, tone)
        except Exception as e:
            report.errors.append(f"preferences: {e}")
            logger.error(f"Preference update failed for {user_id}: {e}")

        compaction = self.config.compaction
        if compaction.enabled and self._rng.random() < compaction.probability:
            try:
                report.compaction = await self.compactor.compress_old_sessions(user_id)
            except Exception as e:
                report.errors.append(f"compaction: {e}")
                logger.error(f"Compaction failed for {user_id}: {e}")

        return report

    def schedule_post_processing(
        self,
        user_id: str,
        user_message: str,
        assistant_message: str,
        tone: str | None = None,
    ) -> bool:
        """Queue ``post_process_turn`` on the worker pool without waiting."""
        return self.workers.submit(
            f"post_process:{user_id}",
            lambda: self.post_process_turn(user_id, user_message, assistant_message, tone),
        )


async def build_engine(
    config: EngineConfig | None = None,
    store: DocumentStore | None = None,
    client: GenerationClient | None = None,
) -> MemoryEngine:
    """Construct the engine from configuration.

    Without an explicit client an OpenAI-compatible one is built; when it has
    no credentials the engine runs with generation disabled.
    """
    config = config or EngineConfig()
    if store is None:
        store = await create_document_store(config.storage)
    if client is None:
        openai_client = OpenAIGenerationClient(config.generation)
        client = openai_client if openai_client.available else None
    return MemoryEngine(store, client, config)
