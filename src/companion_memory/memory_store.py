"""Long-term memory bookkeeping: facts, contradictions, summaries.

Fact lifecycle:
- First mention creates a fact at the initial confidence.
- A repeated mention (case-insensitive exact text) bumps confidence by a
  fixed step, capped at 1.0, and refreshes ``last_mentioned``. Confidence is
  never lowered automatically.
- A candidate that lexically contradicts a stored fact is quarantined as a
  Contradiction and not stored as a fact.
- After each update facts are ranked by confidence and only the top
  ``max_facts`` are kept.

The contradiction rule is a coarse word-overlap heuristic, not negation
detection. It produces false positives ("User likes dogs" vs "User dislikes
cats" share "user") and misses anything phrased without like/dislike. It is
kept as-is for compatibility with existing memory records.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from loguru import logger

from .config import MemoryLimitsConfig
from .models import Contradiction, ConversationSummary, Fact, FactCategory, Memory, utcnow
from .profile_store import ProfileStore
from .storage.interfaces import MEMORIES, DocumentStore

# Evaluated in order; first hit wins.
CATEGORY_RULES: tuple[tuple[tuple[str, ...], FactCategory], ...] = (
    (("name", "called"), FactCategory.PERSONAL),
    (("like", "love", "enjoy"), FactCategory.PREFERENCE),
    (("dislike", "hate", "don't like"), FactCategory.PREFERENCE),
    (("work", "job", "occupation"), FactCategory.PERSONAL),
    (("interest", "hobby", "favorite"), FactCategory.INTEREST),
)


def categorize_fact(text: str) -> FactCategory:
    lower = text.lower()
    for keywords, category in CATEGORY_RULES:
        if any(keyword in lower for keyword in keywords):
            return category
    return FactCategory.GENERAL


def _shares_token(existing: str, candidate: str) -> bool:
    # Tokens of the stored fact, matched as substrings of the candidate.
    return any(word in candidate for word in existing.split(" "))


def is_contradiction(existing: str, candidate: str) -> bool:
    """Lexical like/dislike conflict between a stored fact and a candidate."""
    existing_lower = existing.lower()
    candidate_lower = candidate.lower()
    if "like" in existing_lower and "dislike" in candidate_lower:
        return _shares_token(existing_lower, candidate_lower)
    if "dislike" in existing_lower and "like" in candidate_lower:
        return _shares_token(existing_lower, candidate_lower)
    return False


class MemoryStore:
    """Owns per-user Memory documents.

    Every public method is one read plus one write of the user's memory
    document. There is no per-user lock: two concurrent updates for the same
    user can both read the same snapshot and the last writer wins.
    """

    def __init__(
        self,
        store: DocumentStore,
        profiles: ProfileStore,
        limits: MemoryLimitsConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._profiles = profiles
        self._limits = limits or MemoryLimitsConfig()
        self._clock = clock

    async def load(self, user_id: str) -> Memory | None:
        doc = await self._store.find(MEMORIES, user_id)
        return Memory.model_validate(doc) if doc is not None else None

    async def save(self, memory: Memory) -> Memory:
        memory.updated_at = self._clock()
        await self._store.upsert(MEMORIES, memory.user_id, memory.model_dump(mode="json"))
        return memory

    async def get_or_create(self, user_id: str) -> Memory:
        """Fetch the user's memory, creating it (and the profile) if absent.

        A new record is persisted immediately so later readers see a stable
        document.
        """
        await self._profiles.get_or_create(user_id)

        memory = await self.load(user_id)
        if memory is not None:
            return memory

        now = self._clock()
        memory = Memory(user_id=user_id, created_at=now, updated_at=now)
        await self.save(memory)
        logger.info(f"Created new memory record: {user_id}")
        return memory

    def categorize_fact(self, text: str) -> FactCategory:
        return categorize_fact(text)

    def _rank_and_cap(self, memory: Memory) -> None:
        memory.facts.sort(key=lambda f: f.confidence, reverse=True)
        dropped = len(memory.facts) - self._limits.max_facts
        if dropped > 0:
            del memory.facts[self._limits.max_facts:]
            logger.debug(f"Pruned {dropped} low-confidence facts for {memory.user_id}")

    async def update_memory(self, user_id: str, new_facts: list[str]) -> Memory:
        """Fold candidate fact strings into the user's memory.

        Args:
            user_id: Owner of the memory record
            new_facts: Candidate fact texts, processed in order

        Returns:
            The persisted Memory
        """
        memory = await self.load(user_id)
        if memory is None:
            memory = await self.get_or_create(user_id)

        now = self._clock()
        added = bumped = conflicted = 0

        for text in new_facts:
            existing = memory.find_fact(text)
            if existing is not None:
                existing.confidence = min(
                    round(existing.confidence + self._limits.confidence_step, 10), 1.0
                )
                existing.last_mentioned = now
                bumped += 1
                continue

            conflicting = [f.text for f in memory.facts if is_contradiction(f.text, text)]
            if conflicting:
                memory.contradictions.append(
                    Contradiction(text=text, conflicting_with=conflicting, date=now)
                )
                conflicted += 1
                logger.info(
                    f"Contradiction recorded for {user_id}: {text!r} vs {conflicting}"
                )
                continue

            memory.facts.append(
                Fact(
                    text=text,
                    confidence=self._limits.initial_confidence,
                    last_mentioned=now,
                    category=categorize_fact(text),
                )
            )
            added += 1

        self._rank_and_cap(memory)
        await self.save(memory)

        logger.debug(
            f"Memory updated for {user_id}: added={added}, bumped={bumped}, "
            f"contradictions={conflicted}, total={len(memory.facts)}"
        )
        return memory

    async def append_summary(
        self,
        user_id: str,
        summary: str,
        key_topics: list[str],
        date: datetime | None = None,
    ) -> Memory:
        """Append a ConversationSummary, keeping only the most recent ones."""
        memory = await self.get_or_create(user_id)
        memory.conversation_summaries.append(
            ConversationSummary(summary=summary, date=date or self._clock(), key_topics=key_topics)
        )
        overflow = len(memory.conversation_summaries) - self._limits.max_summaries
        if overflow > 0:
            del memory.conversation_summaries[:overflow]
        return await self.save(memory)

    async def set_name_fact(self, user_id: str, name: str) -> Memory:
        """Overwrite (or add) the personal fact carrying the user's name."""
        memory = await self.get_or_create(user_id)
        text = f"User's name is {name}"
        now = self._clock()

        name_fact = next((f for f in memory.facts if "name" in f.text.lower()), None)
        if name_fact is not None:
            name_fact.text = text
            name_fact.confidence = 1.0
            name_fact.last_mentioned = now
            name_fact.category = FactCategory.PERSONAL
        else:
            memory.facts.append(
                Fact(text=text, confidence=1.0, last_mentioned=now, category=FactCategory.PERSONAL)
            )

        self._rank_and_cap(memory)
        return await self.save(memory)
