"""Tests for MemoryStore: dedup, contradictions, ranking, summaries."""

from __future__ import annotations

import pytest

from companion_memory.memory_store import categorize_fact, is_contradiction
from companion_memory.models import FactCategory
from companion_memory.storage import MEMORIES, PROFILES


# ---------------------------------------------------------------------------
# get_or_create
# ---------------------------------------------------------------------------


class TestGetOrCreate:
    @pytest.mark.asyncio
    async def test_creates_and_persists(self, memories, store):
        memory = await memories.get_or_create("user-1")
        assert memory.facts == []
        assert await store.find(MEMORIES, "user-1") is not None

    @pytest.mark.asyncio
    async def test_creates_profile_alongside(self, memories, store):
        await memories.get_or_create("user-1")
        assert await store.find(PROFILES, "user-1") is not None

    @pytest.mark.asyncio
    async def test_returns_existing(self, memories):
        await memories.update_memory("user-1", ["User likes dogs"])
        memory = await memories.get_or_create("user-1")
        assert [f.text for f in memory.facts] == ["User likes dogs"]


# ---------------------------------------------------------------------------
# update_memory
# ---------------------------------------------------------------------------


class TestUpdateMemory:
    @pytest.mark.asyncio
    async def test_new_fact_starts_at_half(self, memories):
        memory = await memories.update_memory("u", ["User works as a nurse"])
        assert len(memory.facts) == 1
        assert memory.facts[0].confidence == 0.5
        assert memory.facts[0].category == FactCategory.PERSONAL

    @pytest.mark.asyncio
    async def test_repeat_mention_bumps_confidence(self, memories, clock):
        await memories.update_memory("u", ["User likes dogs"])
        clock.advance(minutes=5)
        memory = await memories.update_memory("u", ["user likes DOGS"])

        assert len(memory.facts) == 1
        assert memory.facts[0].confidence == pytest.approx(0.6)
        assert memory.facts[0].last_mentioned == clock.now
        assert memory.facts[0].text == "User likes dogs"

    @pytest.mark.asyncio
    async def test_confidence_caps_at_one(self, memories):
        for _ in range(8):
            memory = await memories.update_memory("u", ["User likes dogs"])
        assert memory.facts[0].confidence == 1.0

    @pytest.mark.asyncio
    async def test_contradiction_is_quarantined(self, memories):
        await memories.update_memory("u", ["User likes dogs"])
        memory = await memories.update_memory("u", ["User dislikes dogs"])

        assert [f.text for f in memory.facts] == ["User likes dogs"]
        assert len(memory.contradictions) == 1
        contradiction = memory.contradictions[0]
        assert contradiction.text == "User dislikes dogs"
        assert contradiction.conflicting_with == ["User likes dogs"]
        assert contradiction.resolution is None

    @pytest.mark.asyncio
    async def test_dislike_pizza_not_stored_as_fact(self, memories):
        await memories.update_memory("u", ["User likes pizza"])
        memory = await memories.update_memory("u", ["User dislikes pizza"])

        assert memory.find_fact("User dislikes pizza") is None
        assert memory.contradictions[0].text == "User dislikes pizza"

    @pytest.mark.asyncio
    async def test_contradiction_lists_every_conflict(self, memories):
        await memories.update_memory("u", ["User likes dogs", "User likes hiking"])
        memory = await memories.update_memory("u", ["User dislikes dogs"])
        assert memory.contradictions[0].conflicting_with == [
            "User likes dogs",
            "User likes hiking",
        ]

    @pytest.mark.asyncio
    async def test_unrelated_facts_do_not_conflict(self, memories):
        memory = await memories.update_memory("u", ["User works as a nurse", "Lives in Oslo"])
        assert len(memory.facts) == 2
        assert memory.contradictions == []

    @pytest.mark.asyncio
    async def test_caps_at_fifty_by_confidence(self, memories):
        await memories.update_memory("u", ["Repeated favourite fact"])
        await memories.update_memory("u", ["Repeated favourite fact"])
        memory = await memories.update_memory(
            "u", [f"Fact number {i:02d} about user" for i in range(60)]
        )

        assert len(memory.facts) == 50
        assert memory.facts[0].text == "Repeated favourite fact"
        confidences = [f.confidence for f in memory.facts]
        assert confidences == sorted(confidences, reverse=True)
        # Stable sort keeps insertion order among ties: the last ones are dropped.
        assert memory.facts[-1].text == "Fact number 48 about user"

    @pytest.mark.asyncio
    async def test_updated_at_is_set(self, memories, clock):
        await memories.get_or_create("u")
        clock.advance(hours=1)
        memory = await memories.update_memory("u", ["User likes tea"])
        assert memory.updated_at == clock.now

    @pytest.mark.asyncio
    async def test_empty_batch_still_persists(self, memories, store):
        await memories.update_memory("u", [])
        assert await store.find(MEMORIES, "u") is not None


# ---------------------------------------------------------------------------
# Heuristics
# ---------------------------------------------------------------------------


class TestHeuristics:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("User's name is Sam", FactCategory.PERSONAL),
            ("User is called Sammy by friends", FactCategory.PERSONAL),
            ("User loves pizza", FactCategory.PREFERENCE),
            ("User hates rain", FactCategory.PREFERENCE),
            ("User works as an engineer", FactCategory.PERSONAL),
            ("User's favorite color is blue", FactCategory.INTEREST),
            ("User is 25 years old", FactCategory.GENERAL),
        ],
    )
    def test_categorize(self, text, expected):
        assert categorize_fact(text) == expected

    def test_like_vs_dislike_with_shared_word(self):
        assert is_contradiction("User likes dogs", "User dislikes dogs") is True

    def test_dislike_vs_like(self):
        assert is_contradiction("User dislikes cats", "User likes cats now") is True

    def test_shared_word_false_positive_is_preserved(self):
        # "user" is shared; the rule does not look at the object.
        assert is_contradiction("User likes dogs", "User dislikes cats") is True

    def test_no_like_keywords(self):
        assert is_contradiction("User is tall", "User is short") is False


# ---------------------------------------------------------------------------
# Summaries and name fact
# ---------------------------------------------------------------------------


class TestSummariesAndName:
    @pytest.mark.asyncio
    async def test_summaries_keep_last_ten(self, memories):
        for i in range(12):
            memory = await memories.append_summary("u", f"summary {i}", ["music"])
        assert len(memory.conversation_summaries) == 10
        assert memory.conversation_summaries[0].summary == "summary 2"
        assert memory.conversation_summaries[-1].summary == "summary 11"

    @pytest.mark.asyncio
    async def test_name_fact_added(self, memories):
        memory = await memories.set_name_fact("u", "Sam")
        fact = memory.facts[0]
        assert fact.text == "User's name is Sam"
        assert fact.confidence == 1.0
        assert fact.category == FactCategory.PERSONAL

    @pytest.mark.asyncio
    async def test_name_fact_overwritten(self, memories):
        await memories.update_memory("u", ["User's name is Samuel", "User likes tea"])
        memory = await memories.set_name_fact("u", "Sam")
        texts = [f.text for f in memory.facts]
        assert texts.count("User's name is Sam") == 1
        assert "User's name is Samuel" not in texts
        assert memory.facts[0].text == "User's name is Sam"
