"""Companion memory data models.

Plain versioned records. Nothing here mutates itself on save: every store
method sets ``updated_at`` explicitly as part of the write.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

SCHEMA_VERSION = 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _uuid() -> str:
    return uuid4().hex


class Tone(str, Enum):
    SAD = "sad"
    EXCITED = "excited"
    SARCASTIC = "sarcastic"
    ANGRY = "angry"
    PLAYFUL = "playful"
    FORMAL = "formal"
    CASUAL = "casual"
    NEUTRAL = "neutral"


class FactCategory(str, Enum):
    PERSONAL = "personal"
    PREFERENCE = "preference"
    INTEREST = "interest"
    GENERAL = "general"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Fact(BaseModel):
    """A short statement about the user with a mention-driven confidence."""

    text: str
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    last_mentioned: datetime = Field(default_factory=utcnow)
    category: FactCategory = FactCategory.GENERAL


class Contradiction(BaseModel):
    """A candidate fact quarantined because it clashes with stored facts.

    ``resolution`` is never filled in automatically.
    """

    text: str
    conflicting_with: list[str] = Field(default_factory=list)
    date: datetime = Field(default_factory=utcnow)
    resolution: str | None = None


class ConversationSummary(BaseModel):
    """Summary of one compacted session."""

    summary: str
    date: datetime = Field(default_factory=utcnow)
    key_topics: list[str] = Field(default_factory=list)


class Memory(BaseModel):
    """Long-term memory record, one per user."""

    user_id: str
    facts: list[Fact] = Field(default_factory=list)
    conversation_summaries: list[ConversationSummary] = Field(default_factory=list)
    contradictions: list[Contradiction] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    schema_version: int = SCHEMA_VERSION

    def find_fact(self, text: str) -> Fact | None:
        """Return the stored fact matching ``text`` case-insensitively."""
        needle = text.lower()
        for fact in self.facts:
            if fact.text.lower() == needle:
                return fact
        return None


class Message(BaseModel):
    """A single transcript message."""

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=utcnow)
    tone: str | None = None


class Session(BaseModel):
    """A time-windowed run of user/assistant turns (a "chat")."""

    id: str = Field(default_factory=_uuid)
    user_id: str
    messages: list[Message] = Field(default_factory=list)
    summary: str | None = None
    is_compressed: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    schema_version: int = SCHEMA_VERSION


class UserPreferences(BaseModel):
    tone: str | None = None
    interests: list[str] = Field(default_factory=list)
    likes: list[str] = Field(default_factory=list)
    dislikes: list[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    """Per-user profile, created lazily on first interaction."""

    user_id: str
    name: str | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    personality_notes: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    schema_version: int = SCHEMA_VERSION


class MemorySnapshot(BaseModel):
    """What the route layer needs from long-term memory to build a prompt."""

    user_id: str
    name: str | None = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    personality_notes: list[str] = Field(default_factory=list)
    facts: list[Fact] = Field(default_factory=list)
    recent_summaries: list[ConversationSummary] = Field(default_factory=list)
    contradictions: list[Contradiction] = Field(default_factory=list)


class TurnContext(BaseModel):
    """Result of handling one inbound user message."""

    tone: Tone
    tone_shift: bool = False
    memory: MemorySnapshot
    context: list[Message] = Field(default_factory=list)
