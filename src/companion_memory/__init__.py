"""
Companion Memory - memory and tone bookkeeping for a conversational assistant

Classifies the tone of each user message, groups turns into time-windowed
sessions, keeps a confidence-ranked set of facts per user with contradiction
quarantine, tracks interests, and compacts long sessions into summaries.
"""

from .config import EngineConfig
from .engine import MemoryEngine, PostProcessReport, build_engine
from .exceptions import (
    GenerationError,
    GenerationUnavailableError,
    MemorySystemError,
    StorageError,
    ValidationError,
)
from .models import (
    Contradiction,
    ConversationSummary,
    Fact,
    FactCategory,
    Memory,
    MemorySnapshot,
    Message,
    Role,
    Session,
    Tone,
    TurnContext,
    UserPreferences,
    UserProfile,
)
from .tone import ToneClassifier
from .topics import extract_topics

__all__ = [
    "EngineConfig",
    "MemoryEngine",
    "PostProcessReport",
    "build_engine",
    "GenerationError",
    "GenerationUnavailableError",
    "MemorySystemError",
    "StorageError",
    "ValidationError",
    "Contradiction",
    "ConversationSummary",
    "Fact",
    "FactCategory",
    "Memory",
    "MemorySnapshot",
    "Message",
    "Role",
    "Session",
    "Tone",
    "TurnContext",
    "UserPreferences",
    "UserProfile",
    "ToneClassifier",
    "extract_topics",
]
