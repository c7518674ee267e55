"""User profile persistence and preference tracking."""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from loguru import logger

from .config import MemoryLimitsConfig
from .models import Tone, UserProfile, utcnow
from .storage.interfaces import PROFILES, DocumentStore


class ProfileStore:
    """Reads and writes UserProfile documents keyed by user id."""

    def __init__(
        self,
        store: DocumentStore,
        limits: MemoryLimitsConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._limits = limits or MemoryLimitsConfig()
        self._clock = clock

    async def load(self, user_id: str) -> UserProfile | None:
        doc = await self._store.find(PROFILES, user_id)
        return UserProfile.model_validate(doc) if doc is not None else None

    async def save(self, profile: UserProfile) -> UserProfile:
        profile.updated_at = self._clock()
        await self._store.upsert(PROFILES, profile.user_id, profile.model_dump(mode="json"))
        return profile

    async def get_or_create(self, user_id: str) -> UserProfile:
        """Fetch the profile, creating and persisting an empty one if absent."""
        profile = await self.load(user_id)
        if profile is not None:
            return profile

        now = self._clock()
        profile = UserProfile(user_id=user_id, created_at=now, updated_at=now)
        await self.save(profile)
        logger.info(f"Created new profile: {user_id}")
        return profile

    async def update_preferences(
        self,
        user_id: str,
        topics: list[str],
        tone: str | None,
    ) -> UserProfile:
        """Record the latest tone and append newly seen interests.

        Interests are capped FIFO: the oldest-inserted entries are evicted
        first once the cap is exceeded.
        """
        profile = await self.get_or_create(user_id)
        prefs = profile.preferences

        if tone and tone != Tone.NEUTRAL:
            prefs.tone = tone.value if isinstance(tone, Tone) else tone

        for topic in topics:
            if topic not in prefs.interests:
                prefs.interests.append(topic)

        overflow = len(prefs.interests) - self._limits.max_interests
        if overflow > 0:
            del prefs.interests[:overflow]

        await self.save(profile)
        logger.debug(
            f"Preferences updated for {user_id}: tone={prefs.tone}, "
            f"interests={len(prefs.interests)}"
        )
        return profile

    async def set_name(self, user_id: str, name: str) -> UserProfile:
        profile = await self.get_or_create(user_id)
        profile.name = name
        return await self.save(profile)
