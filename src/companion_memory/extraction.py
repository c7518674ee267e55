"""Fact extraction from a conversation transcript.

The generation collaborator is asked for a JSON array of short fact strings.
Output that is not valid JSON falls back to bullet-like lines. Strings shorter
than the configured minimum are discarded. Any generation failure yields an
empty list.
"""

from __future__ import annotations

import json
import re

from loguru import logger

from .exceptions import GenerationError
from .generation import GenerationClient, generate_with_deadline
from .models import Message, Role

EXTRACTION_PROMPT = """\
Extract factual information about the user from this conversation. Focus on:
- Personal facts (name, age, location, occupation, hobbies)
- Preferences (likes, dislikes, interests)
- Important events or situations mentioned
- Personality traits or characteristics

Conversation:
{conversation}

Return ONLY a JSON array of facts, each as a string. Example:
["User's name is John", "User likes anime", "User works as a software engineer"]

Do NOT include facts that are uncertain or speculative. Only extract clear, stated facts."""

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")
_BULLET_PREFIX = re.compile(r"^[-•]\s*")


class FactExtractor:
    """Turns user utterances into candidate fact strings."""

    def __init__(
        self,
        client: GenerationClient | None = None,
        min_length: int = 6,
        timeout: float | None = 30.0,
    ):
        """Initialize extractor.

        Args:
            client: Generation collaborator; None means extraction is a no-op
            min_length: Shortest fact string kept
            timeout: Deadline for the generation call in seconds
        """
        self._client = client
        self._min_length = min_length
        self._timeout = timeout

    def format_conversation(self, messages: list[Message]) -> str:
        """Only the user's side of the conversation is sent for extraction."""
        return "\n".join(m.content for m in messages if m.role == Role.USER)

    async def extract(self, messages: list[Message]) -> list[str]:
        if self._client is None:
            return []

        conversation = self.format_conversation(messages)
        if not conversation.strip():
            return []

        prompt = EXTRACTION_PROMPT.format(conversation=conversation)
        try:
            raw = await generate_with_deadline(self._client, prompt, self._timeout)
        except GenerationError as e:
            logger.warning(f"Fact extraction failed: {e}")
            return []

        facts = self.parse_response(raw)
        logger.debug(f"Extracted {len(facts)} facts")
        return facts

    def parse_response(self, raw: str) -> list[str]:
        """Parse generation output into fact strings.

        The first ``[...]`` span is read as JSON. When there is none, or it
        does not parse to a list, lines starting with ``-`` or ``•`` are used.
        """
        text = raw.strip()
        candidates: list = []

        match = _JSON_ARRAY.search(text)
        parsed = None
        if match:
            try:
                parsed = json.loads(match.group(0))
            except json.JSONDecodeError as e:
                logger.debug(f"Extraction output is not valid JSON: {e}")

        if isinstance(parsed, list):
            candidates = parsed
        else:
            candidates = [
                _BULLET_PREFIX.sub("", line.strip()).strip()
                for line in text.splitlines()
                if line.strip().startswith(("-", "•"))
            ]

        return [
            c.strip()
            for c in candidates
            if isinstance(c, str) and len(c.strip()) >= self._min_length
        ]
