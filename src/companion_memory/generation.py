"""Generation collaborator: prompt in, text out.

Every call is fallible. Callers bound it with ``generate_with_deadline`` and
fall back to a degraded result instead of blocking.
"""

from __future__ import annotations

import asyncio
import os
from typing import Protocol, runtime_checkable

from loguru import logger
from openai import AsyncOpenAI, OpenAIError

from .config import GenerationConfig
from .exceptions import GenerationError, GenerationUnavailableError


@runtime_checkable
class GenerationClient(Protocol):
    """Anything that turns a prompt into text."""

    async def generate(self, prompt: str) -> str:
        ...


class OpenAIGenerationClient:
    """Generation through any OpenAI-compatible chat completions endpoint."""

    def __init__(self, config: GenerationConfig | None = None):
        self._config = config or GenerationConfig()
        api_key = self._config.api_key or os.getenv("OPENAI_API_KEY")
        self._client: AsyncOpenAI | None = None
        if api_key:
            self._client = AsyncOpenAI(api_key=api_key, base_url=self._config.base_url)
            logger.debug(
                f"OpenAI client initialized (base_url: {self._config.base_url}, "
                f"model: {self._config.model})"
            )
        else:
            logger.warning("No API key configured; generation is unavailable")

    @property
    def available(self) -> bool:
        return self._client is not None

    async def generate(self, prompt: str) -> str:
        if self._client is None:
            raise GenerationUnavailableError("Generation client has no API key")

        try:
            response = await self._client.chat.completions.create(
                model=self._config.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._config.temperature,
            )
        except OpenAIError as e:
            raise GenerationError(f"Generation request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationError("Generation returned an empty response")
        return content.strip()


async def generate_with_deadline(
    client: GenerationClient | None,
    prompt: str,
    timeout: float | None,
) -> str:
    """Call ``client.generate`` bounded by ``timeout`` seconds.

    Raises:
        GenerationUnavailableError: No client configured.
        GenerationError: The call failed or timed out.
    """
    if client is None:
        raise GenerationUnavailableError("No generation client configured")

    try:
        return await asyncio.wait_for(client.generate(prompt), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise GenerationError(f"Generation timed out after {timeout}s") from e
    except GenerationError:
        raise
    except Exception as e:
        raise GenerationError(f"Generation failed: {e}") from e
