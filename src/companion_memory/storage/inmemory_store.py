"""In-process document store for development and tests."""

from __future__ import annotations

import copy
from typing import Any


class InMemoryDocumentStore:
    """Dict-backed store. Documents are deep-copied on the way in and out so
    callers never share mutable state with the store."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    async def find(self, collection: str, key: str) -> dict[str, Any] | None:
        doc = self._collections.get(collection, {}).get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def upsert(self, collection: str, key: str, doc: dict[str, Any]) -> None:
        self._collections.setdefault(collection, {})[key] = copy.deepcopy(doc)

    async def keys(self, collection: str) -> list[str]:
        return list(self._collections.get(collection, {}))

    async def close(self) -> None:
        pass
