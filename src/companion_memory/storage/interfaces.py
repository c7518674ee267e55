"""
Document store interface.

Keyed JSON documents grouped into collections. Each call is one atomic
read or one atomic write of one document; there are no multi-document
transactions.
"""

from typing import Any, Protocol, runtime_checkable

PROFILES = "profiles"
MEMORIES = "memories"
SESSIONS = "sessions"

COLLECTIONS = (PROFILES, MEMORIES, SESSIONS)


@runtime_checkable
class DocumentStore(Protocol):
    """Generic keyed document store."""

    async def find(self, collection: str, key: str) -> dict[str, Any] | None:
        """
        Load one document.

        Args:
            collection: Collection name (profiles, memories, sessions)
            key: Document key, usually the user id

        Returns:
            The document, or None if absent
        """
        ...

    async def upsert(self, collection: str, key: str, doc: dict[str, Any]) -> None:
        """
        Insert or replace one document.

        Args:
            collection: Collection name
            key: Document key
            doc: JSON-serializable document body
        """
        ...

    async def keys(self, collection: str) -> list[str]:
        """List the keys stored in a collection."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...
