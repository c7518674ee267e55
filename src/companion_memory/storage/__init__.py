"""Document store backends for the companion memory engine."""

from __future__ import annotations

from ..config import StorageConfig
from .inmemory_store import InMemoryDocumentStore
from .interfaces import COLLECTIONS, MEMORIES, PROFILES, SESSIONS, DocumentStore
from .json_store import JsonDocumentStore
from .sqlite_store import SQLiteDocumentStore


async def create_document_store(config: StorageConfig) -> DocumentStore:
    """Build and initialize the configured backend."""
    if config.backend == "memory":
        return InMemoryDocumentStore()
    if config.backend == "sqlite":
        store = SQLiteDocumentStore(db_path=config.sqlite_db_path)
        await store.initialize()
        return store
    return JsonDocumentStore(config.json_path)


__all__ = [
    "COLLECTIONS",
    "MEMORIES",
    "PROFILES",
    "SESSIONS",
    "DocumentStore",
    "InMemoryDocumentStore",
    "JsonDocumentStore",
    "SQLiteDocumentStore",
    "create_document_store",
]
