"""SQLite document store.

Documents are stored as JSON text in a single ``documents`` table keyed by
(collection, key), using aiosqlite for async access.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
from loguru import logger

from ..exceptions import StorageError


class SQLiteDocumentStore:
    """SQLite-backed document store.

    Uses WAL mode for concurrent reads. ``initialize()`` must be awaited
    before use; ``close()`` releases the connection.
    """

    def __init__(self, db_path: str = "./memory/companion.db"):
        """Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._db: aiosqlite.Connection | None = None
        logger.info(f"SQLiteDocumentStore initialized with db_path: {db_path}")

    async def initialize(self) -> None:
        """Open the connection and create the documents table."""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

        try:
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    collection TEXT NOT NULL,
                    doc_key TEXT NOT NULL,
                    body TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    PRIMARY KEY (collection, doc_key)
                )
            """)
            await self._db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to initialize database: {e}", path=self.db_path) from e

        logger.info("SQLite document store initialized successfully")

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError("SQLiteDocumentStore is not initialized", path=self.db_path)
        return self._db

    async def find(self, collection: str, key: str) -> dict[str, Any] | None:
        db = self._conn()
        try:
            async with db.execute(
                "SELECT body FROM documents WHERE collection = ? AND doc_key = ?",
                (collection, key),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to load document {collection}:{key}: {e}", path=self.db_path) from e

        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupted document {collection}:{key}", path=self.db_path) from e

    async def upsert(self, collection: str, key: str, doc: dict[str, Any]) -> None:
        db = self._conn()
        now = datetime.now(timezone.utc).isoformat()
        try:
            await db.execute(
                """
                INSERT INTO documents (collection, doc_key, body, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(collection, doc_key)
                DO UPDATE SET body = excluded.body, updated_at = excluded.updated_at
                """,
                (collection, key, json.dumps(doc, ensure_ascii=False), now),
            )
            await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(f"Failed to save document {collection}:{key}: {e}", path=self.db_path) from e
        logger.debug(f"Document saved: {collection}:{key}")

    async def keys(self, collection: str) -> list[str]:
        db = self._conn()
        async with db.execute(
            "SELECT doc_key FROM documents WHERE collection = ? ORDER BY doc_key",
            (collection,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None
            logger.info("SQLiteDocumentStore closed")
