"""
JSON file document store.

Atomic writes (temp file + replace) with an optional ``.bak`` backup that is
used to recover from a corrupted document.

File names are derived from the key with a percent-encoded prefix for
readability plus a sha256 suffix, so distinct keys never share a file (also on
case-insensitive filesystems). The raw key is stored next to the document.
"""

import hashlib
import json
import re
import shutil
from pathlib import Path
from typing import Any
from urllib.parse import quote

from loguru import logger

from ..exceptions import StorageError

FILENAME_PREFIX_LENGTH = 64
FILENAME_HASH_LENGTH = 32


class JsonDocumentStore:
    """
    One JSON file per document.

    Layout:
        {base_path}/
        ├── profiles/
        │   └── {prefix}-{hash}.json
        ├── memories/
        │   └── {prefix}-{hash}.json
        └── sessions/
            └── {prefix}-{hash}.json

    Each file holds ``{"key": <raw key>, "document": <document>}``.
    """

    def __init__(
        self,
        base_path: str | Path,
        create_backup: bool = True,
        pretty_print: bool = True,
    ):
        """
        Args:
            base_path: Root directory for all collections
            create_backup: Keep a ``.bak`` copy of the previous version on save
            pretty_print: Indent JSON output
        """
        self._base_path = Path(base_path)
        self._create_backup = create_backup
        self._pretty_print = pretty_print

        self._base_path.mkdir(parents=True, exist_ok=True)

    def _get_collection_dir(self, collection: str) -> Path:
        collection_dir = self._base_path / self._sanitize_dirname(collection)
        collection_dir.mkdir(parents=True, exist_ok=True)
        return collection_dir

    def _get_document_path(self, collection: str, key: str) -> Path:
        return self._get_collection_dir(collection) / f"{self._key_filename(key)}.json"

    def _sanitize_dirname(self, name: str) -> str:
        # Collection names are fixed constants, not user input.
        return re.sub(r'[<>:"/\\|?*\s]', "_", name)

    def _key_filename(self, key: str) -> str:
        prefix = quote(key, safe="")[:FILENAME_PREFIX_LENGTH]
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:FILENAME_HASH_LENGTH]
        return f"{prefix}-{digest}"

    def _read(self, path: Path) -> dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    async def upsert(self, collection: str, key: str, doc: dict[str, Any]) -> None:
        """
        Save a document atomically.

        1. Write to a temp file
        2. Back up the existing file (optional)
        3. Replace the real file with the temp file
        """
        file_path = self._get_document_path(collection, key)
        temp_path = file_path.with_suffix(".json.tmp")
        backup_path = file_path.with_suffix(".json.bak")

        try:
            indent = 2 if self._pretty_print else None
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump({"key": key, "document": doc}, f, ensure_ascii=False, indent=indent)

            if self._create_backup and file_path.exists():
                shutil.copy2(file_path, backup_path)

            temp_path.replace(file_path)

            logger.debug(f"Document saved: {collection}:{key}")

        except Exception as e:
            if backup_path.exists() and not file_path.exists():
                try:
                    shutil.copy2(backup_path, file_path)
                    logger.info(f"Restored document from backup: {file_path}")
                except OSError as restore_error:
                    logger.error(f"Failed to restore from backup: {restore_error}")

            raise StorageError(
                f"Failed to save document: {e}",
                path=str(file_path),
            ) from e

        finally:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning(f"Could not remove temp file: {temp_path}")

    async def find(self, collection: str, key: str) -> dict[str, Any] | None:
        """Load a document, falling back to its backup if the file is corrupted."""
        file_path = self._get_document_path(collection, key)
        backup_path = file_path.with_suffix(".json.bak")

        if not file_path.exists():
            return None

        try:
            return self._read(file_path)["document"]

        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.error(f"Corrupted document file: {file_path}: {e}")

            if backup_path.exists():
                logger.info(f"Attempting to restore from backup: {backup_path}")
                try:
                    shutil.copy2(backup_path, file_path)
                    return self._read(file_path)["document"]
                except (OSError, json.JSONDecodeError, KeyError, TypeError) as restore_error:
                    logger.error(f"Failed to restore from backup: {restore_error}")

            raise StorageError(
                f"Corrupted file and no valid backup: {file_path}",
                path=str(file_path),
            ) from e

        except OSError as e:
            raise StorageError(
                f"Failed to load document: {e}",
                path=str(file_path),
            ) from e

    async def keys(self, collection: str) -> list[str]:
        """Raw keys of every readable document in the collection."""
        collection_dir = self._base_path / self._sanitize_dirname(collection)
        if not collection_dir.exists():
            return []

        keys = []
        for path in collection_dir.glob("*.json"):
            try:
                keys.append(self._read(path)["key"])
            except (OSError, json.JSONDecodeError, KeyError, TypeError) as e:
                logger.warning(f"Skipping unreadable document file {path}: {e}")
        return sorted(keys)

    async def close(self) -> None:
        pass
