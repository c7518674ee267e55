"""Tests for the document store backends."""

from __future__ import annotations

import json

import pytest
import pytest_asyncio

from companion_memory.config import StorageConfig
from companion_memory.exceptions import StorageError
from companion_memory.memory_store import MemoryStore
from companion_memory.profile_store import ProfileStore
from companion_memory.storage import (
    InMemoryDocumentStore,
    JsonDocumentStore,
    SQLiteDocumentStore,
    create_document_store,
)


@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = SQLiteDocumentStore(db_path=str(tmp_path / "test.db"))
    await store.initialize()
    yield store
    await store.close()


# ---------------------------------------------------------------------------
# Shared behaviour
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(params=["memory", "json", "sqlite"])
async def any_store(request, tmp_path):
    if request.param == "memory":
        store = InMemoryDocumentStore()
    elif request.param == "json":
        store = JsonDocumentStore(tmp_path / "docs")
    else:
        store = SQLiteDocumentStore(db_path=str(tmp_path / "docs.db"))
        await store.initialize()
    yield store
    await store.close()


class TestDocumentStoreContract:
    @pytest.mark.asyncio
    async def test_missing_document(self, any_store):
        assert await any_store.find("profiles", "nobody") is None

    @pytest.mark.asyncio
    async def test_upsert_then_find(self, any_store):
        await any_store.upsert("profiles", "u1", {"user_id": "u1", "name": "Sam"})
        assert await any_store.find("profiles", "u1") == {"user_id": "u1", "name": "Sam"}

    @pytest.mark.asyncio
    async def test_upsert_replaces(self, any_store):
        await any_store.upsert("profiles", "u1", {"name": "Sam"})
        await any_store.upsert("profiles", "u1", {"name": "Samuel"})
        assert await any_store.find("profiles", "u1") == {"name": "Samuel"}

    @pytest.mark.asyncio
    async def test_collections_are_separate(self, any_store):
        await any_store.upsert("profiles", "u1", {"kind": "profile"})
        await any_store.upsert("memories", "u1", {"kind": "memory"})
        assert (await any_store.find("profiles", "u1"))["kind"] == "profile"
        assert (await any_store.find("memories", "u1"))["kind"] == "memory"

    @pytest.mark.asyncio
    async def test_keys(self, any_store):
        await any_store.upsert("sessions", "b", {})
        await any_store.upsert("sessions", "a", {})
        assert sorted(await any_store.keys("sessions")) == ["a", "b"]
        assert await any_store.keys("profiles") == []

    @pytest.mark.asyncio
    async def test_similar_keys_are_distinct(self, any_store):
        await any_store.upsert("memories", "alice/bob", {"owner": "alice/bob"})
        assert await any_store.find("memories", "alice_bob") is None

        await any_store.upsert("memories", "alice_bob", {"owner": "alice_bob"})
        assert (await any_store.find("memories", "alice/bob"))["owner"] == "alice/bob"

    @pytest.mark.asyncio
    async def test_returned_document_is_a_copy(self, any_store):
        await any_store.upsert("profiles", "u1", {"tags": ["a"]})
        doc = await any_store.find("profiles", "u1")
        doc["tags"].append("b")
        assert (await any_store.find("profiles", "u1"))["tags"] == ["a"]


# ---------------------------------------------------------------------------
# JSON backend
# ---------------------------------------------------------------------------


class TestJsonDocumentStore:
    @pytest.mark.asyncio
    async def test_layout_and_backup(self, tmp_path):
        store = JsonDocumentStore(tmp_path)
        await store.upsert("profiles", "u1", {"v": 1})
        await store.upsert("profiles", "u1", {"v": 2})

        path = store._get_document_path("profiles", "u1")
        assert path.parent == tmp_path / "profiles"
        assert json.loads(path.read_text(encoding="utf-8")) == {"key": "u1", "document": {"v": 2}}
        backup = json.loads(path.with_suffix(".json.bak").read_text(encoding="utf-8"))
        assert backup["document"] == {"v": 1}
        assert not path.with_suffix(".json.tmp").exists()

    @pytest.mark.asyncio
    async def test_recovers_from_backup(self, tmp_path):
        store = JsonDocumentStore(tmp_path)
        await store.upsert("profiles", "u1", {"v": 1})
        await store.upsert("profiles", "u1", {"v": 2})
        store._get_document_path("profiles", "u1").write_text("{not json", encoding="utf-8")

        assert await store.find("profiles", "u1") == {"v": 1}

    @pytest.mark.asyncio
    async def test_corrupted_without_backup_raises(self, tmp_path):
        store = JsonDocumentStore(tmp_path, create_backup=False)
        await store.upsert("profiles", "u1", {"v": 1})
        store._get_document_path("profiles", "u1").write_text("{not json", encoding="utf-8")

        with pytest.raises(StorageError):
            await store.find("profiles", "u1")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "first,second",
        [
            ("alice/bob", "alice_bob"),
            ("alice bob", "alice_bob"),
            ("Alice", "alice"),
            ("x" * 200 + "a", "x" * 200 + "b"),
        ],
    )
    async def test_distinct_keys_never_share_a_file(self, tmp_path, first, second):
        store = JsonDocumentStore(tmp_path)
        await store.upsert("memories", first, {"owner": first})
        await store.upsert("memories", second, {"owner": second})

        assert store._get_document_path("memories", first) != store._get_document_path(
            "memories", second
        )
        assert (await store.find("memories", first))["owner"] == first
        assert (await store.find("memories", second))["owner"] == second
        assert sorted(await store.keys("memories")) == sorted([first, second])

    @pytest.mark.asyncio
    async def test_unsafe_key_stays_inside_collection(self, tmp_path):
        store = JsonDocumentStore(tmp_path)
        await store.upsert("profiles", "../../etc/passwd", {"v": 1})

        path = store._get_document_path("profiles", "../../etc/passwd")
        assert path.parent == tmp_path / "profiles"
        assert await store.find("profiles", "../../etc/passwd") == {"v": 1}

    @pytest.mark.asyncio
    async def test_users_with_similar_ids_keep_separate_memories(self, tmp_path):
        docs = JsonDocumentStore(tmp_path)
        profiles = ProfileStore(docs)
        memories = MemoryStore(docs, profiles)

        await memories.update_memory("alice/bob", ["User likes secret recipes"])
        other = await memories.get_or_create("alice_bob")

        assert other.user_id == "alice_bob"
        assert other.facts == []
        assert (await memories.load("alice/bob")).facts[0].text == "User likes secret recipes"


# ---------------------------------------------------------------------------
# SQLite backend
# ---------------------------------------------------------------------------


class TestSQLiteDocumentStore:
    @pytest.mark.asyncio
    async def test_uninitialized_raises(self, tmp_path):
        store = SQLiteDocumentStore(db_path=str(tmp_path / "x.db"))
        with pytest.raises(StorageError):
            await store.find("profiles", "u1")

    @pytest.mark.asyncio
    async def test_persists_across_connections(self, tmp_path):
        db_path = str(tmp_path / "persist.db")
        store = SQLiteDocumentStore(db_path=db_path)
        await store.initialize()
        await store.upsert("memories", "u1", {"facts": ["x"]})
        await store.close()

        reopened = SQLiteDocumentStore(db_path=db_path)
        await reopened.initialize()
        assert await reopened.find("memories", "u1") == {"facts": ["x"]}
        await reopened.close()

    @pytest.mark.asyncio
    async def test_unicode_roundtrip(self, sqlite_store):
        await sqlite_store.upsert("profiles", "u1", {"name": "사용자"})
        assert (await sqlite_store.find("profiles", "u1"))["name"] == "사용자"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestCreateDocumentStore:
    @pytest.mark.asyncio
    async def test_memory_backend(self):
        store = await create_document_store(StorageConfig(backend="memory"))
        assert isinstance(store, InMemoryDocumentStore)

    @pytest.mark.asyncio
    async def test_json_backend(self, tmp_path):
        store = await create_document_store(
            StorageConfig(backend="json", json_path=str(tmp_path / "docs"))
        )
        assert isinstance(store, JsonDocumentStore)

    @pytest.mark.asyncio
    async def test_sqlite_backend_is_initialized(self, tmp_path):
        store = await create_document_store(
            StorageConfig(backend="sqlite", sqlite_db_path=str(tmp_path / "f.db"))
        )
        await store.upsert("profiles", "u1", {"ok": True})
        assert await store.find("profiles", "u1") == {"ok": True}
        await store.close()
