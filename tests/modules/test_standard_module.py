"""
Tests for the vector-backed memory module: write path, read path and the
delete cascade into the central index and the relationship store.
"""

from unittest.mock import AsyncMock

import pytest

from memhub.models.relationships import MemoryRef
from memhub.utils.exceptions import (
    CentralIndexError,
    EmbeddingInputError,
    ModuleError,
    SyncError,
    ValidationError,
    VectorStoreError,
)


@pytest.mark.integration
@pytest.mark.asyncio
class TestStore:
    async def test_store_writes_partition_and_index(self, build_module, central_index):
        module = await build_module("work", default_type="task")

        result = await module.store("u1", "Sprint review with the payments team on Monday")

        assert result.module_id == "work"
        assert result.indexed is True
        assert result.warnings == []
        memory = await module.store_backend.get_memory("u1", result.memory_id)
        assert memory.metadata["type"] == "task"
        entry = await central_index.get_entry("work", result.memory_id)
        assert entry.owner_id == "u1"
        assert entry.title == "Sprint review with the payments team on Monday"
        assert "payments" in entry.keywords
        assert entry.importance_score == pytest.approx(0.5)

    async def test_store_keeps_caller_type(self, build_module):
        module = await build_module("work", default_type="task")

        result = await module.store("u1", "Quarterly goals", {"type": "goal", "priority": 2})
        memory = await module.store_backend.get_memory("u1", result.memory_id)

        assert memory.metadata == {"type": "goal", "priority": 2}

    async def test_store_uses_metadata_importance(self, build_module, central_index):
        module = await build_module("work")

        result = await module.store("u1", "Launch checklist", {"importance_score": 0.9})

        entry = await central_index.get_entry("work", result.memory_id)
        assert entry.importance_score == pytest.approx(0.9)

    async def test_store_validates_input(self, build_module):
        module = await build_module("work")

        with pytest.raises(ValidationError):
            await module.store("", "content")
        with pytest.raises(ValidationError):
            await module.store("u1", "   ")
        with pytest.raises(ValidationError, match="metadata"):
            await module.store("u1", "content", {"nested": {"a": 1}})

    async def test_embedding_failure_stores_nothing(self, build_module):
        module = await build_module("work")
        module.gateway.embed = AsyncMock(side_effect=EmbeddingInputError("rejected"))

        with pytest.raises(EmbeddingInputError):
            await module.store("u1", "content")

        assert await module.count("u1") == 0

    async def test_index_failure_is_a_warning(self, build_module, central_index):
        module = await build_module("work")
        central_index.upsert = AsyncMock(side_effect=CentralIndexError("index down"))

        result = await module.store("u1", "Still stored")

        assert result.indexed is False
        assert "index down" in result.warnings[0]
        assert await module.store_backend.get_memory("u1", result.memory_id) is not None

    async def test_partition_failure_is_module_error(self, build_module):
        module = await build_module("work")
        module.store_backend.upsert_memory = AsyncMock(side_effect=VectorStoreError("disk full"))

        with pytest.raises(ModuleError) as exc_info:
            await module.store("u1", "content")

        assert exc_info.value.code == "STORE_ERROR"
        assert exc_info.value.module_id == "work"


@pytest.mark.integration
@pytest.mark.asyncio
class TestReadUpdate:
    async def test_get_tracks_access(self, build_module):
        module = await build_module("personal")
        result = await module.store("u1", "Favourite tea is genmaicha")

        first = await module.get("u1", result.memory_id)
        second = await module.get("u1", result.memory_id)

        assert first.access_count == 1
        assert second.access_count == 2
        assert second.last_accessed is not None

    async def test_get_keeps_concurrent_update(self, build_module):
        module = await build_module("personal")
        result = await module.store("u1", "Favourite tea is genmaicha")
        backend = module.store_backend
        load = backend.get_memory
        interleaved = False

        async def load_then_update(owner_id, memory_id):
            # An update lands between get()'s read and its access write
            nonlocal interleaved
            memory = await load(owner_id, memory_id)
            if not interleaved:
                interleaved = True
                await module.update(owner_id, memory_id, content="Favourite tea is sencha")
            return memory

        backend.get_memory = load_then_update
        stale = await module.get("u1", result.memory_id)
        backend.get_memory = load

        current = await module.get("u1", result.memory_id)
        assert stale.content == "Favourite tea is genmaicha"
        assert current.content == "Favourite tea is sencha"
        assert current.access_count == 2

    async def test_get_other_owner(self, build_module):
        module = await build_module("personal")
        result = await module.store("u1", "Private note")

        assert await module.get("u2", result.memory_id) is None

    async def test_update_content_reembeds_and_reindexes(self, build_module, central_index):
        module = await build_module("personal")
        result = await module.store("u1", "Gym on Tuesday")
        before = await module.store_backend.get_memory("u1", result.memory_id)

        assert await module.update("u1", result.memory_id, content="Swimming on Thursday")

        after = await module.store_backend.get_memory("u1", result.memory_id)
        entry = await central_index.get_entry("personal", result.memory_id)
        assert after.content == "Swimming on Thursday"
        assert after.embedding != before.embedding
        assert entry.title == "Swimming on Thursday"

    async def test_update_metadata_merges(self, build_module):
        module = await build_module("personal")
        result = await module.store("u1", "Book club", {"genre": "sci-fi"})

        await module.update("u1", result.memory_id, metadata={"day": "friday"})

        memory = await module.store_backend.get_memory("u1", result.memory_id)
        assert memory.metadata["genre"] == "sci-fi"
        assert memory.metadata["day"] == "friday"

    async def test_update_missing(self, build_module):
        module = await build_module("personal")

        assert await module.update("u1", "mem_missing", content="x") is False

    async def test_search(self, build_module):
        module = await build_module("personal")
        await module.store("u1", "Grandma birthday dinner in October")
        await module.store("u1", "Car insurance renewal paperwork")
        await module.store("u2", "Grandma birthday dinner in October")

        results = await module.search("u1", "grandma birthday", limit=5)

        assert results[0].memory.content == "Grandma birthday dinner in October"
        assert all(r.memory.owner_id == "u1" for r in results)
        assert len(results) == 2

    async def test_search_rejects_bad_input(self, build_module):
        module = await build_module("personal")

        with pytest.raises(ValidationError):
            await module.search("u1", "")
        with pytest.raises(ValidationError):
            await module.search_by_embedding("u1", [0.0], limit=0)

    async def test_stats(self, build_module):
        module = await build_module("work", default_type="task")
        first = await module.store("u1", "Write quarterly report")
        await module.store("u1", "Plan offsite", {"type": "event"})
        await module.get("u1", first.memory_id)

        stats = await module.stats("u1")

        assert stats.total_memories == 2
        assert stats.average_access_count == pytest.approx(0.5)
        assert set(stats.most_frequent_types) == {"task", "event"}
        assert stats.last_accessed is not None

    async def test_stats_empty(self, build_module):
        module = await build_module("work")

        stats = await module.stats("u1")

        assert stats.total_memories == 0
        assert stats.module_id == "work"

    async def test_health_check(self, build_module):
        module = await build_module("work")

        assert await module.health_check() is True


@pytest.mark.integration
@pytest.mark.asyncio
class TestDeleteCascade:
    async def test_delete_removes_entry_and_edges(
        self, build_module, central_index, relationship_store
    ):
        technical = await build_module("technical", kind="technical")
        work = await build_module("work")
        m1 = await technical.store("u1", "Rotate the API keys")
        m2 = await work.store("u1", "Security review meeting")
        await relationship_store.link(
            "u1",
            MemoryRef(module_id="technical", memory_id=m1.memory_id),
            MemoryRef(module_id="work", memory_id=m2.memory_id),
            "related",
            0.8,
        )

        assert await technical.delete("u1", m1.memory_id) is True

        assert await technical.get("u1", m1.memory_id) is None
        assert await central_index.get_entry("technical", m1.memory_id) is None
        related = await relationship_store.related_to(
            "u1", "work", m2.memory_id, direction="both"
        )
        assert related == []

    async def test_delete_missing(self, build_module):
        module = await build_module("work")

        assert await module.delete("u1", "mem_missing") is False

    async def test_delete_other_owner(self, build_module, central_index):
        module = await build_module("work")
        result = await module.store("u1", "Owned by u1")

        assert await module.delete("u2", result.memory_id) is False
        assert await central_index.get_entry("work", result.memory_id) is not None

    async def test_cascade_retries_transient_failure(self, build_module, central_index):
        module = await build_module("work")
        result = await module.store("u1", "Flaky cleanup")
        central_index.remove = AsyncMock(side_effect=[CentralIndexError("busy"), None])

        assert await module.delete("u1", result.memory_id) is True
        assert central_index.remove.await_count == 2

    async def test_cascade_failure_raises_sync_error_and_registers_orphan(
        self, build_module, central_index
    ):
        module = await build_module("work")
        result = await module.store("u1", "Cleanup will fail")
        orphans = []
        module.orphan_handler = lambda module_id, memory_id: orphans.append((module_id, memory_id))
        central_index.remove = AsyncMock(side_effect=CentralIndexError("index down"))

        with pytest.raises(SyncError):
            await module.delete("u1", result.memory_id)

        assert orphans == [("work", result.memory_id)]
        # The memory itself is gone
        assert await module.store_backend.get_memory("u1", result.memory_id) is None
