"""
Tests for the MemoryHub facade.
"""

import pytest

from memhub.config import ModuleConfig
from memhub.models.relationships import MemoryRef
from memhub.services.memory_hub import MemoryHub
from memhub.utils.exceptions import ValidationError


@pytest.mark.integration
@pytest.mark.asyncio
class TestMemoryOperations:
    async def test_store_routes_by_content(self, hub):
        result = await hub.store("u1", "Got a TypeError exception when calling the API")

        assert result.module_id == "technical"
        assert result.indexed is True

    async def test_store_honours_metadata_module(self, hub):
        result = await hub.store("u1", "Lunch with Sam", {"module_id": "work", "place": "cafe"})
        memory = await hub.get("u1", "work", result.memory_id)

        assert result.module_id == "work"
        # The routing hint is not persisted
        assert memory.metadata == {"place": "cafe", "type": "task"}

    async def test_store_rejects_unknown_module(self, hub):
        with pytest.raises(ValidationError, match="Unknown module"):
            await hub.store("u1", "content", module_id="finance")

    async def test_store_rejects_empty_content(self, hub):
        with pytest.raises(ValidationError):
            await hub.store("u1", "")

    async def test_crud_round_trip(self, hub):
        result = await hub.store("u1", "Pick up dry cleaning", module_id="personal")

        memory = await hub.get("u1", "personal", result.memory_id)
        assert memory.content == "Pick up dry cleaning"

        assert await hub.update("u1", "personal", result.memory_id, content="Pick up parcel")
        memory = await hub.get("u1", "personal", result.memory_id)
        assert memory.content == "Pick up parcel"

        assert await hub.delete("u1", "personal", result.memory_id) is True
        assert await hub.get("u1", "personal", result.memory_id) is None

    async def test_search_module(self, hub):
        await hub.store("u1", "Learned about Python generators", module_id="learning")
        await hub.store("u1", "Python generators in the parser", module_id="technical")

        results = await hub.search_module("u1", "learning", "python generators")

        assert len(results) == 1
        assert results[0].memory.module_id == "learning"


@pytest.mark.integration
@pytest.mark.asyncio
class TestRelationships:
    async def test_link_and_related_to(self, hub):
        a = await hub.store("u1", "Incident: checkout outage", module_id="work")
        b = await hub.store("u1", "Postmortem: connection pool exhausted", module_id="technical")
        source = MemoryRef(module_id="work", memory_id=a.memory_id)
        target = MemoryRef(module_id="technical", memory_id=b.memory_id)

        edge = await hub.link("u1", source, target, "caused_by", 0.8)
        related = await hub.related_to("u1", "work", a.memory_id)
        incoming = await hub.related_to("u1", "technical", b.memory_id, direction="incoming")

        assert edge.relationship_type == "caused_by"
        assert [(r.module_id, r.memory_id, r.strength) for r in related] == [
            ("technical", b.memory_id, 0.8)
        ]
        assert incoming[0].memory_id == a.memory_id

        assert await hub.unlink("u1", source, target) == 1
        assert await hub.related_to("u1", "work", a.memory_id) == []

    async def test_link_requires_known_modules(self, hub):
        with pytest.raises(ValidationError):
            await hub.link(
                "u1",
                MemoryRef(module_id="finance", memory_id="a"),
                MemoryRef(module_id="work", memory_id="b"),
            )

    async def test_neighbourhood(self, hub):
        refs = [MemoryRef(module_id="personal", memory_id=f"m{i}") for i in range(3)]
        await hub.link("u1", refs[0], refs[1])
        await hub.link("u1", refs[1], refs[2])

        reached = await hub.neighbourhood("u1", "personal", "m0", max_hops=2)

        assert [(r.memory_id, hop) for r, hop in reached] == [("m1", 1), ("m2", 2)]


@pytest.mark.integration
@pytest.mark.asyncio
class TestIntrospection:
    async def test_list_modules(self, hub):
        ids = [info.module_id for info in hub.list_modules()]

        assert ids == ["personal", "work", "technical", "learning", "communication", "creative"]

    async def test_module_stats(self, hub):
        await hub.store("u1", "Weekly sync notes", module_id="work")
        await hub.store("u1", "Roadmap review", module_id="work")
        await hub.store("u2", "Not counted", module_id="work")

        stats = await hub.module_stats("u1")

        work = stats["modules"]["work"]
        assert work["total_memories"] == 2
        assert work["indexed"] == 2
        assert work["avg_importance"] == pytest.approx(0.5)
        assert stats["modules"]["creative"]["total_memories"] == 0
        assert stats["modules"]["creative"]["avg_importance"] is None
        assert stats["index_entries"] == 2
        assert stats["relationships"] == 0

    async def test_module_stats_requires_owner(self, hub):
        with pytest.raises(ValidationError):
            await hub.module_stats(" ")

    async def test_health(self, hub):
        health = await hub.health()

        assert health["status"] == "healthy"
        assert health["central_index"] is True
        assert health["relationship_store"] is True
        assert set(health["modules"]) == {m.module_id for m in hub.config.modules}
        assert health["pending_orphans"] == 0


@pytest.mark.integration
@pytest.mark.asyncio
class TestLifecycle:
    async def test_inactive_module_is_skipped(self, test_config):
        test_config.modules = [
            ModuleConfig(module_id="personal", display_name="Personal"),
            ModuleConfig(module_id="archive", display_name="Archive", active=False),
        ]
        memory_hub = await MemoryHub.create(test_config)
        await memory_hub.initialize()
        try:
            with pytest.raises(ValidationError, match="inactive"):
                await memory_hub.store("u1", "old stuff", module_id="archive")

            stats = await memory_hub.module_stats("u1")
            assert list(stats["modules"]) == ["personal"]
        finally:
            await memory_hub.close()

    async def test_background_worker_started_when_enabled(self, test_config):
        test_config.reconciliation.enabled = True
        memory_hub = await MemoryHub.create(test_config)
        await memory_hub.initialize()

        worker = memory_hub.reconciler._worker_task
        assert worker is not None and not worker.done()

        await memory_hub.close()
        assert worker.done()

    async def test_small_embedding_indexes_at_full_size(self, test_config):
        test_config.embedder.dimension = 96
        test_config.embedder.index_dimension = 512
        memory_hub = await MemoryHub.create(test_config)
        await memory_hub.initialize()
        try:
            assert memory_hub.index.vector_size == 96
            assert memory_hub.gateway.index_dimension == 96

            result = await memory_hub.store("u1", "Renew the TLS certificate", module_id="work")
            response = await memory_hub.federated_search("u1", "TLS certificate")

            assert result.indexed is True
            assert result.warnings == []
            assert response.degraded is False
            assert response.routing[0].reason != "cold_index"
            assert response.results[0].memory.id == result.memory_id
        finally:
            await memory_hub.close()
