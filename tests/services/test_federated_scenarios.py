"""
End-to-end federated search scenarios over a fully local hub.
"""

import pytest

from memhub.models.relationships import MemoryRef

TLS_NOTE = "TLS certificate for api.example.com expires on 2025-03-01"


@pytest.mark.integration
@pytest.mark.asyncio
class TestFederatedScenarios:
    async def test_query_lands_in_owning_module(self, hub):
        await hub.store("u1", "Grandma birthday dinner on Sunday", module_id="personal")
        await hub.store("u1", "Sprint planning for the billing squad", module_id="work")
        tls = await hub.store("u1", TLS_NOTE, module_id="technical")

        response = await hub.federated_search("u1", "when does the certificate expire")

        top = response.results[0]
        assert top.module_id == "technical"
        assert top.memory.id == tls.memory_id
        assert top.indexed is True
        assert "technical" in response.searched_modules
        assert response.routing[0].module_id == "technical"
        assert response.failed_modules == []

    async def test_search_records_index_access(self, hub):
        tls = await hub.store("u1", TLS_NOTE, module_id="technical")

        await hub.federated_search("u1", "certificate expires", limit=1)

        entry = await hub.index.get_entry("technical", tls.memory_id)
        assert entry.access_count == 1
        assert entry.last_accessed is not None

    async def test_owner_isolation(self, hub):
        await hub.store("u1", "Passport renewal appointment", module_id="personal")
        await hub.store("u2", "Passport renewal appointment", module_id="personal")

        response = await hub.federated_search("u1", "passport renewal")

        assert len(response.results) == 1
        assert all(r.memory.owner_id == "u1" for r in response.results)

    async def test_linked_results_are_boosted(self, hub):
        tech = await hub.store(
            "u1", "Rotate the TLS certificate on the gateway", module_id="technical"
        )
        work = await hub.store("u1", "Certificate rotation meeting with platform", module_id="work")
        await hub.link(
            "u1",
            MemoryRef(module_id="technical", memory_id=tech.memory_id),
            MemoryRef(module_id="work", memory_id=work.memory_id),
            "follow_up",
            0.9,
        )

        boosted = await hub.federated_search("u1", "certificate rotation")
        plain = await hub.federated_search("u1", "certificate rotation", use_relationships=False)

        assert {r.breakdown.relationship for r in boosted.results} == {0.9}
        assert {r.breakdown.relationship for r in plain.results} == {0.0}

    async def test_stale_entry_dropped_during_search(self, hub):
        result = await hub.store("u1", "Quarterly budget review", module_id="work")
        # Remove the memory behind the index's back
        await hub.registry.get("work").store_backend.delete_memory("u1", result.memory_id)

        response = await hub.federated_search("u1", "Quarterly budget review")

        assert response.results == []
        assert response.stale_dropped == 1
        assert response.degraded is True
        assert await hub.index.get_entry("work", result.memory_id) is None

    async def test_deleted_memory_disappears_everywhere(self, hub):
        keep = await hub.store("u1", "Dentist appointment next week", module_id="personal")
        gone = await hub.store("u1", "Dentist invoice paid", module_id="personal")
        await hub.link(
            "u1",
            MemoryRef(module_id="personal", memory_id=keep.memory_id),
            MemoryRef(module_id="personal", memory_id=gone.memory_id),
        )

        assert await hub.delete("u1", "personal", gone.memory_id) is True

        response = await hub.federated_search("u1", "dentist")
        assert [r.memory.id for r in response.results] == [keep.memory_id]
        assert await hub.related_to("u1", "personal", keep.memory_id) == []

    async def test_module_filter(self, hub):
        await hub.store("u1", "Certificate course on cloud security", module_id="learning")
        await hub.store("u1", TLS_NOTE, module_id="technical")

        response = await hub.federated_search("u1", "certificate", module_filter=["learning"])

        assert {r.module_id for r in response.results} == {"learning"}
        assert response.searched_modules == ["learning"]

    async def test_repeated_search_keeps_order(self, hub):
        await hub.store("u1", "Pay the electricity bill before Friday", module_id="personal")
        await hub.store("u1", "Electricity usage report for the office", module_id="work")
        await hub.store("u1", "Notes on how electricity grids balance load", module_id="learning")
        await hub.store("u1", "Friday standup moved to the morning", module_id="work")

        first = await hub.federated_search("u1", "electricity bill", limit=10)
        second = await hub.federated_search("u1", "electricity bill", limit=10)

        order = [(r.module_id, r.memory.id) for r in first.results]
        assert order
        assert order == [(r.module_id, r.memory.id) for r in second.results]
