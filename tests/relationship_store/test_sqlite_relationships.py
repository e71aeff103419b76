"""
Tests for the SQLite relationship store and bounded traversal.
"""

import pytest

from memhub.core.relationship_store.traversal import walk_related
from memhub.models.relationships import MemoryRef
from memhub.utils.exceptions import ValidationError


def ref(module_id: str, memory_id: str) -> MemoryRef:
    return MemoryRef(module_id=module_id, memory_id=memory_id)


M1 = ref("technical", "m1")
M2 = ref("work", "m2")
M3 = ref("personal", "m3")


@pytest.mark.integration
@pytest.mark.asyncio
class TestSQLiteRelationshipStore:
    """Test relationship CRUD."""

    async def test_link_and_related_to(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)

        related = await relationship_store.related_to("u1", "technical", "m1")

        assert len(related) == 1
        assert related[0].module_id == "work"
        assert related[0].memory_id == "m2"
        assert related[0].relationship_type == "related"
        assert related[0].strength == pytest.approx(0.8)
        assert related[0].direction == "outgoing"

    async def test_link_returns_relationship(self, relationship_store):
        edge = await relationship_store.link("u1", M1, M2, "follows", 0.3, {"note": "x"})

        assert edge.id.startswith("rel_")
        assert edge.source == M1
        assert edge.target == M2
        assert edge.metadata == {"note": "x"}

    async def test_relink_updates_strength(self, relationship_store):
        first = await relationship_store.link("u1", M1, M2, "related", 0.2)
        second = await relationship_store.link("u1", M1, M2, "related", 0.9)

        assert second.id == first.id
        assert second.strength == pytest.approx(0.9)
        assert await relationship_store.count("u1") == 1

    async def test_distinct_types_are_distinct_edges(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.5)
        await relationship_store.link("u1", M1, M2, "caused_by", 0.5)

        assert await relationship_store.count("u1") == 2

    async def test_self_link_rejected(self, relationship_store):
        with pytest.raises(ValidationError, match="itself"):
            await relationship_store.link("u1", M1, M1)

    async def test_empty_type_rejected(self, relationship_store):
        with pytest.raises(ValidationError):
            await relationship_store.link("u1", M1, M2, "  ")

    async def test_strength_out_of_range(self, relationship_store):
        with pytest.raises(ValidationError):
            await relationship_store.link("u1", M1, M2, "related", 1.5)

    async def test_directions(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M3, M1, "mentions", 0.4)

        outgoing = await relationship_store.related_to(
            "u1", "technical", "m1", direction="outgoing"
        )
        incoming = await relationship_store.related_to(
            "u1", "technical", "m1", direction="incoming"
        )
        both = await relationship_store.related_to("u1", "technical", "m1", direction="both")

        assert [(r.memory_id, r.direction) for r in outgoing] == [("m2", "outgoing")]
        assert [(r.memory_id, r.direction) for r in incoming] == [("m3", "incoming")]
        assert [(r.memory_id, r.direction) for r in both] == [
            ("m2", "outgoing"),
            ("m3", "incoming"),
        ]

    async def test_default_direction_is_both(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M3, M1, "mentions", 0.4)

        related = await relationship_store.related_to("u1", "technical", "m1")

        assert [(r.memory_id, r.direction) for r in related] == [
            ("m2", "outgoing"),
            ("m3", "incoming"),
        ]

    async def test_invalid_direction(self, relationship_store):
        with pytest.raises(ValidationError):
            await relationship_store.related_to("u1", "technical", "m1", direction="sideways")

    async def test_type_filter_and_ordering(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.3)
        await relationship_store.link("u1", M1, M3, "related", 0.9)
        await relationship_store.link("u1", M1, ref("work", "m4"), "blocks", 1.0)

        related = await relationship_store.related_to("u1", "technical", "m1", types=["related"])

        assert [r.memory_id for r in related] == ["m3", "m2"]

    async def test_limit(self, relationship_store):
        for i in range(5):
            await relationship_store.link("u1", M1, ref("work", f"w{i}"), "related", 0.5)

        related = await relationship_store.related_to("u1", "technical", "m1", limit=2)

        # Equal strength: ordered by module then memory id
        assert [r.memory_id for r in related] == ["w0", "w1"]

    async def test_owner_isolation(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)

        assert await relationship_store.related_to("u2", "technical", "m1") == []

    async def test_unlink(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M1, M2, "blocks", 0.8)

        assert await relationship_store.unlink("u1", M1, M2, "blocks") == 1
        assert await relationship_store.count("u1") == 1
        assert await relationship_store.unlink("u1", M1, M2) == 1
        assert await relationship_store.count("u1") == 0

    async def test_delete_for_memory(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M3, M1, "mentions", 0.4)
        await relationship_store.link("u1", M2, M3, "related", 0.4)

        removed = await relationship_store.delete_for_memory("technical", "m1")

        assert removed == 2
        assert await relationship_store.count() == 1

    async def test_edges_among(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M2, M3, "related", 0.4)
        await relationship_store.link("u1", M1, ref("work", "outside"), "related", 1.0)

        edges = await relationship_store.edges_among("u1", [M1, M2, M3])

        assert [(e.source, e.target) for e in edges] == [(M1, M2), (M2, M3)]
        assert await relationship_store.edges_among("u1", [M1]) == []


@pytest.mark.integration
@pytest.mark.asyncio
class TestWalkRelated:
    """Test multi-hop traversal."""

    async def test_two_hops(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M2, M3, "related", 0.6)
        await relationship_store.link("u1", M3, ref("creative", "m4"), "related", 0.6)

        found = await walk_related(relationship_store, "u1", M1, max_hops=2)

        assert [(r.memory_id, hop) for r, hop in found] == [("m2", 1), ("m3", 2)]

    async def test_cycle_terminates(self, relationship_store):
        await relationship_store.link("u1", M1, M2, "related", 0.8)
        await relationship_store.link("u1", M2, M1, "related", 0.8)

        found = await walk_related(relationship_store, "u1", M1, max_hops=5)

        assert [(r.memory_id, hop) for r, hop in found] == [("m2", 1)]

    async def test_limit_and_zero_hops(self, relationship_store):
        for i in range(4):
            await relationship_store.link("u1", M1, ref("work", f"w{i}"), "related", 0.5)

        assert len(await walk_related(relationship_store, "u1", M1, limit=2)) == 2
        assert await walk_related(relationship_store, "u1", M1, max_hops=0) == []
