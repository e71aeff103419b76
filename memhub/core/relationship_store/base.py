"""
Base interface for relationship storage.

Relationships are typed, directed, weighted edges between memories that
may live in different modules. Only single-hop lookups are part of the
store contract; multi-hop traversal is built on top in ``traversal``.
"""

from abc import ABC, abstractmethod
from typing import Any

from memhub.models.relationships import MemoryRef, RelatedMemory, Relationship

DIRECTIONS = ("outgoing", "incoming", "both")


class RelationshipStore(ABC):
    """Abstract base class for relationship store implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indexes if missing."""
        pass

    @abstractmethod
    async def link(
        self,
        owner_id: str,
        source: MemoryRef,
        target: MemoryRef,
        relationship_type: str = "related",
        strength: float = 0.5,
        metadata: dict[str, Any] | None = None,
    ) -> Relationship:
        """
        Create or update the edge source -> target of the given type.

        Raises:
            ValidationError: Self-link, empty type or strength outside [0, 1]
            RelationshipStoreError: If the write fails
        """
        pass

    @abstractmethod
    async def related_to(
        self,
        owner_id: str,
        module_id: str,
        memory_id: str,
        types: list[str] | None = None,
        direction: str = "both",
        limit: int = 100,
    ) -> list[RelatedMemory]:
        """
        Single-hop neighbours of a memory.

        Returns:
            Neighbours ordered by strength desc, then module, then memory id
        """
        pass

    @abstractmethod
    async def unlink(
        self,
        owner_id: str,
        source: MemoryRef,
        target: MemoryRef,
        relationship_type: str | None = None,
    ) -> int:
        """Remove edges source -> target (all types when type is None)."""
        pass

    @abstractmethod
    async def delete_for_memory(self, module_id: str, memory_id: str) -> int:
        """Remove every edge that has the memory as source or target."""
        pass

    @abstractmethod
    async def edges_among(
        self, owner_id: str, refs: list[MemoryRef]
    ) -> list[Relationship]:
        """Edges whose both endpoints are in refs."""
        pass

    @abstractmethod
    async def count(self, owner_id: str | None = None) -> int:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
