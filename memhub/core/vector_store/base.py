"""
Base interface for module partition storage.

A partition holds the full memories (content, full embedding, metadata) of
one module for every owner. Every read and write is scoped by owner.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from memhub.models.memory import Memory, ScoredMemory


class VectorStore(ABC):
    """Abstract base class for vector storage implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Initialize the vector store (create collections/indices).

        Raises:
            VectorStoreError: If initialization fails
        """
        pass

    @abstractmethod
    async def upsert_memory(self, memory: Memory) -> None:
        """
        Store or update a memory with its embedding.

        Raises:
            ValidationError: If memory is invalid
            VectorStoreError: If upsert operation fails
        """
        pass

    @abstractmethod
    async def get_memory(self, owner_id: str, memory_id: str) -> Memory | None:
        """
        Retrieve one of the owner's memories.

        Returns:
            Memory or None if the owner has no such memory
        """
        pass

    @abstractmethod
    async def touch_memory(
        self, owner_id: str, memory_id: str, access_count: int, last_accessed: datetime
    ) -> None:
        """Overwrite only the access fields of a stored memory."""
        pass

    @abstractmethod
    async def delete_memory(self, owner_id: str, memory_id: str) -> bool:
        """
        Delete one of the owner's memories.

        Returns:
            True if a memory was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def search_similar(
        self,
        owner_id: str,
        vector: list[float],
        limit: int = 10,
        score_threshold: float | None = None,
    ) -> list[ScoredMemory]:
        """
        Search the owner's memories by vector.

        Returns:
            Results ordered by similarity desc, ties by last_accessed desc
        """
        pass

    @abstractmethod
    async def list_memory_ids(self, owner_id: str | None = None) -> list[tuple[str, str]]:
        """
        List (owner_id, memory_id) pairs, optionally for one owner.

        Used by reconciliation, which needs to walk every owner.
        """
        pass

    @abstractmethod
    async def list_memories(self, owner_id: str, limit: int = 1000) -> list[Memory]:
        """List the owner's memories without vectors."""
        pass

    @abstractmethod
    async def count_memories(self, owner_id: str | None = None) -> int:
        """Count memories, optionally for one owner."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the connection to the vector store."""
        pass
