"""
Memory module contract.

A module owns one topic partition of every user's memories. The rest of
the system talks to modules only through this interface: the router and
the federated search never look inside a partition directly.
"""

from abc import ABC, abstractmethod
from typing import Any

from memhub.models.memory import Memory, ScoredMemory
from memhub.models.module import ModuleInfo, ModuleStats
from memhub.models.search import StoreResult


class MemoryModule(ABC):
    """
    Abstract base for memory modules.

    Every operation is scoped by ``owner_id`` and never reads or writes
    another owner's data.
    """

    @property
    @abstractmethod
    def info(self) -> ModuleInfo:
        """Static module descriptor."""
        pass

    @property
    def module_id(self) -> str:
        return self.info.module_id

    @abstractmethod
    async def initialize(self) -> None:
        pass

    @abstractmethod
    async def store(
        self, owner_id: str, content: str, metadata: dict[str, Any] | None = None
    ) -> StoreResult:
        """
        Persist a new memory and index it.

        A failed index write does not undo the store; it is reported in
        ``StoreResult.warnings``.

        Raises:
            ValidationError: Empty owner/content or malformed metadata
            EmbeddingError: Embedding failed, nothing stored
            ModuleError: The partition write failed
        """
        pass

    @abstractmethod
    async def get(self, owner_id: str, memory_id: str) -> Memory | None:
        """Fetch a memory and record the access; None if missing."""
        pass

    @abstractmethod
    async def update(
        self,
        owner_id: str,
        memory_id: str,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Update content and/or metadata; False if the memory does not exist."""
        pass

    @abstractmethod
    async def delete(self, owner_id: str, memory_id: str) -> bool:
        """
        Delete a memory together with its index entry and relationships.

        Raises:
            SyncError: The memory is gone but derived rows could not be removed
        """
        pass

    @abstractmethod
    async def search(
        self,
        owner_id: str,
        query_text: str,
        limit: int = 10,
        min_score: float | None = None,
    ) -> list[ScoredMemory]:
        """Similarity search over the module's own partition."""
        pass

    @abstractmethod
    async def search_by_embedding(
        self,
        owner_id: str,
        embedding: list[float],
        limit: int = 10,
        min_score: float | None = None,
    ) -> list[ScoredMemory]:
        """Similarity search with a precomputed full embedding."""
        pass

    @abstractmethod
    async def reindex(self, owner_id: str, memory_id: str) -> bool:
        """Rebuild the index entry of a memory; False if the memory is gone."""
        pass

    @abstractmethod
    async def list_memory_ids(self, owner_id: str | None = None) -> list[tuple[str, str]]:
        """(owner_id, memory_id) pairs stored in this module."""
        pass

    @abstractmethod
    async def count(self, owner_id: str) -> int:
        pass

    @abstractmethod
    async def stats(self, owner_id: str) -> ModuleStats:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
