"""
Base interface for the central index.

The central index keeps one compact entry per stored memory across all
modules: a compressed embedding plus a title, summary, keywords, categories
and usage counters. It is a derived projection; module partitions stay the
source of truth.
"""

from abc import ABC, abstractmethod

from memhub.models.index import CandidateHit, CentralIndexEntry, ModuleIndexStats


class CentralIndex(ABC):
    """Abstract base class for central index implementations."""

    @abstractmethod
    async def initialize(self) -> None:
        """
        Create collections/tables if missing.

        Raises:
            CentralIndexError: If initialization fails
        """
        pass

    @abstractmethod
    async def upsert(
        self,
        owner_id: str,
        module_id: str,
        remote_memory_id: str,
        embedding: list[float],
        title: str,
        summary: str,
        keywords: list[str],
        categories: list[str],
        importance_score: float = 0.5,
    ) -> CentralIndexEntry:
        """
        Insert or refresh the entry for (module_id, remote_memory_id).

        Idempotent: repeated calls leave exactly one entry. Usage counters
        and created_at of an existing entry are preserved.

        Raises:
            ValidationError: If the embedding has the wrong dimension
            CentralIndexError: If the write fails
        """
        pass

    @abstractmethod
    async def remove(self, module_id: str, remote_memory_id: str) -> None:
        """Remove the entry; removing a missing entry is a no-op."""
        pass

    @abstractmethod
    async def candidate_search(
        self,
        owner_id: str,
        query_embedding: list[float],
        top_n: int,
        module_ids: list[str] | None = None,
    ) -> list[CandidateHit]:
        """
        Approximate nearest neighbours among the owner's entries.

        Returns:
            Up to top_n hits in descending similarity
        """
        pass

    @abstractmethod
    async def touch_access(self, module_id: str, remote_memory_id: str) -> None:
        """Increment access_count and set last_accessed; missing entry is a no-op."""
        pass

    @abstractmethod
    async def get_entry(
        self, module_id: str, remote_memory_id: str, owner_id: str | None = None
    ) -> CentralIndexEntry | None:
        """Fetch one entry, optionally checking that it belongs to owner_id."""
        pass

    @abstractmethod
    async def get_entries(
        self, owner_id: str, refs: list[tuple[str, str]]
    ) -> dict[tuple[str, str], CentralIndexEntry]:
        """Batch fetch the owner's entries keyed by (module_id, remote_memory_id)."""
        pass

    @abstractmethod
    async def list_entries(
        self, owner_id: str | None = None, module_id: str | None = None
    ) -> list[CentralIndexEntry]:
        """List entries (without embeddings), optionally filtered."""
        pass

    @abstractmethod
    async def module_stats(self, owner_id: str) -> list[ModuleIndexStats]:
        """Per-module counts, average importance and total access for an owner."""
        pass

    @abstractmethod
    async def count(self, owner_id: str | None = None) -> int:
        pass

    @abstractmethod
    async def remove_owner(self, owner_id: str) -> None:
        """Drop every entry of an owner."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
