"""
Template memory module backed by a vector store partition.

Specialised modules subclass this and override ``process_metadata``.
"""

from collections import Counter
from collections.abc import Callable
from datetime import datetime
from typing import Any

from memhub.core.central_index.base import CentralIndex
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.modules.base import MemoryModule
from memhub.core.relationship_store.base import RelationshipStore
from memhub.core.vector_store.base import VectorStore
from memhub.models.memory import Memory, ScoredMemory, validate_metadata
from memhub.models.module import ModuleInfo, ModuleStats
from memhub.models.search import StoreResult
from memhub.utils.exceptions import (
    ModuleError,
    StoreError,
    SyncError,
    ValidationError,
    VectorStoreError,
)
from memhub.utils.id_generator import generate_memory_id
from memhub.utils.logger import get_logger
from memhub.utils.retry import retry_async
from memhub.utils.text import extract_keywords, extract_summary, extract_title

logger = get_logger(__name__)

DEFAULT_IMPORTANCE = 0.5


def _require_owner(owner_id: str) -> None:
    if not owner_id or not owner_id.strip():
        raise ValidationError("owner_id cannot be empty")


def _require_content(content: str) -> None:
    if not content or not content.strip():
        raise ValidationError("Memory content cannot be empty")


class VectorMemoryModule(MemoryModule):
    """
    Memory module storing full memories in a vector store partition.

    Write path: embed -> persist in partition -> upsert central index entry.
    Delete path: delete from partition -> remove index entry and edges,
    retried with backoff and handed to ``orphan_handler`` if still failing.
    """

    def __init__(
        self,
        info: ModuleInfo,
        store: VectorStore,
        gateway: EmbeddingGateway,
        index: CentralIndex,
        relationships: RelationshipStore,
        cascade_max_retries: int = 3,
        cascade_base_delay: float = 0.2,
    ):
        """
        Initialize the module.

        Args:
            info: Module descriptor
            store: Partition holding this module's memories
            gateway: Embedding gateway shared by all modules
            index: Central index
            relationships: Relationship store
            cascade_max_retries: Attempts for the delete cascade
            cascade_base_delay: First backoff delay of the delete cascade
        """
        self._info = info
        self.store_backend = store
        self.gateway = gateway
        self.index = index
        self.relationships = relationships
        self.cascade_max_retries = cascade_max_retries
        self.cascade_base_delay = cascade_base_delay
        # Receives (module_id, memory_id) of a delete whose cascade failed
        self.orphan_handler: Callable[[str, str], None] | None = None

    @property
    def info(self) -> ModuleInfo:
        return self._info

    async def initialize(self) -> None:
        await self.store_backend.initialize()

    def process_metadata(self, content: str, metadata: dict[str, Any]) -> dict[str, Any]:
        """
        Enrich caller metadata before it is stored.

        The base implementation only fills in the ``type`` discriminator.
        """
        enriched = dict(metadata)
        if not enriched.get("type"):
            enriched["type"] = self.info.default_type
        return enriched

    def _prepare_metadata(self, content: str, metadata: dict[str, Any] | None) -> dict[str, Any]:
        try:
            clean = validate_metadata(metadata)
            return validate_metadata(self.process_metadata(content, clean))
        except ValueError as e:
            raise ValidationError(f"Invalid metadata: {e}", {"module_id": self.module_id}) from e

    async def _index_memory(self, memory: Memory) -> None:
        """Upsert the central index entry projected from a memory."""
        categories = memory.metadata.get("categories") or []
        if not isinstance(categories, list):
            categories = [categories]

        importance = memory.metadata.get("importance_score", DEFAULT_IMPORTANCE)
        if isinstance(importance, bool) or not isinstance(importance, (int, float)):
            importance = DEFAULT_IMPORTANCE

        await self.index.upsert(
            owner_id=memory.owner_id,
            module_id=self.module_id,
            remote_memory_id=memory.id,
            embedding=self.gateway.compress(memory.embedding),
            title=extract_title(memory.content),
            summary=extract_summary(memory.content),
            keywords=extract_keywords(memory.content),
            categories=[str(c) for c in categories if c is not None],
            importance_score=max(0.0, min(1.0, float(importance))),
        )

    async def _try_index(self, memory: Memory, operation: str) -> list[str]:
        """Index a memory, turning failure into a warning."""
        try:
            await self._index_memory(memory)
            return []
        except Exception as e:
            logger.warning(
                f"Central index write failed for {memory.id}: {e}",
                extra={
                    "operation": operation,
                    "owner_id": memory.owner_id,
                    "module_id": self.module_id,
                    "memory_id": memory.id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return [f"index write failed: {e}"]

    async def store(
        self, owner_id: str, content: str, metadata: dict[str, Any] | None = None
    ) -> StoreResult:
        _require_owner(owner_id)
        _require_content(content)
        enriched = self._prepare_metadata(content, metadata)

        # Embedding errors propagate; nothing has been written yet
        embedding = await self.gateway.embed(content)

        now = datetime.now()
        memory = Memory(
            id=generate_memory_id(),
            owner_id=owner_id,
            module_id=self.module_id,
            content=content,
            embedding=embedding,
            metadata=enriched,
            created_at=now,
            updated_at=now,
        )

        try:
            await self.store_backend.upsert_memory(memory)
        except VectorStoreError as e:
            raise ModuleError(
                self.module_id, "STORE_ERROR", f"Failed to store memory: {e}"
            ) from e

        warnings = await self._try_index(memory, "store")

        logger.info(
            f"Memory stored: {memory.id}",
            extra={
                "operation": "store",
                "owner_id": owner_id,
                "module_id": self.module_id,
                "memory_id": memory.id,
                "indexed": not warnings,
            },
        )
        return StoreResult(
            memory_id=memory.id,
            module_id=self.module_id,
            indexed=not warnings,
            warnings=warnings,
        )

    async def get(self, owner_id: str, memory_id: str) -> Memory | None:
        _require_owner(owner_id)

        try:
            memory = await self.store_backend.get_memory(owner_id, memory_id)
        except VectorStoreError as e:
            raise ModuleError(self.module_id, "GET_ERROR", f"Failed to get memory: {e}") from e
        if memory is None:
            return None

        memory.access_count += 1
        memory.last_accessed = datetime.now()
        try:
            # Only the access fields; content and embedding are left to update()
            await self.store_backend.touch_memory(
                owner_id, memory_id, memory.access_count, memory.last_accessed
            )
        except VectorStoreError as e:
            # Access tracking is advisory
            logger.warning(
                f"Failed to record access for {memory_id}: {e}",
                extra={"module_id": self.module_id, "memory_id": memory_id, "error": str(e)},
            )
        return memory

    async def update(
        self,
        owner_id: str,
        memory_id: str,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        _require_owner(owner_id)
        if content is not None:
            _require_content(content)

        try:
            memory = await self.store_backend.get_memory(owner_id, memory_id)
        except VectorStoreError as e:
            raise ModuleError(self.module_id, "UPDATE_ERROR", f"Failed to load memory: {e}") from e
        if memory is None:
            return False

        if content is None and metadata is None:
            return True

        new_content = content if content is not None else memory.content
        merged = {**memory.metadata, **(metadata or {})}
        memory.metadata = self._prepare_metadata(new_content, merged)

        if content is not None and content != memory.content:
            memory.embedding = await self.gateway.embed(content)
            memory.content = content
        memory.updated_at = datetime.now()

        try:
            await self.store_backend.upsert_memory(memory)
        except VectorStoreError as e:
            raise ModuleError(
                self.module_id, "UPDATE_ERROR", f"Failed to update memory: {e}"
            ) from e

        # Index vector is recomputed from the stored full embedding
        await self._try_index(memory, "update")

        logger.info(
            f"Memory updated: {memory_id}",
            extra={
                "operation": "update",
                "owner_id": owner_id,
                "module_id": self.module_id,
                "memory_id": memory_id,
                "content_changed": content is not None,
            },
        )
        return True

    async def _cascade_delete(self, memory_id: str) -> int:
        await self.index.remove(self.module_id, memory_id)
        return await self.relationships.delete_for_memory(self.module_id, memory_id)

    async def delete(self, owner_id: str, memory_id: str) -> bool:
        _require_owner(owner_id)

        try:
            deleted = await self.store_backend.delete_memory(owner_id, memory_id)
        except VectorStoreError as e:
            raise ModuleError(
                self.module_id, "DELETE_ERROR", f"Failed to delete memory: {e}"
            ) from e
        if not deleted:
            return False

        try:
            removed_edges = await retry_async(
                lambda: self._cascade_delete(memory_id),
                operation_name=f"delete cascade {self.module_id}/{memory_id}",
                retry_on=(StoreError,),
                max_retries=self.cascade_max_retries,
                base_delay=self.cascade_base_delay,
            )
        except StoreError as e:
            if self.orphan_handler is not None:
                self.orphan_handler(self.module_id, memory_id)
            logger.error(
                f"Memory {memory_id} deleted but derived rows remain: {e}",
                extra={
                    "operation": "delete",
                    "owner_id": owner_id,
                    "module_id": self.module_id,
                    "memory_id": memory_id,
                    "error": str(e),
                },
            )
            raise SyncError(
                f"Memory {memory_id} deleted but index/relationship cleanup failed: {e}",
                {"module_id": self.module_id, "memory_id": memory_id},
            ) from e

        logger.info(
            f"Memory deleted: {memory_id}",
            extra={
                "operation": "delete",
                "owner_id": owner_id,
                "module_id": self.module_id,
                "memory_id": memory_id,
                "relationships_removed": removed_edges,
            },
        )
        return True

    async def search(
        self,
        owner_id: str,
        query_text: str,
        limit: int = 10,
        min_score: float | None = None,
    ) -> list[ScoredMemory]:
        _require_owner(owner_id)
        if not query_text or not query_text.strip():
            raise ValidationError("Query cannot be empty")

        embedding = await self.gateway.embed(query_text)
        return await self.search_by_embedding(owner_id, embedding, limit, min_score)

    async def search_by_embedding(
        self,
        owner_id: str,
        embedding: list[float],
        limit: int = 10,
        min_score: float | None = None,
    ) -> list[ScoredMemory]:
        _require_owner(owner_id)
        if limit <= 0:
            raise ValidationError("limit must be positive")

        try:
            return await self.store_backend.search_similar(
                owner_id, embedding, limit=limit, score_threshold=min_score
            )
        except VectorStoreError as e:
            raise ModuleError(self.module_id, "SEARCH_ERROR", f"Search failed: {e}") from e

    async def reindex(self, owner_id: str, memory_id: str) -> bool:
        memory = await self.store_backend.get_memory(owner_id, memory_id)
        if memory is None:
            return False
        await self._index_memory(memory)
        return True

    async def list_memory_ids(self, owner_id: str | None = None) -> list[tuple[str, str]]:
        return await self.store_backend.list_memory_ids(owner_id)

    async def count(self, owner_id: str) -> int:
        _require_owner(owner_id)
        return await self.store_backend.count_memories(owner_id)

    async def stats(self, owner_id: str) -> ModuleStats:
        _require_owner(owner_id)
        memories = await self.store_backend.list_memories(owner_id)
        if not memories:
            return ModuleStats(module_id=self.module_id)

        accessed = [m.last_accessed for m in memories if m.last_accessed]
        types = Counter(m.memory_type for m in memories if m.memory_type)

        return ModuleStats(
            module_id=self.module_id,
            total_memories=len(memories),
            last_accessed=max(accessed).isoformat() if accessed else None,
            average_access_count=sum(m.access_count for m in memories) / len(memories),
            most_frequent_types=[t for t, _ in types.most_common(5)],
        )

    async def health_check(self) -> bool:
        try:
            await self.store_backend.count_memories()
            return True
        except Exception as e:
            logger.warning(
                f"Module {self.module_id} health check failed: {e}",
                extra={"module_id": self.module_id, "error": str(e)},
            )
            return False

    async def close(self) -> None:
        await self.store_backend.close()
