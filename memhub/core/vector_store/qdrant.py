"""
Qdrant vector store implementation.

One collection per module. The owner is part of the point ID and of the
payload, and every query filters on it.
"""

from datetime import datetime
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    HnswConfigDiff,
    MatchValue,
    OptimizersConfigDiff,
    PointStruct,
    ScalarQuantization,
    ScalarQuantizationConfig,
    ScalarType,
    VectorParams,
)

from memhub.core.vector_store.base import VectorStore
from memhub.models.memory import Memory, ScoredMemory
from memhub.utils.exceptions import ValidationError, VectorStoreError
from memhub.utils.id_generator import partition_point_id
from memhub.utils.logger import get_logger

logger = get_logger(__name__)

_SCROLL_PAGE = 256


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _owner_filter(owner_id: str) -> Filter:
    # CRITICAL: owner filter for multi-user isolation
    return Filter(must=[FieldCondition(key="owner_id", match=MatchValue(value=owner_id))])


class QdrantStore(VectorStore):
    """
    Qdrant partition store for one module's memories.

    Features:
    - HNSW indexing for fast search
    - Optional int8 quantization for memory efficiency
    - Payload index on owner_id for fast filtering
    - Local mode (``location=":memory:"``) for development and tests
    """

    def __init__(
        self,
        collection_name: str,
        module_id: str,
        vector_size: int,
        url: str | None = "http://localhost:6333",
        location: str | None = None,
        client: AsyncQdrantClient | None = None,
        use_grpc: bool = False,
        use_quantization: bool = False,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
        on_disk: bool = False,
        timeout: int = 30,
    ):
        """
        Initialize Qdrant store.

        Args:
            collection_name: Collection holding this module's memories
            module_id: Owning module (stamped on every memory read back)
            vector_size: Full embedding dimension
            url: Qdrant server URL
            location: Local mode location; takes precedence over url
            client: Shared client; when given, url and location are ignored
            use_grpc: Use gRPC connection (faster)
            use_quantization: Use int8 quantization (memory efficient)
            hnsw_m: HNSW M parameter (connections per node)
            hnsw_ef_construct: HNSW ef_construct parameter
            on_disk: Store vectors on disk (reduces RAM usage)
        """
        self.collection_name = collection_name
        self.module_id = module_id
        self.vector_size = vector_size
        self.url = url
        self.location = location
        self.use_grpc = use_grpc
        self.use_quantization = use_quantization
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.on_disk = on_disk
        self.timeout = timeout
        self.client: AsyncQdrantClient | None = client
        self._owns_client = client is None

    async def connect(self) -> None:
        """
        Establish connection to Qdrant.

        Raises:
            VectorStoreError: If connection fails
        """
        if self.client is None:
            try:
                if self.location:
                    self.client = AsyncQdrantClient(location=self.location)
                else:
                    self.client = AsyncQdrantClient(
                        url=self.url,
                        prefer_grpc=self.use_grpc,
                        timeout=self.timeout,
                    )
            except Exception as e:
                logger.error(
                    f"Failed to connect to Qdrant: {e}",
                    extra={"url": self.url, "location": self.location, "error": str(e)},
                )
                raise VectorStoreError(f"Failed to connect to Qdrant: {e}") from e

    async def initialize(self) -> None:
        """
        Initialize the collection with optimized settings.

        Raises:
            VectorStoreError: If initialization fails
        """
        try:
            await self.connect()

            if await self.client.collection_exists(self.collection_name):
                return

            vectors_config = VectorParams(
                size=self.vector_size,
                distance=Distance.COSINE,
                hnsw_config=HnswConfigDiff(
                    m=self.hnsw_m,
                    ef_construct=self.hnsw_ef_construct,
                    full_scan_threshold=10000,
                ),
                on_disk=self.on_disk,
            )

            if self.use_quantization:
                vectors_config.quantization_config = ScalarQuantization(
                    scalar=ScalarQuantizationConfig(
                        type=ScalarType.INT8,
                        quantile=0.99,
                        always_ram=True,
                    )
                )

            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=vectors_config,
                optimizers_config=OptimizersConfigDiff(
                    indexing_threshold=20000,
                    memmap_threshold=50000,
                ),
            )

            if not self.location:
                # Payload indexes are a no-op in local mode
                await self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name="owner_id",
                    field_schema="keyword",
                )
                await self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name="type",
                    field_schema="keyword",
                )

            logger.info(
                f"Created partition collection {self.collection_name}",
                extra={"module_id": self.module_id, "vector_size": self.vector_size},
            )
        except Exception as e:
            logger.error(
                f"Failed to initialize Qdrant collection: {e}",
                extra={"collection": self.collection_name, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to initialize Qdrant collection: {e}") from e

    def _memory_to_payload(self, memory: Memory) -> dict[str, Any]:
        return {
            "original_id": memory.id,
            "owner_id": memory.owner_id,
            "content": memory.content,
            "type": memory.memory_type,
            "access_count": memory.access_count,
            "last_accessed": memory.last_accessed.isoformat() if memory.last_accessed else None,
            "created_at": memory.created_at.isoformat(),
            "updated_at": memory.updated_at.isoformat(),
            "metadata": memory.metadata,
        }

    def _payload_to_memory(self, payload: dict[str, Any], vector: Any) -> Memory:
        return Memory(
            id=payload["original_id"],
            owner_id=payload["owner_id"],
            module_id=self.module_id,
            content=payload["content"],
            embedding=list(vector) if vector else [],
            metadata=payload.get("metadata") or {},
            access_count=payload.get("access_count", 0),
            last_accessed=_parse_dt(payload.get("last_accessed")),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
        )

    async def upsert_memory(self, memory: Memory) -> None:
        """
        Store or update a memory with its embedding.

        Raises:
            ValidationError: If memory is invalid
            VectorStoreError: If upsert operation fails
        """
        if not memory.id:
            raise ValidationError("Memory ID cannot be empty")
        if not memory.owner_id:
            raise ValidationError("Memory owner cannot be empty")
        if len(memory.embedding) != self.vector_size:
            raise ValidationError(
                f"Embedding dimension {len(memory.embedding)} does not match "
                f"partition dimension {self.vector_size}"
            )

        try:
            await self.connect()

            point = PointStruct(
                id=partition_point_id(memory.owner_id, memory.id),
                vector=memory.embedding,
                payload=self._memory_to_payload(memory),
            )

            await self.client.upsert(
                collection_name=self.collection_name,
                points=[point],
                wait=True,  # Wait for write to complete for consistency
            )
        except Exception as e:
            logger.error(
                f"Failed to upsert memory {memory.id}: {e}",
                extra={"memory_id": memory.id, "module_id": self.module_id, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to upsert memory: {e}") from e

    async def get_memory(self, owner_id: str, memory_id: str) -> Memory | None:
        if not memory_id or not memory_id.strip():
            raise ValidationError("Memory ID cannot be empty")

        try:
            await self.connect()

            results = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=[partition_point_id(owner_id, memory_id)],
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            logger.error(
                f"Failed to retrieve memory {memory_id}: {e}",
                extra={"memory_id": memory_id, "module_id": self.module_id, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to retrieve memory: {e}") from e

        if not results:
            return None

        point = results[0]
        if point.payload.get("owner_id") != owner_id:
            return None
        return self._payload_to_memory(point.payload, point.vector)

    async def touch_memory(
        self, owner_id: str, memory_id: str, access_count: int, last_accessed: datetime
    ) -> None:
        # Point ids are derived from the owner, so this cannot reach another owner's memory
        try:
            await self.connect()
            await self.client.set_payload(
                collection_name=self.collection_name,
                payload={
                    "access_count": access_count,
                    "last_accessed": last_accessed.isoformat(),
                },
                points=[partition_point_id(owner_id, memory_id)],
                wait=True,
            )
        except Exception as e:
            raise VectorStoreError(f"Failed to record access: {e}") from e

    async def delete_memory(self, owner_id: str, memory_id: str) -> bool:
        if not memory_id or not memory_id.strip():
            raise ValidationError("Memory ID cannot be empty")

        point_id = partition_point_id(owner_id, memory_id)
        try:
            await self.connect()

            existing = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=[point_id],
                with_payload=["owner_id"],
                with_vectors=False,
            )
            if not existing or existing[0].payload.get("owner_id") != owner_id:
                return False

            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=[point_id],
                wait=True,  # Wait for delete to complete for consistency
            )
            return True
        except Exception as e:
            logger.error(
                f"Failed to delete memory {memory_id}: {e}",
                extra={"memory_id": memory_id, "module_id": self.module_id, "error": str(e)},
            )
            raise VectorStoreError(f"Failed to delete memory: {e}") from e

    async def search_similar(
        self,
        owner_id: str,
        vector: list[float],
        limit: int = 10,
        score_threshold: float | None = None,
    ) -> list[ScoredMemory]:
        try:
            await self.connect()

            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                limit=limit,
                score_threshold=score_threshold,
                query_filter=_owner_filter(owner_id),
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            logger.error(
                f"Partition search failed: {e}",
                extra={"module_id": self.module_id, "owner_id": owner_id, "error": str(e)},
            )
            raise VectorStoreError(f"Partition search failed: {e}") from e

        results = [
            ScoredMemory(
                memory=self._payload_to_memory(point.payload, point.vector),
                score=point.score,
            )
            for point in response.points
        ]

        # Equal scores: most recently accessed first
        results.sort(
            key=lambda r: (-r.score, -(r.memory.last_activity().timestamp()), r.memory.id)
        )
        return results

    async def _scroll(self, scroll_filter: Filter | None, limit: int | None = None):
        """Yield every point matching the filter, page by page."""
        await self.connect()

        offset = None
        seen = 0
        while True:
            points, offset = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=scroll_filter,
                limit=_SCROLL_PAGE,
                offset=offset,
                with_payload=True,
                with_vectors=False,
            )
            for point in points:
                yield point
                seen += 1
                if limit is not None and seen >= limit:
                    return
            if offset is None:
                return

    async def list_memory_ids(self, owner_id: str | None = None) -> list[tuple[str, str]]:
        scroll_filter = _owner_filter(owner_id) if owner_id else None
        try:
            return [
                (point.payload["owner_id"], point.payload["original_id"])
                async for point in self._scroll(scroll_filter)
            ]
        except Exception as e:
            raise VectorStoreError(f"Failed to list memories: {e}") from e

    async def list_memories(self, owner_id: str, limit: int = 1000) -> list[Memory]:
        try:
            return [
                self._payload_to_memory(point.payload, None)
                async for point in self._scroll(_owner_filter(owner_id), limit=limit)
            ]
        except Exception as e:
            raise VectorStoreError(f"Failed to list memories: {e}") from e

    async def count_memories(self, owner_id: str | None = None) -> int:
        await self.connect()

        response = await self.client.count(
            collection_name=self.collection_name,
            count_filter=_owner_filter(owner_id) if owner_id else None,
            exact=True,
        )
        return response.count

    async def close(self) -> None:
        """Close the connection to Qdrant."""
        if self.client is not None and self._owns_client:
            await self.client.close()
            self.client = None
