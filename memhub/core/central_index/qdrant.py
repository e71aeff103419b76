"""
Qdrant-backed central index.

A single collection holds every owner's entries. Point IDs are derived
from (module_id, remote_memory_id), so an upsert for the same memory always
lands on the same point.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    HnswConfigDiff,
    MatchAny,
    MatchValue,
    PointStruct,
    VectorParams,
)

from memhub.core.central_index.base import CentralIndex
from memhub.models.index import CandidateHit, CentralIndexEntry, ModuleIndexStats
from memhub.utils.exceptions import CentralIndexError, ValidationError
from memhub.utils.id_generator import index_entry_id
from memhub.utils.logger import get_logger

logger = get_logger(__name__)

_SCROLL_PAGE = 256


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


class QdrantCentralIndex(CentralIndex):
    """
    Central index stored in one Qdrant collection.

    HNSW over cosine distance gives the approximate candidate search; the
    payload carries everything the router and the ranker need.
    """

    def __init__(
        self,
        collection_name: str = "memhub_central_index",
        vector_size: int = 512,
        url: str | None = "http://localhost:6333",
        location: str | None = None,
        client: AsyncQdrantClient | None = None,
        use_grpc: bool = False,
        hnsw_m: int = 16,
        hnsw_ef_construct: int = 100,
        timeout: int = 30,
    ):
        self.collection_name = collection_name
        self.vector_size = vector_size
        self.url = url
        self.location = location
        self.use_grpc = use_grpc
        self.hnsw_m = hnsw_m
        self.hnsw_ef_construct = hnsw_ef_construct
        self.timeout = timeout
        self.client: AsyncQdrantClient | None = client
        self._owns_client = client is None

    async def connect(self) -> None:
        if self.client is None:
            try:
                if self.location:
                    self.client = AsyncQdrantClient(location=self.location)
                else:
                    self.client = AsyncQdrantClient(
                        url=self.url, prefer_grpc=self.use_grpc, timeout=self.timeout
                    )
            except Exception as e:
                logger.error(
                    f"Failed to connect to Qdrant: {e}",
                    extra={"url": self.url, "location": self.location, "error": str(e)},
                )
                raise CentralIndexError(f"Failed to connect to Qdrant: {e}") from e

    async def initialize(self) -> None:
        try:
            await self.connect()

            if await self.client.collection_exists(self.collection_name):
                return

            await self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(
                    size=self.vector_size,
                    distance=Distance.COSINE,
                    hnsw_config=HnswConfigDiff(
                        m=self.hnsw_m,
                        ef_construct=self.hnsw_ef_construct,
                    ),
                ),
            )

            if not self.location:
                for field in ("owner_id", "module_id", "remote_memory_id"):
                    await self.client.create_payload_index(
                        collection_name=self.collection_name,
                        field_name=field,
                        field_schema="keyword",
                    )

            logger.info(
                f"Created central index collection {self.collection_name}",
                extra={"vector_size": self.vector_size},
            )
        except Exception as e:
            logger.error(
                f"Failed to initialize central index: {e}",
                extra={"collection": self.collection_name, "error": str(e)},
            )
            raise CentralIndexError(f"Failed to initialize central index: {e}") from e

    def _payload_to_entry(
        self, point_id: Any, payload: dict[str, Any], vector: Any = None
    ) -> CentralIndexEntry:
        return CentralIndexEntry(
            id=str(point_id),
            owner_id=payload["owner_id"],
            module_id=payload["module_id"],
            remote_memory_id=payload["remote_memory_id"],
            embedding=list(vector) if vector else [],
            title=payload.get("title", ""),
            summary=payload.get("summary", ""),
            keywords=payload.get("keywords") or [],
            categories=payload.get("categories") or [],
            importance_score=payload.get("importance_score", 0.5),
            access_count=payload.get("access_count", 0),
            last_accessed=_parse_dt(payload.get("last_accessed")),
            created_at=datetime.fromisoformat(payload["created_at"]),
            updated_at=datetime.fromisoformat(payload["updated_at"]),
        )

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
        if len(embedding) != self.vector_size:
            raise ValidationError(
                f"Index embedding dimension {len(embedding)} != {self.vector_size}"
            )

        entry_id = index_entry_id(module_id, remote_memory_id)
        now = datetime.now()

        try:
            await self.connect()

            existing = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=[entry_id],
                with_payload=True,
                with_vectors=False,
            )
            previous = existing[0].payload if existing else {}

            payload = {
                "owner_id": owner_id,
                "module_id": module_id,
                "remote_memory_id": remote_memory_id,
                "title": title,
                "summary": summary,
                "keywords": list(keywords),
                "categories": list(categories),
                "importance_score": max(0.0, min(1.0, importance_score)),
                "access_count": previous.get("access_count", 0),
                "last_accessed": previous.get("last_accessed"),
                "created_at": previous.get("created_at", now.isoformat()),
                "updated_at": now.isoformat(),
            }

            await self.client.upsert(
                collection_name=self.collection_name,
                points=[PointStruct(id=entry_id, vector=embedding, payload=payload)],
                wait=True,
            )
        except Exception as e:
            logger.error(
                f"Failed to upsert index entry: {e}",
                extra={
                    "owner_id": owner_id,
                    "module_id": module_id,
                    "memory_id": remote_memory_id,
                    "error": str(e),
                },
            )
            raise CentralIndexError(f"Failed to upsert index entry: {e}") from e

        return self._payload_to_entry(entry_id, payload, embedding)

    async def remove(self, module_id: str, remote_memory_id: str) -> None:
        try:
            await self.connect()
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=[index_entry_id(module_id, remote_memory_id)],
                wait=True,
            )
        except Exception as e:
            logger.error(
                f"Failed to remove index entry: {e}",
                extra={"module_id": module_id, "memory_id": remote_memory_id, "error": str(e)},
            )
            raise CentralIndexError(f"Failed to remove index entry: {e}") from e

    async def candidate_search(
        self,
        owner_id: str,
        query_embedding: list[float],
        top_n: int,
        module_ids: list[str] | None = None,
    ) -> list[CandidateHit]:
        conditions = [FieldCondition(key="owner_id", match=MatchValue(value=owner_id))]
        if module_ids is not None:
            if not module_ids:
                return []
            conditions.append(FieldCondition(key="module_id", match=MatchAny(any=module_ids)))

        try:
            await self.connect()
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                limit=top_n,
                query_filter=Filter(must=conditions),
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            logger.error(
                f"Candidate search failed: {e}",
                extra={"owner_id": owner_id, "error": str(e)},
            )
            raise CentralIndexError(f"Candidate search failed: {e}") from e

        return [
            CandidateHit(
                module_id=point.payload["module_id"],
                remote_memory_id=point.payload["remote_memory_id"],
                coarse_score=point.score,
                importance_score=point.payload.get("importance_score", 0.5),
                access_count=point.payload.get("access_count", 0),
                last_accessed=_parse_dt(point.payload.get("last_accessed")),
                keywords=point.payload.get("keywords") or [],
            )
            for point in response.points
        ]

    async def touch_access(self, module_id: str, remote_memory_id: str) -> None:
        entry_id = index_entry_id(module_id, remote_memory_id)
        try:
            await self.connect()
            existing = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=[entry_id],
                with_payload=["access_count"],
                with_vectors=False,
            )
            if not existing:
                return

            # Read-modify-write; a lost increment under contention is acceptable
            await self.client.set_payload(
                collection_name=self.collection_name,
                payload={
                    "access_count": existing[0].payload.get("access_count", 0) + 1,
                    "last_accessed": datetime.now().isoformat(),
                },
                points=[entry_id],
                wait=True,
            )
        except Exception as e:
            raise CentralIndexError(f"Failed to touch index entry: {e}") from e

    async def get_entry(
        self, module_id: str, remote_memory_id: str, owner_id: str | None = None
    ) -> CentralIndexEntry | None:
        try:
            await self.connect()
            points = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=[index_entry_id(module_id, remote_memory_id)],
                with_payload=True,
                with_vectors=True,
            )
        except Exception as e:
            raise CentralIndexError(f"Failed to get index entry: {e}") from e

        if not points:
            return None
        point = points[0]
        if owner_id is not None and point.payload.get("owner_id") != owner_id:
            return None
        return self._payload_to_entry(point.id, point.payload, point.vector)

    async def get_entries(
        self, owner_id: str, refs: list[tuple[str, str]]
    ) -> dict[tuple[str, str], CentralIndexEntry]:
        if not refs:
            return {}

        ids = list({index_entry_id(module_id, memory_id) for module_id, memory_id in refs})
        try:
            await self.connect()
            points = await self.client.retrieve(
                collection_name=self.collection_name,
                ids=ids,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as e:
            raise CentralIndexError(f"Failed to get index entries: {e}") from e

        entries = {}
        for point in points:
            if point.payload.get("owner_id") != owner_id:
                continue
            entry = self._payload_to_entry(point.id, point.payload)
            entries[(entry.module_id, entry.remote_memory_id)] = entry
        return entries

    def _filter(self, owner_id: str | None, module_id: str | None) -> Filter | None:
        conditions = []
        if owner_id is not None:
            conditions.append(FieldCondition(key="owner_id", match=MatchValue(value=owner_id)))
        if module_id is not None:
            conditions.append(FieldCondition(key="module_id", match=MatchValue(value=module_id)))
        return Filter(must=conditions) if conditions else None

    async def list_entries(
        self, owner_id: str | None = None, module_id: str | None = None
    ) -> list[CentralIndexEntry]:
        entries: list[CentralIndexEntry] = []
        offset = None
        try:
            await self.connect()
            while True:
                points, offset = await self.client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=self._filter(owner_id, module_id),
                    limit=_SCROLL_PAGE,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                entries.extend(self._payload_to_entry(p.id, p.payload) for p in points)
                if offset is None:
                    break
        except Exception as e:
            raise CentralIndexError(f"Failed to list index entries: {e}") from e
        return entries

    async def module_stats(self, owner_id: str) -> list[ModuleIndexStats]:
        grouped: dict[str, list[CentralIndexEntry]] = defaultdict(list)
        for entry in await self.list_entries(owner_id=owner_id):
            grouped[entry.module_id].append(entry)

        return [
            ModuleIndexStats(
                module_id=module_id,
                memory_count=len(entries),
                avg_importance=sum(e.importance_score for e in entries) / len(entries),
                total_access=sum(e.access_count for e in entries),
            )
            for module_id, entries in sorted(grouped.items())
        ]

    async def count(self, owner_id: str | None = None) -> int:
        try:
            await self.connect()
            response = await self.client.count(
                collection_name=self.collection_name,
                count_filter=self._filter(owner_id, None),
                exact=True,
            )
        except Exception as e:
            raise CentralIndexError(f"Failed to count index entries: {e}") from e
        return response.count

    async def remove_owner(self, owner_id: str) -> None:
        try:
            await self.connect()
            await self.client.delete(
                collection_name=self.collection_name,
                points_selector=FilterSelector(filter=self._filter(owner_id, None)),
                wait=True,
            )
        except Exception as e:
            raise CentralIndexError(f"Failed to remove owner entries: {e}") from e

    async def close(self) -> None:
        if self.client is not None and self._owns_client:
            await self.client.close()
            self.client = None
