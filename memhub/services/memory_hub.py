"""
MemoryHub - caller-facing facade.

Brings together:
- Embedding gateway
- Module registry (per-topic partitions)
- Central index, router and federated search
- Relationship store and index reconciliation
"""

import asyncio
from typing import Any

from qdrant_client import AsyncQdrantClient

from memhub.config import Config
from memhub.core.central_index.base import CentralIndex
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.factory import (
    CentralIndexFactory,
    EmbedderFactory,
    ModuleFactory,
    RelationshipStoreFactory,
    VectorStoreFactory,
)
from memhub.core.modules.registry import ModuleRegistry
from memhub.core.modules.selection import determine_module
from memhub.core.modules.standard import VectorMemoryModule
from memhub.core.relationship_store.base import RelationshipStore
from memhub.core.relationship_store.traversal import walk_related
from memhub.models.memory import Memory, ScoredMemory
from memhub.models.module import ModuleInfo
from memhub.models.relationships import MemoryRef, RelatedMemory, Relationship
from memhub.models.search import FederatedSearchResponse, ReconciliationReport, StoreResult
from memhub.services.federated_search import FederatedSearchOrchestrator
from memhub.services.fusion import ScoreFusion
from memhub.services.reconciliation import IndexReconciler
from memhub.services.router import ModuleRouter
from memhub.utils.exceptions import ValidationError
from memhub.utils.logger import get_logger

logger = get_logger(__name__)


class MemoryHub:
    """
    Unified entry point for per-user memories spread over modules.

    Per-module CRUD is proxied to the named module; search across modules
    goes through the federated search orchestrator.
    """

    def __init__(
        self,
        config: Config,
        gateway: EmbeddingGateway,
        registry: ModuleRegistry,
        index: CentralIndex,
        relationships: RelationshipStore,
        qdrant_client: AsyncQdrantClient | None = None,
    ):
        """
        Initialize MemoryHub.

        Args:
            config: Configuration object
            gateway: Embedding gateway shared by modules and search
            registry: Module registry
            index: Central index
            relationships: Relationship store
            qdrant_client: Shared Qdrant client, closed with the hub
        """
        self.config = config
        self.gateway = gateway
        self.registry = registry
        self.index = index
        self.relationships = relationships
        self._qdrant_client = qdrant_client

        self.reconciler = IndexReconciler(registry, index, relationships)
        for module in registry.all():
            if isinstance(module, VectorMemoryModule):
                module.orphan_handler = self.reconciler.register_orphan

        search = config.search
        self.router = ModuleRouter(
            index=index,
            registry=registry,
            candidate_pool=search.candidate_pool,
            top_k=search.routing_top_k,
            min_route_score=search.min_route_score,
            keyword_boost=search.keyword_boost,
            sum_bonus=search.sum_bonus,
        )
        self.search_orchestrator = FederatedSearchOrchestrator(
            registry=registry,
            index=index,
            gateway=gateway,
            router=self.router,
            relationships=relationships,
            fusion=ScoreFusion(config.fusion),
            config=search,
            reconciler=self.reconciler,
        )

    @classmethod
    async def create(cls, config: Config) -> "MemoryHub":
        """
        Build a hub and all its components from configuration.

        The embedding dimension is taken from config when set, otherwise
        detected from the provider. The hub is not initialized yet.
        """
        logger.info(
            f"Creating MemoryHub: embedder={config.embedder.provider}/{config.embedder.model}, "
            f"modules={[m.module_id for m in config.modules]}"
        )

        gateway = EmbedderFactory.create_gateway(config.embedder)
        vector_size = await EmbedderFactory.get_dimension(gateway, config.embedder)
        logger.info(f"Embedding dimension: {vector_size}")

        # Vectors at or under the index size are only normalised, never padded
        index_dimension = min(config.embedder.index_dimension, vector_size)
        if index_dimension < config.embedder.index_dimension:
            logger.warning(
                f"Index dimension {config.embedder.index_dimension} exceeds embedding "
                f"dimension {vector_size}; indexing at {index_dimension}"
            )
        gateway.index_dimension = index_dimension

        client = VectorStoreFactory.create_client(config.qdrant)
        index = CentralIndexFactory.create(config, client=client, vector_size=index_dimension)
        relationships = RelationshipStoreFactory.create(config)
        registry = ModuleFactory.create_registry(
            config, gateway, index, relationships, vector_size, client=client
        )

        return cls(
            config=config,
            gateway=gateway,
            registry=registry,
            index=index,
            relationships=relationships,
            qdrant_client=client,
        )

    async def initialize(self) -> None:
        """Initialize all stores and modules."""
        logger.info("Initializing MemoryHub")

        await self.index.initialize()
        logger.info("Central index initialized")

        await self.relationships.initialize()
        logger.info("Relationship store initialized")

        for module in self.registry.all():
            await module.initialize()
        logger.info(f"{len(self.registry)} modules initialized")

        if self.config.reconciliation.enabled:
            self.reconciler.start_background_worker(
                interval_hours=self.config.reconciliation.interval_hours
            )
            logger.info("Background reconciliation worker started")

        logger.info("MemoryHub ready")

    # MEMORY OPERATIONS

    async def store(
        self,
        owner_id: str,
        content: str,
        metadata: dict[str, Any] | None = None,
        module_id: str | None = None,
    ) -> StoreResult:
        """
        Store a memory in the named module, or in one chosen from its content.

        Raises:
            ValidationError: Bad input or unknown/inactive module
            EmbeddingError: Embedding failed
        """
        if not content or not content.strip():
            raise ValidationError("Memory content cannot be empty")

        target = module_id or determine_module(content, metadata)
        module = self.registry.require(target)

        clean = {k: v for k, v in (metadata or {}).items() if k != "module_id"}
        return await module.store(owner_id, content, clean)

    async def get(self, owner_id: str, module_id: str, memory_id: str) -> Memory | None:
        return await self.registry.require(module_id).get(owner_id, memory_id)

    async def update(
        self,
        owner_id: str,
        module_id: str,
        memory_id: str,
        content: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        return await self.registry.require(module_id).update(
            owner_id, memory_id, content=content, metadata=metadata
        )

    async def delete(self, owner_id: str, module_id: str, memory_id: str) -> bool:
        return await self.registry.require(module_id).delete(owner_id, memory_id)

    async def search_module(
        self,
        owner_id: str,
        module_id: str,
        query: str,
        limit: int = 10,
        min_score: float | None = None,
    ) -> list[ScoredMemory]:
        return await self.registry.require(module_id).search(owner_id, query, limit, min_score)

    async def federated_search(
        self,
        owner_id: str,
        query: str,
        limit: int | None = None,
        module_filter: list[str] | None = None,
        min_score: float | None = None,
        use_relationships: bool = True,
    ) -> FederatedSearchResponse:
        return await self.search_orchestrator.federated_search(
            owner_id,
            query,
            limit=limit,
            module_filter=module_filter,
            min_score=min_score,
            use_relationships=use_relationships,
        )

    # RELATIONSHIP OPERATIONS

    async def link(
        self,
        owner_id: str,
        source: MemoryRef,
        target: MemoryRef,
        relationship_type: str = "related",
        strength: float = 0.5,
        metadata: dict[str, Any] | None = None,
    ) -> Relationship:
        if not owner_id or not owner_id.strip():
            raise ValidationError("owner_id cannot be empty")
        self.registry.require(source.module_id)
        self.registry.require(target.module_id)
        return await self.relationships.link(
            owner_id, source, target, relationship_type, strength, metadata
        )

    async def related_to(
        self,
        owner_id: str,
        module_id: str,
        memory_id: str,
        types: list[str] | None = None,
        direction: str = "both",
        limit: int = 100,
    ) -> list[RelatedMemory]:
        return await self.relationships.related_to(
            owner_id, module_id, memory_id, types=types, direction=direction, limit=limit
        )

    async def neighbourhood(
        self,
        owner_id: str,
        module_id: str,
        memory_id: str,
        max_hops: int = 2,
        limit: int = 50,
    ) -> list[tuple[RelatedMemory, int]]:
        """Memories reachable within ``max_hops`` outgoing edges."""
        return await walk_related(
            self.relationships,
            owner_id,
            MemoryRef(module_id=module_id, memory_id=memory_id),
            max_hops=max_hops,
            limit=limit,
        )

    async def unlink(
        self,
        owner_id: str,
        source: MemoryRef,
        target: MemoryRef,
        relationship_type: str | None = None,
    ) -> int:
        return await self.relationships.unlink(owner_id, source, target, relationship_type)

    # MODULES, STATISTICS, MAINTENANCE

    def list_modules(self) -> list[ModuleInfo]:
        return self.registry.infos()

    async def module_stats(self, owner_id: str) -> dict[str, Any]:
        """
        Per-module statistics of an owner.

        Returns:
            Statistics dictionary with partition and index views per module
        """
        if not owner_id or not owner_id.strip():
            raise ValidationError("owner_id cannot be empty")

        index_stats = {s.module_id: s for s in await self.index.module_stats(owner_id)}
        modules = {}
        for module in self.registry.active():
            stats = await module.stats(owner_id)
            indexed = index_stats.get(module.module_id)
            modules[module.module_id] = {
                **stats.model_dump(),
                "indexed": indexed.memory_count if indexed else 0,
                "avg_importance": indexed.avg_importance if indexed else None,
                "total_access": indexed.total_access if indexed else 0,
            }

        return {
            "owner_id": owner_id,
            "modules": modules,
            "index_entries": await self.index.count(owner_id),
            "relationships": await self.relationships.count(owner_id),
        }

    async def health(self) -> dict[str, Any]:
        modules = {}
        for module in self.registry.all():
            modules[module.module_id] = await module.health_check()

        try:
            await self.index.count()
            index_ok = True
        except Exception as e:
            logger.warning(f"Central index health check failed: {e}")
            index_ok = False

        try:
            await self.relationships.count()
            relationships_ok = True
        except Exception as e:
            logger.warning(f"Relationship store health check failed: {e}")
            relationships_ok = False

        healthy = index_ok and relationships_ok and all(modules.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "modules": modules,
            "central_index": index_ok,
            "relationship_store": relationships_ok,
            "pending_orphans": len(self.reconciler.pending_orphans),
        }

    async def reconcile(self, owner_id: str | None = None) -> ReconciliationReport:
        return await self.reconciler.reconcile(owner_id)

    # LIFECYCLE MANAGEMENT

    async def close(self) -> None:
        """Close all connections and stop workers."""
        logger.info("Shutting down MemoryHub")

        self.reconciler.stop_background_worker()
        worker = self.reconciler._worker_task
        if worker is not None:
            try:
                await worker
            except asyncio.CancelledError:
                pass  # Expected when cancelling
            except Exception as e:
                logger.warning(f"Error during worker shutdown: {e}")

        for module in self.registry.all():
            await module.close()
        await self.index.close()
        await self.relationships.close()
        await self.gateway.close()
        if self._qdrant_client is not None:
            await self._qdrant_client.close()

        logger.info("MemoryHub shutdown complete")
