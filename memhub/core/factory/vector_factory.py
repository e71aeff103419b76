"""
Factory for creating Qdrant clients and module partition stores.
"""

from qdrant_client import AsyncQdrantClient

from memhub.config import QdrantConfig
from memhub.core.vector_store.base import VectorStore
from memhub.core.vector_store.qdrant import QdrantStore


class VectorStoreFactory:
    """Factory for creating vector store backends from configuration."""

    @staticmethod
    def create_client(config: QdrantConfig) -> AsyncQdrantClient:
        """One client shared by every partition and the central index."""
        if config.location:
            return AsyncQdrantClient(location=config.location)
        return AsyncQdrantClient(
            url=config.url, prefer_grpc=config.use_grpc, timeout=config.timeout
        )

    @staticmethod
    def collection_name(config: QdrantConfig, module_id: str) -> str:
        return f"{config.collection_prefix}_{module_id}"

    @staticmethod
    def create(
        config: QdrantConfig,
        module_id: str,
        vector_size: int,
        client: AsyncQdrantClient | None = None,
    ) -> VectorStore:
        """
        Create the partition store of one module.

        Args:
            config: Qdrant configuration
            module_id: Module owning the partition
            vector_size: Full embedding dimension
            client: Optional shared client
        """
        return QdrantStore(
            collection_name=VectorStoreFactory.collection_name(config, module_id),
            module_id=module_id,
            vector_size=vector_size,
            url=config.url,
            location=config.location,
            client=client,
            use_grpc=config.use_grpc,
            use_quantization=config.use_quantization,
            hnsw_m=config.hnsw_m,
            hnsw_ef_construct=config.hnsw_ef_construct,
            on_disk=config.on_disk,
            timeout=config.timeout,
        )
