"""
Factory for creating the central index and the relationship store.
"""

from qdrant_client import AsyncQdrantClient

from memhub.config import Config
from memhub.core.central_index.base import CentralIndex
from memhub.core.central_index.qdrant import QdrantCentralIndex
from memhub.core.relationship_store.base import RelationshipStore
from memhub.core.relationship_store.sqlite_store import SQLiteRelationshipStore


class CentralIndexFactory:
    """Factory for creating the central index from configuration."""

    @staticmethod
    def create(
        config: Config,
        client: AsyncQdrantClient | None = None,
        vector_size: int | None = None,
    ) -> CentralIndex:
        """
        Create the central index.

        ``vector_size`` overrides the configured index dimension; the hub
        passes the effective size when full embeddings are smaller.
        """
        return QdrantCentralIndex(
            collection_name=config.qdrant.index_collection,
            vector_size=vector_size or config.embedder.index_dimension,
            url=config.qdrant.url,
            location=config.qdrant.location,
            client=client,
            use_grpc=config.qdrant.use_grpc,
            hnsw_m=config.qdrant.hnsw_m,
            hnsw_ef_construct=config.qdrant.hnsw_ef_construct,
            timeout=config.qdrant.timeout,
        )


class RelationshipStoreFactory:
    """Factory for creating the relationship store from configuration."""

    @staticmethod
    def create(config: Config) -> RelationshipStore:
        return SQLiteRelationshipStore(db_path=config.relationship_store.db_path)
