"""Module partition storage (one Qdrant collection per module)."""

from memhub.core.vector_store.base import VectorStore
from memhub.core.vector_store.qdrant import QdrantStore

__all__ = ["VectorStore", "QdrantStore"]
