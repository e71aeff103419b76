"""Central index: compact cross-module projection of every memory."""

from memhub.core.central_index.base import CentralIndex
from memhub.core.central_index.qdrant import QdrantCentralIndex

__all__ = ["CentralIndex", "QdrantCentralIndex"]
