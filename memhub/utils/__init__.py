"""Utility modules for MemHub."""

from memhub.utils.exceptions import (
    CentralIndexError,
    ConfigurationError,
    EmbeddingError,
    EmbeddingInputError,
    EmbeddingUnavailableError,
    MemHubError,
    ModuleError,
    RelationshipStoreError,
    StoreError,
    SyncError,
    ValidationError,
    VectorStoreError,
)
from memhub.utils.id_generator import (
    generate_memory_id,
    generate_relationship_id,
    index_entry_id,
    partition_point_id,
)
from memhub.utils.logger import get_logger, setup_logging

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    # ID Generators
    "generate_memory_id",
    "generate_relationship_id",
    "index_entry_id",
    "partition_point_id",
    # Exceptions
    "MemHubError",
    "StoreError",
    "VectorStoreError",
    "CentralIndexError",
    "RelationshipStoreError",
    "SyncError",
    "ValidationError",
    "ConfigurationError",
    "EmbeddingError",
    "EmbeddingUnavailableError",
    "EmbeddingInputError",
    "ModuleError",
]
