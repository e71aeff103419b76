"""
Factory modules for creating MemHub components.

Provides modular factories for embedders, module partitions, the central
index, the relationship store and memory modules.
"""

from memhub.core.factory.embedder_factory import EmbedderFactory
from memhub.core.factory.index_factory import CentralIndexFactory, RelationshipStoreFactory
from memhub.core.factory.module_factory import ModuleFactory
from memhub.core.factory.vector_factory import VectorStoreFactory

__all__ = [
    "EmbedderFactory",
    "CentralIndexFactory",
    "RelationshipStoreFactory",
    "ModuleFactory",
    "VectorStoreFactory",
]
