"""
Factory for creating memory modules and the module registry.
"""

from qdrant_client import AsyncQdrantClient

from memhub.config import Config, ModuleConfig
from memhub.core.central_index.base import CentralIndex
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.factory.vector_factory import VectorStoreFactory
from memhub.core.modules.base import MemoryModule
from memhub.core.modules.registry import ModuleRegistry
from memhub.core.modules.standard import VectorMemoryModule
from memhub.core.modules.technical import (
    TECHNICAL_INDEXED_FIELDS,
    TECHNICAL_SEARCHABLE_FIELDS,
    TechnicalModule,
)
from memhub.core.relationship_store.base import RelationshipStore
from memhub.models.module import ModuleInfo
from memhub.utils.exceptions import ConfigurationError

_MODULE_CLASSES: dict[str, type[VectorMemoryModule]] = {
    "standard": VectorMemoryModule,
    "technical": TechnicalModule,
}


class ModuleFactory:
    """Factory for creating memory modules from configuration."""

    @staticmethod
    def info(module_config: ModuleConfig) -> ModuleInfo:
        if module_config.kind == "technical":
            searchable, indexed = TECHNICAL_SEARCHABLE_FIELDS, TECHNICAL_INDEXED_FIELDS
        else:
            searchable, indexed = ["content", "type"], ["type"]

        return ModuleInfo(
            module_id=module_config.module_id,
            display_name=module_config.display_name,
            description=module_config.description,
            kind=module_config.kind,
            active=module_config.active,
            default_type=module_config.default_type,
            searchable_fields=list(searchable),
            indexed_fields=list(indexed),
            metadata_schema={field: "string" for field in indexed},
        )

    @staticmethod
    def create(
        module_config: ModuleConfig,
        config: Config,
        gateway: EmbeddingGateway,
        index: CentralIndex,
        relationships: RelationshipStore,
        vector_size: int,
        client: AsyncQdrantClient | None = None,
    ) -> MemoryModule:
        """
        Create one module with its own partition.

        Raises:
            ConfigurationError: If the module kind is not supported
        """
        module_class = _MODULE_CLASSES.get(module_config.kind)
        if module_class is None:
            raise ConfigurationError(
                f"Unsupported module kind: {module_config.kind}",
                {"module_id": module_config.module_id},
            )

        return module_class(
            info=ModuleFactory.info(module_config),
            store=VectorStoreFactory.create(
                config.qdrant, module_config.module_id, vector_size, client=client
            ),
            gateway=gateway,
            index=index,
            relationships=relationships,
            cascade_max_retries=config.reconciliation.cascade_max_retries,
            cascade_base_delay=config.reconciliation.cascade_base_delay,
        )

    @staticmethod
    def create_registry(
        config: Config,
        gateway: EmbeddingGateway,
        index: CentralIndex,
        relationships: RelationshipStore,
        vector_size: int,
        client: AsyncQdrantClient | None = None,
    ) -> ModuleRegistry:
        return ModuleRegistry(
            [
                ModuleFactory.create(
                    module_config, config, gateway, index, relationships, vector_size, client
                )
                for module_config in config.modules
            ]
        )
