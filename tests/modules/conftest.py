"""
Fixtures for memory module tests.
"""

import pytest

from memhub.config import ModuleConfig
from memhub.core.factory import ModuleFactory
from memhub.core.modules.standard import VectorMemoryModule
from memhub.core.modules.technical import TechnicalModule
from memhub.core.vector_store.qdrant import QdrantStore


@pytest.fixture
def build_module(qdrant_client, gateway, central_index, relationship_store):
    """Build and initialize a module sharing the test stores."""

    async def _build(module_id: str = "work", kind: str = "standard", default_type: str = "note"):
        module_class = TechnicalModule if kind == "technical" else VectorMemoryModule
        info = ModuleFactory.info(
            ModuleConfig(
                module_id=module_id,
                display_name=module_id.title(),
                kind=kind,
                default_type=default_type,
            )
        )
        module = module_class(
            info=info,
            store=QdrantStore(
                collection_name=f"test_{module_id}",
                module_id=module_id,
                vector_size=await gateway.get_dimension(),
                client=qdrant_client,
            ),
            gateway=gateway,
            index=central_index,
            relationships=relationship_store,
            cascade_max_retries=2,
            cascade_base_delay=0.0,
        )
        await module.initialize()
        return module

    return _build
