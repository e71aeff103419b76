"""
Shared test fixtures.

Everything runs offline: embeddings come from the hashing embedder, module
partitions and the central index live in Qdrant local mode (":memory:"),
and relationships go to a SQLite file under the test's tmp_path.
"""

from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path

import pytest
from qdrant_client import AsyncQdrantClient

from memhub.config import (
    Config,
    EmbedderConfig,
    LoggingConfig,
    QdrantConfig,
    ReconciliationConfig,
    RelationshipStoreConfig,
)
from memhub.core.central_index.qdrant import QdrantCentralIndex
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.embeddings.hashing import HashingEmbedder
from memhub.core.relationship_store.sqlite_store import SQLiteRelationshipStore
from memhub.models.memory import Memory
from memhub.services.memory_hub import MemoryHub

FULL_DIM = 1024
INDEX_DIM = 128


def make_test_config(tmp_path: Path) -> Config:
    """Fully local configuration for one test."""
    return Config(
        embedder=EmbedderConfig(
            provider="hashing",
            dimension=FULL_DIM,
            index_dimension=INDEX_DIM,
            max_retries=2,
            retry_base_delay=0.0,
        ),
        qdrant=QdrantConfig(location=":memory:", use_grpc=False, use_quantization=False),
        relationship_store=RelationshipStoreConfig(db_path=str(tmp_path / "relationships.db")),
        reconciliation=ReconciliationConfig(cascade_max_retries=2, cascade_base_delay=0.0),
        logging=LoggingConfig(log_to_file=False),
    )


@pytest.fixture
def test_config(tmp_path) -> Config:
    return make_test_config(tmp_path)


@pytest.fixture
def gateway() -> EmbeddingGateway:
    """Embedding gateway over the offline hashing embedder."""
    return EmbeddingGateway(
        HashingEmbedder(dimension=FULL_DIM),
        index_dimension=INDEX_DIM,
        max_retries=2,
        retry_base_delay=0.0,
    )


@pytest.fixture
async def qdrant_client() -> AsyncGenerator[AsyncQdrantClient, None]:
    client = AsyncQdrantClient(location=":memory:")
    yield client
    await client.close()


@pytest.fixture
async def central_index(qdrant_client) -> AsyncGenerator[QdrantCentralIndex, None]:
    index = QdrantCentralIndex(
        collection_name="test_central_index",
        vector_size=INDEX_DIM,
        client=qdrant_client,
    )
    await index.initialize()
    yield index
    await index.close()


@pytest.fixture
async def relationship_store(tmp_path) -> AsyncGenerator[SQLiteRelationshipStore, None]:
    store = SQLiteRelationshipStore(db_path=str(tmp_path / "relationships.db"))
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
async def hub(test_config) -> AsyncGenerator[MemoryHub, None]:
    """Initialized hub with the six default modules."""
    memory_hub = await MemoryHub.create(test_config)
    await memory_hub.initialize()
    yield memory_hub
    await memory_hub.close()


@pytest.fixture
def make_memory():
    """Build a Memory with sensible defaults."""

    def _make(
        memory_id: str = "mem_test",
        owner_id: str = "user-1",
        module_id: str = "personal",
        content: str = "Test memory content",
        embedding: list[float] | None = None,
        **kwargs,
    ) -> Memory:
        now = datetime.now()
        return Memory(
            id=memory_id,
            owner_id=owner_id,
            module_id=module_id,
            content=content,
            embedding=embedding if embedding is not None else [0.0] * (FULL_DIM - 1) + [1.0],
            created_at=kwargs.pop("created_at", now),
            updated_at=kwargs.pop("updated_at", now),
            **kwargs,
        )

    return _make
