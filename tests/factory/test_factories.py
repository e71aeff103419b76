"""
Tests for component factories.
"""

import pytest

from memhub.config import Config, EmbedderConfig, ModuleConfig, QdrantConfig
from memhub.core.central_index.qdrant import QdrantCentralIndex
from memhub.core.embeddings.hashing import HashingEmbedder
from memhub.core.embeddings.ollama import OllamaEmbedder
from memhub.core.embeddings.openai import OpenAIEmbedder
from memhub.core.factory import (
    CentralIndexFactory,
    EmbedderFactory,
    ModuleFactory,
    RelationshipStoreFactory,
    VectorStoreFactory,
)
from memhub.core.modules.standard import VectorMemoryModule
from memhub.core.modules.technical import TechnicalModule
from memhub.core.relationship_store.sqlite_store import SQLiteRelationshipStore
from memhub.core.vector_store.qdrant import QdrantStore
from memhub.utils.exceptions import ConfigurationError


@pytest.mark.unit
class TestEmbedderFactory:
    def test_create_ollama(self):
        embedder = EmbedderFactory.create(EmbedderConfig(provider="ollama"))

        assert isinstance(embedder, OllamaEmbedder)
        assert embedder.model == "nomic-embed-text"

    def test_create_openai(self):
        embedder = EmbedderFactory.create(
            EmbedderConfig(provider="openai", model="text-embedding-3-small", api_key="sk-test")
        )

        assert isinstance(embedder, OpenAIEmbedder)

    def test_openai_requires_key(self):
        with pytest.raises(ConfigurationError, match="API key"):
            EmbedderFactory.create(EmbedderConfig(provider="openai"))

    def test_create_hashing(self):
        embedder = EmbedderFactory.create(EmbedderConfig(provider="hashing", dimension=64))

        assert isinstance(embedder, HashingEmbedder)
        assert embedder.dimension == 64

    def test_unsupported_provider(self):
        with pytest.raises(ConfigurationError, match="Unsupported"):
            EmbedderFactory.create(EmbedderConfig(provider="word2vec"))

    def test_create_gateway(self):
        config = EmbedderConfig(provider="hashing", index_dimension=64, cache_size=10)

        gateway = EmbedderFactory.create_gateway(config)

        assert gateway.index_dimension == 64
        assert gateway.cache_size == 10

    @pytest.mark.asyncio
    async def test_get_dimension_prefers_config(self):
        config = EmbedderConfig(provider="hashing", dimension=128)
        gateway = EmbedderFactory.create_gateway(config)

        assert await EmbedderFactory.get_dimension(gateway, config) == 128

    @pytest.mark.asyncio
    async def test_get_dimension_from_provider(self):
        gateway = EmbedderFactory.create_gateway(EmbedderConfig(provider="hashing"))

        assert await EmbedderFactory.get_dimension(gateway) == 1536


@pytest.mark.unit
class TestStoreFactories:
    def test_collection_name(self):
        assert VectorStoreFactory.collection_name(QdrantConfig(), "work") == "memhub_work"
        assert (
            VectorStoreFactory.collection_name(QdrantConfig(collection_prefix="t"), "work")
            == "t_work"
        )

    def test_create_partition(self):
        store = VectorStoreFactory.create(QdrantConfig(location=":memory:"), "work", 256)

        assert isinstance(store, QdrantStore)
        assert store.collection_name == "memhub_work"
        assert store.module_id == "work"
        assert store.vector_size == 256

    def test_create_central_index(self):
        config = Config(embedder=EmbedderConfig(index_dimension=64))

        index = CentralIndexFactory.create(config)

        assert isinstance(index, QdrantCentralIndex)
        assert index.vector_size == 64
        assert index.collection_name == "memhub_central_index"

    def test_create_relationship_store(self, tmp_path):
        config = Config()
        config.relationship_store.db_path = str(tmp_path / "rel.db")

        store = RelationshipStoreFactory.create(config)

        assert isinstance(store, SQLiteRelationshipStore)
        assert store.db_path == str(tmp_path / "rel.db")


@pytest.mark.unit
class TestModuleFactory:
    def test_info_for_technical(self):
        info = ModuleFactory.info(
            ModuleConfig(module_id="technical", display_name="Technical", kind="technical")
        )

        assert info.kind == "technical"
        assert "framework" in info.indexed_fields

    def test_create_registry(self, test_config, gateway, relationship_store):
        registry = ModuleFactory.create_registry(
            test_config, gateway, CentralIndexFactory.create(test_config), relationship_store, 1024
        )

        assert registry.active_ids() == sorted(m.module_id for m in test_config.modules)
        assert isinstance(registry.get("technical"), TechnicalModule)
        assert type(registry.get("work")) is VectorMemoryModule

    def test_unsupported_kind(self, test_config, gateway, relationship_store):
        with pytest.raises(ConfigurationError, match="Unsupported module kind"):
            ModuleFactory.create(
                ModuleConfig(module_id="x", display_name="X", kind="graph"),
                test_config,
                gateway,
                CentralIndexFactory.create(test_config),
                relationship_store,
                1024,
            )
