"""
Tests for the embedding gateway and the hashing embedder.
"""

from unittest.mock import AsyncMock

import pytest

from memhub.core.embeddings.base import Embedder
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.embeddings.hashing import HashingEmbedder
from memhub.utils.exceptions import EmbeddingInputError, EmbeddingUnavailableError
from memhub.utils.vectors import cosine_similarity


def mock_embedder(side_effect=None, return_value=None) -> AsyncMock:
    embedder = AsyncMock(spec=Embedder)
    if side_effect is not None:
        embedder.embed.side_effect = side_effect
    else:
        embedder.embed.return_value = return_value or [1.0, 0.0, 0.0, 0.0]
    return embedder


@pytest.mark.unit
@pytest.mark.asyncio
class TestHashingEmbedder:
    async def test_dimension(self):
        embedder = HashingEmbedder(dimension=64)

        vector = await embedder.embed("hello world")

        assert len(vector) == 64
        assert await embedder.get_dimension() == 64

    async def test_deterministic(self):
        embedder = HashingEmbedder(dimension=256)

        assert await embedder.embed("renew the certificate") == await embedder.embed(
            "renew the certificate"
        )

    async def test_shared_words_are_similar(self):
        embedder = HashingEmbedder(dimension=1024)

        a = await embedder.embed("kubernetes deployment rollout")
        b = await embedder.embed("kubernetes deployment failed")

        assert cosine_similarity(a, b) > 0.3

    async def test_identical_text_similarity_one(self):
        embedder = HashingEmbedder(dimension=128)
        vector = await embedder.embed("same text")

        assert cosine_similarity(vector, vector) == pytest.approx(1.0)

    async def test_stop_words_only_is_not_zero(self):
        embedder = HashingEmbedder(dimension=32)

        vector = await embedder.embed("the and of")

        assert any(vector)

    async def test_empty_text_rejected(self):
        with pytest.raises(EmbeddingInputError):
            await HashingEmbedder().embed("   ")

    def test_invalid_dimension(self):
        with pytest.raises(ValueError):
            HashingEmbedder(dimension=0)


@pytest.mark.unit
@pytest.mark.asyncio
class TestEmbeddingGateway:
    async def test_embed_delegates(self):
        embedder = mock_embedder(return_value=[0.5, 0.5, 0.5, 0.5])
        gateway = EmbeddingGateway(embedder, index_dimension=2)

        assert await gateway.embed("text") == [0.5, 0.5, 0.5, 0.5]
        embedder.embed.assert_awaited_once_with("text")

    async def test_cache_hit_skips_provider(self):
        embedder = mock_embedder()
        gateway = EmbeddingGateway(embedder, index_dimension=2)

        await gateway.embed("text")
        await gateway.embed("text")

        assert embedder.embed.await_count == 1

    async def test_cache_returns_copy(self):
        gateway = EmbeddingGateway(mock_embedder(), index_dimension=2)

        first = await gateway.embed("text")
        first[0] = 99.0

        assert (await gateway.embed("text"))[0] == 1.0

    async def test_cache_eviction(self):
        embedder = mock_embedder()
        gateway = EmbeddingGateway(embedder, index_dimension=2, cache_size=1)

        await gateway.embed("a")
        await gateway.embed("b")
        await gateway.embed("a")

        assert embedder.embed.await_count == 3

    async def test_clear_cache(self):
        embedder = mock_embedder()
        gateway = EmbeddingGateway(embedder, index_dimension=2)

        await gateway.embed("a")
        gateway.clear_cache()
        await gateway.embed("a")

        assert embedder.embed.await_count == 2

    async def test_retries_unavailable(self):
        embedder = mock_embedder(
            side_effect=[EmbeddingUnavailableError("timeout"), [1.0, 0.0, 0.0, 0.0]]
        )
        gateway = EmbeddingGateway(embedder, index_dimension=2, retry_base_delay=0.0)

        assert await gateway.embed("text") == [1.0, 0.0, 0.0, 0.0]
        assert embedder.embed.await_count == 2

    async def test_unavailable_after_retries(self):
        embedder = mock_embedder(side_effect=EmbeddingUnavailableError("down"))
        gateway = EmbeddingGateway(embedder, index_dimension=2, max_retries=3, retry_base_delay=0.0)

        with pytest.raises(EmbeddingUnavailableError):
            await gateway.embed("text")

        assert embedder.embed.await_count == 3

    async def test_input_error_not_retried(self):
        embedder = mock_embedder(side_effect=EmbeddingInputError("too long"))
        gateway = EmbeddingGateway(embedder, index_dimension=2, max_retries=3, retry_base_delay=0.0)

        with pytest.raises(EmbeddingInputError):
            await gateway.embed("text")

        assert embedder.embed.await_count == 1

    async def test_embed_pair(self):
        gateway = EmbeddingGateway(HashingEmbedder(dimension=256), index_dimension=32)

        full, index = await gateway.embed_pair("renew the certificate")

        assert len(full) == 256
        assert len(index) == 32
        assert index == pytest.approx(gateway.compress(full))

    async def test_embed_index(self):
        gateway = EmbeddingGateway(HashingEmbedder(dimension=256), index_dimension=32)

        assert len(await gateway.embed_index("some text")) == 32

    async def test_get_dimension(self):
        gateway = EmbeddingGateway(HashingEmbedder(dimension=300), index_dimension=32)

        assert await gateway.get_dimension() == 300

    async def test_close_closes_embedder(self):
        embedder = mock_embedder()
        gateway = EmbeddingGateway(embedder, index_dimension=2)

        await gateway.close()

        embedder.close.assert_awaited_once()

    def test_invalid_index_dimension(self):
        with pytest.raises(ValueError):
            EmbeddingGateway(mock_embedder(), index_dimension=0)
