"""
Embedding gateway.

The single entry point the rest of the system uses to turn text into
vectors. Wraps a provider with retry on transient failures, an in-process
LRU cache, and compression of full vectors into central index vectors.
"""

import hashlib
from collections import OrderedDict

from memhub.core.embeddings.base import Embedder
from memhub.utils.exceptions import EmbeddingUnavailableError
from memhub.utils.logger import get_logger
from memhub.utils.retry import retry_async
from memhub.utils.vectors import reduce_dimensions

logger = get_logger(__name__)


class EmbeddingGateway:
    """
    Provider-agnostic embedding access.

    Only ``EmbeddingUnavailableError`` is retried; ``EmbeddingInputError``
    surfaces on the first attempt.
    """

    def __init__(
        self,
        embedder: Embedder,
        index_dimension: int = 512,
        max_retries: int = 3,
        retry_base_delay: float = 0.5,
        cache_size: int = 1024,
    ):
        if index_dimension <= 0:
            raise ValueError("index_dimension must be positive")

        self.embedder = embedder
        self.index_dimension = index_dimension
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.cache_size = cache_size
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._dimension: int | None = None

    @staticmethod
    def _cache_key(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    async def embed(self, text: str) -> list[float]:
        """
        Full-size embedding of ``text``.

        Raises:
            EmbeddingUnavailableError: Provider still failing after retries
            EmbeddingInputError: Provider rejected the input
        """
        key = self._cache_key(text)
        cached = self._cache.get(key)
        if cached is not None:
            self._cache.move_to_end(key)
            return list(cached)

        vector = await retry_async(
            lambda: self.embedder.embed(text),
            operation_name="embed",
            retry_on=(EmbeddingUnavailableError,),
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
        )

        if self._dimension is None:
            self._dimension = len(vector)

        if self.cache_size > 0:
            self._cache[key] = list(vector)
            if len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)

        return vector

    def compress(self, vector: list[float]) -> list[float]:
        """Reduce a full vector to the central index dimension."""
        return reduce_dimensions(vector, self.index_dimension)

    async def embed_index(self, text: str) -> list[float]:
        """Index-size embedding of ``text``."""
        return self.compress(await self.embed(text))

    async def embed_pair(self, text: str) -> tuple[list[float], list[float]]:
        """Full and index embeddings of ``text`` from a single provider call."""
        full = await self.embed(text)
        return full, self.compress(full)

    async def get_dimension(self) -> int:
        """Full embedding dimension."""
        if self._dimension is None:
            self._dimension = await self.embedder.get_dimension()
        return self._dimension

    def clear_cache(self) -> None:
        self._cache.clear()

    async def close(self):
        await self.embedder.close()
