"""
Embedding provider interface.

Providers only turn text into full-size vectors. Retries, caching and the
compact index vectors live in the gateway on top of them.
"""

from abc import ABC, abstractmethod


class Embedder(ABC):
    """
    One embedding backend (Ollama, OpenAI, hashing).

    Implementations map their SDK failures onto two errors so the gateway
    knows what to retry: ``EmbeddingUnavailableError`` for outages and
    rate limits, ``EmbeddingInputError`` for input the provider refuses.
    """

    @abstractmethod
    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Full embedding of ``text``.

        Raises:
            EmbeddingInputError: Provider refused the input
            EmbeddingUnavailableError: Provider down, throttled or timed out
        """
        pass

    async def get_dimension(self) -> int:
        """Size of produced vectors; probes the provider unless overridden."""
        return len(await self.embed("dimension probe"))

    @abstractmethod
    async def close(self) -> None:
        pass
