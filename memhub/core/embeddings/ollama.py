"""
Ollama embedder using native ollama-python SDK.
"""

import asyncio

import httpx
import ollama

from memhub.core.embeddings.base import Embedder
from memhub.utils.exceptions import (
    EmbeddingError,
    EmbeddingInputError,
    EmbeddingUnavailableError,
)
from memhub.utils.logger import get_logger

logger = get_logger(__name__)


class OllamaEmbedder(Embedder):
    """
    Ollama embedder for generating text embeddings.

    Uses native ollama-python SDK for embedding generation.
    Supports models like nomic-embed-text, mxbai-embed-large, etc.
    """

    def __init__(
        self,
        host: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 120.0,
    ):
        """
        Initialize Ollama embedder.

        Args:
            host: Ollama server URL
            model: Embedding model name (e.g., "nomic-embed-text", "mxbai-embed-large")
            timeout: Request timeout in seconds
        """
        self.host = host
        self.model = model
        self.timeout = timeout
        self._dimension = None  # Cache dimension

        self.client = ollama.AsyncClient(host=host, timeout=timeout)

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using Ollama.

        Raises:
            EmbeddingInputError: Empty text or a 4xx response (not retried)
            EmbeddingUnavailableError: Connection errors, timeouts, 429 and 5xx
        """
        if not text or not text.strip():
            raise EmbeddingInputError("Text cannot be empty")

        try:
            response = await self.client.embeddings(model=self.model, prompt=text, **kwargs)

            if not response or "embedding" not in response or not response["embedding"]:
                raise EmbeddingUnavailableError("Ollama returned invalid embedding response")

            return list(response["embedding"])
        except EmbeddingError:
            raise
        except ollama.ResponseError as e:
            logger.error(
                f"Ollama embedding error: {e}",
                extra={
                    "model": self.model,
                    "host": self.host,
                    "status_code": e.status_code,
                    "error": str(e),
                },
            )
            if e.status_code == 429 or e.status_code >= 500:
                raise EmbeddingUnavailableError(f"Ollama embedding error: {e}") from e
            raise EmbeddingInputError(f"Ollama rejected input: {e}") from e
        except (httpx.TransportError, ConnectionError, asyncio.TimeoutError) as e:
            logger.warning(
                f"Ollama unreachable: {e}",
                extra={"model": self.model, "host": self.host, "error_type": type(e).__name__},
            )
            raise EmbeddingUnavailableError(f"Ollama unreachable: {e}") from e

    async def get_dimension(self) -> int:
        """Get embedding dimension, cached after the first call."""
        if self._dimension is None:
            test_embedding = await self.embed("test")
            self._dimension = len(test_embedding)
        return self._dimension

    async def close(self):
        """Close client (Ollama SDK handles cleanup internally)."""
        pass
