"""
OpenAI embedder using official SDK.
"""

import openai
from openai import AsyncOpenAI

from memhub.core.embeddings.base import Embedder
from memhub.utils.exceptions import (
    EmbeddingError,
    EmbeddingInputError,
    EmbeddingUnavailableError,
)
from memhub.utils.logger import get_logger

logger = get_logger(__name__)

# Failures worth retrying
_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)


class OpenAIEmbedder(Embedder):
    """
    OpenAI embedder for generating text embeddings.

    Supports models like text-embedding-3-small, text-embedding-3-large, etc.
    The SDK's own retry loop is disabled; retries happen in the gateway.
    """

    # Known dimensions for OpenAI embedding models
    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
    }

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        organization: str | None = None,
        base_url: str | None = None,
        timeout: float = 120.0,
    ):
        """
        Initialize OpenAI embedder.

        Args:
            api_key: OpenAI API key
            model: Embedding model name (e.g., "text-embedding-3-small")
            organization: Optional organization ID
            base_url: Optional custom base URL
            timeout: Request timeout in seconds
        """
        self.model = model

        self.client = AsyncOpenAI(
            api_key=api_key,
            organization=organization,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def embed(self, text: str, **kwargs) -> list[float]:
        """
        Generate embedding for text using OpenAI.

        Raises:
            EmbeddingInputError: Empty text or a rejected request
            EmbeddingUnavailableError: Timeouts, connection errors, 429 and 5xx
        """
        if not text or not text.strip():
            raise EmbeddingInputError("Text cannot be empty")

        try:
            response = await self.client.embeddings.create(model=self.model, input=text, **kwargs)

            if not response.data:
                raise EmbeddingUnavailableError("OpenAI returned empty embedding response")

            return list(response.data[0].embedding)
        except EmbeddingError:
            raise
        except _TRANSIENT_ERRORS as e:
            logger.warning(
                f"OpenAI embedding unavailable: {e}",
                extra={"model": self.model, "error_type": type(e).__name__},
            )
            raise EmbeddingUnavailableError(f"OpenAI embedding unavailable: {e}") from e
        except openai.APIStatusError as e:
            logger.error(
                f"OpenAI embedding error: {e}",
                extra={
                    "model": self.model,
                    "status_code": e.status_code,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise EmbeddingInputError(f"OpenAI rejected input: {e}") from e

    async def get_dimension(self) -> int:
        """
        Get embedding dimension.

        Uses known dimensions for OpenAI models, falling back to a test
        embedding if the model is not recognized.
        """
        if self.model in self._MODEL_DIMENSIONS:
            return self._MODEL_DIMENSIONS[self.model]
        return await super().get_dimension()

    async def close(self):
        """Close OpenAI client."""
        await self.client.close()
