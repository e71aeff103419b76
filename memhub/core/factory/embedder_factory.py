"""
Factory for creating embedder providers and the embedding gateway.
"""

from memhub.config import EmbedderConfig
from memhub.core.embeddings.base import Embedder
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.embeddings.hashing import HashingEmbedder
from memhub.core.embeddings.ollama import OllamaEmbedder
from memhub.core.embeddings.openai import OpenAIEmbedder
from memhub.utils.exceptions import ConfigurationError


class EmbedderFactory:
    """Factory for creating embedder providers from configuration."""

    @staticmethod
    def create(config: EmbedderConfig) -> Embedder:
        """
        Create embedder from configuration.

        Raises:
            ConfigurationError: If provider is not supported
        """
        if config.provider == "ollama":
            return OllamaEmbedder(
                host=config.base_url,
                model=config.model,
                timeout=config.timeout,
            )
        elif config.provider == "openai":
            if not config.api_key:
                raise ConfigurationError("OpenAI API key is required")
            return OpenAIEmbedder(
                api_key=config.api_key,
                model=config.model,
                timeout=config.timeout,
            )
        elif config.provider == "hashing":
            return HashingEmbedder(dimension=config.dimension or 1536)
        else:
            raise ConfigurationError(f"Unsupported embedder provider: {config.provider}")

    @staticmethod
    def create_gateway(config: EmbedderConfig, embedder: Embedder | None = None) -> EmbeddingGateway:
        """Wrap an embedder (built from config when not given) in a gateway."""
        return EmbeddingGateway(
            embedder=embedder or EmbedderFactory.create(config),
            index_dimension=config.index_dimension,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
            cache_size=config.cache_size,
        )

    @staticmethod
    async def get_dimension(gateway: EmbeddingGateway, config: EmbedderConfig | None = None) -> int:
        """
        Get embedding dimension with fallback logic.

        Priority:
        1. From config if provided
        2. From the provider (known size or a test embedding)
        """
        if config and config.dimension:
            return config.dimension
        return await gateway.get_dimension()
