"""
Embedder abstraction layer for text embeddings.

Supported providers:
- Ollama (native SDK)
- OpenAI (official SDK)
- Hashing (deterministic, offline)

EmbeddingGateway wraps any provider with retry, caching and
index-vector compression.
"""

from memhub.core.embeddings.base import Embedder
from memhub.core.embeddings.gateway import EmbeddingGateway
from memhub.core.embeddings.hashing import HashingEmbedder
from memhub.core.embeddings.ollama import OllamaEmbedder
from memhub.core.embeddings.openai import OpenAIEmbedder

__all__ = [
    "Embedder",
    "EmbeddingGateway",
    "HashingEmbedder",
    "OllamaEmbedder",
    "OpenAIEmbedder",
]
