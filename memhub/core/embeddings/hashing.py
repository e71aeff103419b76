"""
Deterministic feature-hashing embedder.

Runs fully offline, so development setups and the test suite can exercise
the whole write and read path without an embedding server. Texts that share
content words get a positive cosine similarity; unrelated texts land near 0.
"""

import hashlib

from memhub.core.embeddings.base import Embedder
from memhub.utils.exceptions import EmbeddingInputError
from memhub.utils.text import content_words, tokenize
from memhub.utils.vectors import normalize


class HashingEmbedder(Embedder):
    """Signed feature hashing over lowercase content words."""

    def __init__(self, dimension: int = 1536):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self.dimension = dimension

    def _bucket(self, token: str) -> tuple[int, float]:
        digest = hashlib.sha256(token.encode("utf-8")).digest()
        index = int.from_bytes(digest[:8], "big") % self.dimension
        sign = 1.0 if digest[8] & 1 else -1.0
        return index, sign

    async def embed(self, text: str, **kwargs) -> list[float]:
        if not text or not text.strip():
            raise EmbeddingInputError("Text cannot be empty")

        # Fall back to every token, then to the raw text, so the vector is never zero
        tokens = content_words(text) or tokenize(text) or [text.strip().lower()]

        vector = [0.0] * self.dimension
        for token in tokens:
            index, sign = self._bucket(token)
            vector[index] += sign
        if not any(vector):
            index, sign = self._bucket(text.strip().lower())
            vector[index] = sign

        return normalize(vector)

    async def get_dimension(self) -> int:
        return self.dimension

    async def close(self):
        pass
