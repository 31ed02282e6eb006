"""
Text embedding providers for the study-materials index.

The default provider is a character hash, not a learned model: cosine similarity
between its vectors measures character/keyword overlap, so relevance scores are an
approximate ranking signal only. It is kept as-is because stored vectors depend on it.
"""

from abc import ABC, abstractmethod
from typing import List

import numpy as np

EMBED_DIMENSION = 384
EMBED_TEXT_LIMIT = 5000


class IEmbeddingProvider(ABC):
    """Abstract interface for embedding providers."""

    @abstractmethod
    def embed_text(self, text: str) -> List[float]:
        """Generate embedding vector for given text."""
        pass

    @abstractmethod
    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        pass


def _utf16_code_units(token: str) -> List[int]:
    data = token.encode("utf-16-le", "surrogatepass")
    return [data[k] | (data[k + 1] << 8) for k in range(0, len(data), 2)]


class CharacterHashEmbedding(IEmbeddingProvider):
    """Deterministic multiplicative character hash into a fixed-width vector.

    For token ``i`` and character ``j`` within it, bucket
    ``(code * (i + 1) * (j + 1)) % dimension`` is incremented; the result is
    L2-normalized. Text with no tokens yields the all-zero vector.
    Character codes are UTF-16 code units so vectors match ones already stored.
    """

    def __init__(self, dimension: int = EMBED_DIMENSION):
        self.dimension = dimension

    def embed_text(self, text: str) -> List[float]:
        """Generate the hash embedding for ``text``. Never raises for string input."""
        tokens = (text or "").lower().strip().split()
        accumulator = np.zeros(self.dimension, dtype=np.float64)

        for i, token in enumerate(tokens):
            for j, code in enumerate(_utf16_code_units(token)):
                accumulator[(code * (i + 1) * (j + 1)) % self.dimension] += 1

        magnitude = np.sqrt(np.sum(accumulator * accumulator))
        if magnitude == 0:
            return accumulator.tolist()
        return (accumulator / magnitude).tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        return self.dimension


class SentenceTransformerEmbedding(IEmbeddingProvider):
    """Sentence transformers embedding provider using pre-trained models.

    all-MiniLM-L6-v2 produces 384-dimensional vectors, the collection width.
    Switching to it changes search behaviour and requires a full re-index.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model = None
        self._dimension = None

    @property
    def model(self):
        if self._model is None:
            from sentence_transformers import SentenceTransformer
            self._model = SentenceTransformer(self.model_name)
        return self._model

    def embed_text(self, text: str) -> List[float]:
        """Generate a normalized embedding vector using sentence transformers."""
        embedding = self.model.encode(text or "", convert_to_tensor=False, normalize_embeddings=True)
        return embedding.tolist()

    def get_dimension(self) -> int:
        """Get the dimension of the embedding vectors."""
        if self._dimension is None:
            self._dimension = self.model.get_sentence_embedding_dimension()
        return self._dimension


def build_embed_text(title: str, description: str, content: str) -> str:
    """Join title, description and content with single spaces, cut at EMBED_TEXT_LIMIT characters."""
    return f"{title} {description} {content}"[:EMBED_TEXT_LIMIT]
