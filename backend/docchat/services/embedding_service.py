"""Deterministic hash-based pseudo-embeddings."""
import math
from typing import List, Sequence

from docchat.utils.logger import logger

EMBEDDING_DIMENSION = 384


def text_hash(text: str) -> int:
    """
    32-bit polynomial rolling hash (h * 31 + unit) over UTF-16 code units.

    The running value is wrapped to a signed 32-bit integer after every step and
    the absolute value is returned, so vectors match ones cached by earlier
    deployments that hashed the same way.
    """
    value = 0
    encoded = text.encode("utf-16-le", errors="surrogatepass")
    for i in range(0, len(encoded), 2):
        unit = encoded[i] | (encoded[i + 1] << 8)
        value = ((value << 5) - value + unit) & 0xFFFFFFFF
        if value >= 0x80000000:
            value -= 0x100000000
    return abs(value)


class EmbeddingService:
    """Generates fixed-length vectors from text without any model call."""

    def __init__(self, dimension: int = EMBEDDING_DIMENSION):
        self.dimension = dimension

    def generate_embedding(self, text: str) -> List[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector; the zero vector if anything goes wrong
        """
        try:
            h = text_hash(text)
            return [
                math.sin(h + i) * 0.1 + math.cos(h * 2 + i) * 0.05
                for i in range(self.dimension)
            ]
        except Exception as e:
            logger.error(f"Error generating embedding: {str(e)}", exc_info=True)
            return [0.0] * self.dimension

    def generate_embeddings(self, texts: Sequence[str]) -> List[List[float]]:
        """Generate embeddings for multiple texts."""
        return [self.generate_embedding(text) for text in texts]

    @staticmethod
    def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
        """Cosine similarity; 0 for empty, mismatched or zero-magnitude vectors."""
        if len(vec_a) != len(vec_b) or len(vec_a) == 0:
            return 0.0

        dot_product = sum(a * b for a, b in zip(vec_a, vec_b))
        magnitude_a = math.sqrt(sum(a * a for a in vec_a))
        magnitude_b = math.sqrt(sum(b * b for b in vec_b))

        if magnitude_a == 0 or magnitude_b == 0:
            return 0.0

        return dot_product / (magnitude_a * magnitude_b)
