"""
Deterministic hashed bag-of-words embeddings.

Each token is hashed into one of ``dim`` buckets and the bucket counts are
L2-normalized. The same text maps to the same vector in every process, so
a persisted index stays valid after a restart.
"""

import hashlib
import math
import re

_TOKEN_PATTERN = re.compile(r"[a-z0-9_]+")


def tokenize(text: str) -> list[str]:
    """
    Tokenize text into lowercase word tokens.

    Args:
        text: Input text to tokenize

    Returns:
        List of runs of ``[a-z0-9_]`` from the lowercased text
    """
    return _TOKEN_PATTERN.findall(str(text or "").lower())


def _bucket(token: str, dim: int) -> int:
    digest = hashlib.sha256(token.encode("utf-8")).digest()
    return int.from_bytes(digest[:2], "big") % dim


def normalize(vector: list[float]) -> list[float]:
    """Scale vector to unit length; the zero vector is returned unchanged."""
    magnitude = math.sqrt(sum(x * x for x in vector))
    if magnitude == 0:
        return vector
    return [x / magnitude for x in vector]


def embed(text: str, dim: int) -> list[float]:
    """
    Embed text into a unit-length vector of exactly ``dim`` floats.

    Text with no alphanumeric tokens yields the all-zero vector.

    Args:
        text: Text to embed
        dim: Output dimension (must be > 0)

    Returns:
        Normalized bucket-count vector
    """
    if dim <= 0:
        raise ValueError(f"dim must be > 0, got {dim}")

    vector = [0.0] * dim
    for token in tokenize(text):
        vector[_bucket(token, dim)] += 1.0
    return normalize(vector)


class HashingEmbedder:
    """Fixed-dimension wrapper around :func:`embed`."""

    def __init__(self, dim: int = 384):
        if dim <= 0:
            raise ValueError(f"dim must be > 0, got {dim}")
        self.dim = dim

    def embed(self, text: str) -> list[float]:
        return embed(text, self.dim)
