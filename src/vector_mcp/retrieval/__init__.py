"""Semantic retrieval for tool discovery."""

from .embedder import HashingEmbedder, embed
from .index import SearchMatch, VectorEntry, VectorIndex, cosine_similarity
from .session import SessionRanker, SessionStore

__all__ = [
    "HashingEmbedder",
    "SearchMatch",
    "SessionRanker",
    "SessionStore",
    "VectorEntry",
    "VectorIndex",
    "cosine_similarity",
    "embed",
]
