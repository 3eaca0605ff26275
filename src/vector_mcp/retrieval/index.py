"""
Flat vector index over registered tools, persisted as one JSON snapshot.

Every search is a linear scan: O(n*d) for n tools of dimension d, and a
rebuild re-embeds every tool. This is the intended scale limit (hundreds
to low thousands of tools); there is no approximate index behind it.
"""

import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

from loguru import logger

from ..errors import IndexIOError
from ..registry.models import ToolRecord
from ..storage import atomic_write_json
from .embedder import HashingEmbedder

SKILL_BODY_CHARS = 500
_WHITESPACE = re.compile(r"\s+")


@dataclass
class VectorEntry:
    """One indexed tool: id, embedding, and the tool payload."""

    id: str
    vector: list[float]
    tool: ToolRecord

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "vector": self.vector, "tool": self.tool.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VectorEntry":
        return cls(
            id=str(data["id"]),
            vector=[float(x) for x in data["vector"]],
            tool=ToolRecord.from_dict(data["tool"]),
        )


@dataclass
class SearchMatch:
    """A scored search result."""

    score: float
    tool: ToolRecord

    def to_dict(self) -> dict[str, Any]:
        return {"score": self.score, "tool": self.tool.to_dict()}


def cosine_similarity(vector_a: list[float], vector_b: list[float]) -> float:
    """
    Cosine similarity with the denominator floored to 1.

    Zero vectors therefore score 0 against everything. Vectors of unequal
    length are compared over their common prefix.
    """
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for a, b in zip(vector_a, vector_b):
        dot += a * b
        norm_a += a * a
        norm_b += b * b
    denominator = math.sqrt(norm_a) * math.sqrt(norm_b)
    return dot / (denominator or 1.0)


def build_embedding_input(tool: ToolRecord) -> str:
    """
    Text embedded for a tool.

    Skill-format tools add the first 500 characters of their
    whitespace-collapsed markdown body.
    """
    if tool.skill_format:
        body = _WHITESPACE.sub(" ", tool.markdown_body or "").strip()[:SKILL_BODY_CHARS]
        return " | ".join([tool.name, tool.description, tool.category or "", body])
    return " ".join([tool.name, tool.description, tool.category or ""])


class VectorIndex:
    """
    In-memory list of VectorEntry objects backed by a JSON snapshot file.

    The entry set is only ever replaced wholesale by :meth:`rebuild`.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.entries: list[VectorEntry] = []

    def __len__(self) -> int:
        return len(self.entries)

    def load(self) -> None:
        """
        Load entries from the snapshot file.

        A missing file leaves the index empty.

        Raises:
            IndexIOError: If the file cannot be read or is not a valid snapshot
        """
        if not self.path.exists():
            logger.debug(f"No index snapshot at {self.path}; starting empty")
            self.entries = []
            return

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            entries = [VectorEntry.from_dict(item) for item in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise IndexIOError(f"Failed to load index snapshot {self.path}: {e}") from e

        self.entries = entries
        logger.info(f"Loaded {len(entries)} index entries from {self.path}")

    def save(self) -> None:
        """
        Write the snapshot atomically.

        Raises:
            IndexIOError: If the snapshot cannot be written
        """
        try:
            atomic_write_json(self.path, [entry.to_dict() for entry in self.entries])
        except OSError as e:
            raise IndexIOError(f"Failed to save index snapshot {self.path}: {e}") from e

    def rebuild(self, tools: Iterable[ToolRecord], embedder: HashingEmbedder) -> None:
        """
        Re-embed every tool, replace all entries, and persist.

        Args:
            tools: Registry contents (ordered, unique ids)
            embedder: Embedder used for both tools and queries

        Raises:
            IndexIOError: If the new snapshot cannot be written
        """
        self.entries = [
            VectorEntry(id=tool.id, vector=embedder.embed(build_embedding_input(tool)), tool=tool)
            for tool in tools
        ]
        logger.info(f"Rebuilt vector index with {len(self.entries)} entries")
        self.save()

    def search(self, query: str, embedder: HashingEmbedder, top_k: int = 5) -> list[SearchMatch]:
        """
        Rank every entry by cosine similarity to the query.

        Equal scores keep index insertion order (stable sort).

        Args:
            query: Free-text query
            embedder: Embedder used at rebuild time
            top_k: Maximum number of matches

        Returns:
            Up to ``top_k`` matches, highest score first
        """
        if top_k <= 0:
            return []

        query_vector = embedder.embed(query)
        scored = [
            SearchMatch(score=cosine_similarity(query_vector, entry.vector), tool=entry.tool)
            for entry in self.entries
        ]
        scored.sort(key=lambda match: match.score, reverse=True)
        return scored[:top_k]
