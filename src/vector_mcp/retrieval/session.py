"""Session-aware re-ranking of search results."""

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

from loguru import logger

from .index import SearchMatch


@dataclass
class SessionHistory:
    """Recently matched tool ids for one session, newest last."""

    tool_ids: list[str] = field(default_factory=list)
    last_seen: float = 0.0


class SessionStore:
    """
    Bounded in-memory map of session id -> SessionHistory.

    Sessions idle for longer than ``ttl_seconds`` are dropped on access, and
    the least recently used session is evicted once ``max_sessions`` is
    reached. Not thread-safe: it is only touched from the event loop.
    """

    def __init__(
        self,
        max_sessions: int = 1024,
        ttl_seconds: float = 3600.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_sessions <= 0:
            raise ValueError(f"max_sessions must be > 0, got {max_sessions}")
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: "OrderedDict[str, SessionHistory]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return self.get(session_id) is not None

    def _expire(self, now: float) -> None:
        # Oldest entries sit at the front
        while self._sessions:
            session_id, history = next(iter(self._sessions.items()))
            if now - history.last_seen <= self.ttl_seconds:
                break
            del self._sessions[session_id]
            logger.debug(f"Session {session_id} expired")

    def get(self, session_id: str) -> Optional[SessionHistory]:
        """Return the live history for a session, or None."""
        self._expire(self._clock())
        return self._sessions.get(session_id)

    def history(self, session_id: str) -> list[str]:
        history = self.get(session_id)
        return list(history.tool_ids) if history else []

    def put(self, session_id: str, tool_ids: list[str]) -> None:
        """Store a session's history and mark it most recently used."""
        now = self._clock()
        self._expire(now)
        self._sessions[session_id] = SessionHistory(tool_ids=list(tool_ids), last_seen=now)
        self._sessions.move_to_end(session_id)
        while len(self._sessions) > self.max_sessions:
            evicted, _ = self._sessions.popitem(last=False)
            logger.debug(f"Session {evicted} evicted (max_sessions={self.max_sessions})")


class SessionRanker:
    """
    Boost tools a session has already seen.

    A tool surfaced earlier in the same session gets its score multiplied
    by ``boost`` on later queries, so related follow-up queries tend to
    resurface it.
    """

    def __init__(self, store: SessionStore, boost: float = 1.3, history_size: int = 20):
        self.store = store
        self.boost = boost
        self.history_size = history_size

    def rank(self, matches: list[SearchMatch], session_id: Optional[str] = None) -> list[SearchMatch]:
        """
        Re-rank raw matches for a session and record them in its history.

        Without a session id the matches are returned unchanged and no
        history is recorded.

        Args:
            matches: Raw index matches, highest score first
            session_id: Client-supplied correlation id

        Returns:
            New list of matches, highest (boosted) score first
        """
        if not session_id:
            return list(matches)

        previous = self.store.history(session_id)
        seen = set(previous)
        ranked = [
            SearchMatch(score=m.score * self.boost, tool=m.tool) if m.tool.id in seen else m
            for m in matches
        ]
        ranked.sort(key=lambda match: match.score, reverse=True)

        self.store.put(session_id, self._updated_history(previous, ranked))
        return ranked

    def _updated_history(self, previous: list[str], ranked: list[SearchMatch]) -> list[str]:
        # Weakest first so the top match becomes the newest id
        history = list(previous)
        for match in reversed(ranked):
            if match.tool.id in history:
                history.remove(match.tool.id)
            history.append(match.tool.id)
        return history[-self.history_size:]
