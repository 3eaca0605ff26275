"""Composition root: wires registry, index, ranker and dispatcher to a transport."""

from pathlib import Path
from typing import Optional

import uvicorn
from loguru import logger

from .config import Config
from .errors import IndexIOError
from .registry.registry import ToolRegistry
from .retrieval.embedder import HashingEmbedder
from .retrieval.index import SearchMatch, VectorIndex
from .retrieval.session import SessionRanker, SessionStore
from .rpc.dispatcher import RpcDispatcher
from .rpc.invocation import ToolInvoker
from .transports.sse import SseTransport
from .transports.stdio import StdioTransport


class VectorMcpServer:
    """
    Owns every long-lived component of one server process.

    The session store lives here rather than at module level, so its
    bounds are set per server and tests get a fresh one per instance.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        index: VectorIndex,
        embedder: Optional[HashingEmbedder] = None,
        invoker: Optional[ToolInvoker] = None,
    ):
        self.registry = registry
        self.index = index
        self.embedder = embedder or HashingEmbedder(Config.EMBEDDING_DIM)
        self.invoker = invoker or ToolInvoker(timeout=Config.INVOKE_TIMEOUT)
        self.sessions = SessionStore(
            max_sessions=Config.SESSION_MAX_SESSIONS,
            ttl_seconds=Config.SESSION_TTL_SECONDS,
        )
        self.ranker = SessionRanker(
            self.sessions,
            boost=Config.SESSION_BOOST,
            history_size=Config.SESSION_HISTORY_SIZE,
        )
        self.dispatcher = RpcDispatcher(
            registry=self.registry,
            index=self.index,
            embedder=self.embedder,
            invoker=self.invoker,
            list_top_k=Config.LIST_TOP_K,
        )

    @classmethod
    def from_config(cls) -> "VectorMcpServer":
        """Build a server from Config paths (nothing is loaded yet)."""
        Config.validate()
        Path(Config.DATA_DIR).mkdir(parents=True, exist_ok=True)
        return cls(
            registry=ToolRegistry(Config.TOOLS_PATH),
            index=VectorIndex(Config.INDEX_PATH),
        )

    def bootstrap(self) -> None:
        """
        Load the registry and the index snapshot.

        An unreadable snapshot is logged and replaced by a fresh rebuild.
        A snapshot that does not match the registry (ids, tool payloads or
        vector dimension) is rebuilt as well.
        """
        self.registry.load()
        logger.info(f"Tool registry initialized with {len(self.registry)} tools")

        try:
            self.index.load()
        except IndexIOError as e:
            logger.error(f"{e}. Falling back to an empty index.")
            self.index.entries = []

        if not self._snapshot_is_current():
            logger.info("Index snapshot is out of date with the registry; rebuilding")
            self.sync()

    def _snapshot_is_current(self) -> bool:
        # Ids are hash(source:name), so in-place edits only show in the payload
        tools = self.registry.get_all()
        if len(tools) != len(self.index.entries):
            return False
        for entry, tool in zip(self.index.entries, tools):
            if entry.id != tool.id or len(entry.vector) != self.embedder.dim:
                return False
            if entry.tool.to_dict() != tool.to_dict():
                return False
        return True

    def sync(self) -> None:
        """
        Rebuild the index from the current registry contents.

        Source-sync pipelines call this after replacing registry content.
        A failed snapshot write keeps the rebuilt in-memory index.
        """
        try:
            self.index.rebuild(self.registry.get_all(), self.embedder)
        except IndexIOError as e:
            logger.error(f"{e}. Serving the in-memory index only.")

    def query(self, text: str, top_k: int = Config.DEFAULT_TOP_K, session_id: Optional[str] = None) -> list[SearchMatch]:
        """Search the index and apply session re-ranking."""
        matches = self.index.search(text, self.embedder, top_k)
        return self.ranker.rank(matches, session_id)

    async def run_stdio(self) -> None:
        transport = StdioTransport(self.dispatcher)
        try:
            await transport.run()
        finally:
            await self.invoker.close()

    def run_sse(self, host: str = Config.HOST, port: int = Config.PORT) -> None:
        transport = SseTransport(self.dispatcher, self.ranker, default_top_k=Config.DEFAULT_TOP_K)
        logger.info(f"Listening on http://{host}:{port}")
        uvicorn.run(transport.app, host=host, port=port, log_level="warning")
