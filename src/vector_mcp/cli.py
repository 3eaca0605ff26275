"""Command-line entry point for VectorMCP."""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from loguru import logger

from .config import Config
from .logging_setup import configure_logging
from .registry.formatting import format_search_results
from .server import VectorMcpServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vectormcp", description="Semantic MCP tool router")
    parser.add_argument("--log-level", default=Config.LOG_LEVEL, help="console log level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stdio", help="serve MCP over stdin/stdout")

    sse = subparsers.add_parser("sse", help="serve MCP over HTTP with Server-Sent Events")
    sse.add_argument("--host", default=Config.HOST)
    sse.add_argument("--port", type=int, default=Config.PORT)

    subparsers.add_parser("rebuild", help="rebuild the vector index from the registry")

    query = subparsers.add_parser("query", help="search the local index")
    query.add_argument("text")
    query.add_argument("-k", "--top-k", type=int, default=Config.DEFAULT_TOP_K)
    query.add_argument("--session", default=None, help="session id for re-ranking")

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main entry point.

    Configures loguru, bootstraps the server, then runs the chosen command.

    Returns:
        Process exit code
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, Config.LOG_FILE)

    try:
        server = VectorMcpServer.from_config()
        server.bootstrap()

        if args.command == "stdio":
            asyncio.run(server.run_stdio())
        elif args.command == "sse":
            server.run_sse(host=args.host, port=args.port)
        elif args.command == "rebuild":
            server.sync()
            print(f"Indexed {len(server.index)} tools into {server.index.path}")
        elif args.command == "query":
            print(format_search_results(server.query(args.text, args.top_k, args.session)))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except Exception as e:
        logger.error(f"Server error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
