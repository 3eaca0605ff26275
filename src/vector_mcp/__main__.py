"""
Entry point for running vector_mcp as a module.

Allows running the server via:
    python -m vector_mcp stdio
    python -m vector_mcp sse --port 3000
"""

import sys

from vector_mcp.cli import main

if __name__ == "__main__":
    sys.exit(main())
