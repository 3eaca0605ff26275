"""Centralized configuration for VectorMCP."""

import os


class Config:
    """
    VectorMCP configuration with environment variable overrides.

    All configuration values are centralized here with sensible defaults.
    Values can be overridden via environment variables.
    """

    @staticmethod
    def _parse_port(port_str: str) -> int:
        """Parse and validate port number from string."""
        try:
            port = int(port_str)
            if not (1 <= port <= 65535):
                raise ValueError(f"Port must be 1-65535, got {port}")
            return port
        except ValueError as e:
            raise ValueError(f"Invalid PORT environment variable: {e}")

    # ========================================================================
    # Server Configuration
    # ========================================================================
    SERVER_NAME: str = "vectormcp"
    PROTOCOL_VERSION: str = "2024-11-05"
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = _parse_port.__func__(os.getenv("PORT", "3000"))

    # ========================================================================
    # Storage Configuration
    # ========================================================================
    DATA_DIR: str = os.getenv("DATA_DIR", "./data")
    TOOLS_PATH: str = os.getenv("TOOLS_PATH", os.path.join(DATA_DIR, "tools.json"))
    INDEX_PATH: str = os.getenv("INDEX_PATH", os.path.join(DATA_DIR, "index.json"))

    # ========================================================================
    # Retrieval Configuration
    # ========================================================================
    EMBEDDING_DIM: int = int(os.getenv("EMBEDDING_DIM", "384"))
    DEFAULT_TOP_K: int = int(os.getenv("DEFAULT_TOP_K", "5"))  # REST queries
    LIST_TOP_K: int = int(os.getenv("LIST_TOP_K", "10"))  # tools/list, completion

    # ========================================================================
    # Session Ranking
    # ========================================================================
    SESSION_BOOST: float = float(os.getenv("SESSION_BOOST", "1.3"))
    SESSION_HISTORY_SIZE: int = int(os.getenv("SESSION_HISTORY_SIZE", "20"))
    SESSION_MAX_SESSIONS: int = int(os.getenv("SESSION_MAX_SESSIONS", "1024"))
    SESSION_TTL_SECONDS: float = float(os.getenv("SESSION_TTL_SECONDS", "3600"))

    # ========================================================================
    # Tool Invocation
    # ========================================================================
    INVOKE_TIMEOUT: float = float(os.getenv("INVOKE_TIMEOUT", "30"))

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FILE: str | None = os.getenv("LOG_FILE") or None

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration consistency.

        Checks:
        - Embedding dimension and top-K defaults are positive
        - Session bounds are positive and the boost does not penalize
        - Invocation timeout is positive

        Returns:
            True if validation passes

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if cls.EMBEDDING_DIM <= 0:
            errors.append(f"EMBEDDING_DIM must be > 0, got {cls.EMBEDDING_DIM}")

        for name in ("DEFAULT_TOP_K", "LIST_TOP_K"):
            value = getattr(cls, name)
            if value <= 0:
                errors.append(f"{name} must be > 0, got {value}")

        if cls.SESSION_BOOST < 1.0:
            errors.append(f"SESSION_BOOST must be >= 1.0, got {cls.SESSION_BOOST}")

        for name in ("SESSION_HISTORY_SIZE", "SESSION_MAX_SESSIONS", "SESSION_TTL_SECONDS"):
            value = getattr(cls, name)
            if value <= 0:
                errors.append(f"{name} must be > 0, got {value}")

        if cls.INVOKE_TIMEOUT <= 0:
            errors.append(f"INVOKE_TIMEOUT must be > 0, got {cls.INVOKE_TIMEOUT}")

        if errors:
            raise ValueError(f"Config validation failed: {'; '.join(errors)}")

        return True
