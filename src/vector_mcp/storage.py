"""Atomic JSON file persistence shared by the registry and the vector index."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_json(path: Path, data: Any) -> None:
    """
    Write ``data`` as JSON to ``path`` via a temp file and ``os.replace``.

    Readers see either the previous file or the complete new one. The
    parent directory is created if needed.

    Raises:
        OSError: If the temp file cannot be written or renamed
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
