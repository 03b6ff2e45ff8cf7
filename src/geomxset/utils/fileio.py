"""
Atomic file-write utilities.

Prevents corrupted exports when a process is interrupted mid-write by
writing to a temporary file in the same directory and then performing an
atomic ``os.replace()``.
"""

from __future__ import annotations

import json
import os
import tempfile
from typing import Any


def _atomic_write(path: str | os.PathLike, write) -> None:
    path = str(path)
    dir_path = os.path.dirname(path) or "."
    tmp_path: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w", dir=dir_path, suffix=".tmp", delete=False, encoding="utf-8", newline=""
        ) as tmp:
            tmp_path = tmp.name
            write(tmp)
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any failure
        if tmp_path is not None and os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def atomic_write_json(path: str | os.PathLike, data: Any, *, indent: int = 2) -> None:
    """Write *data* as JSON atomically via temp-file + rename.

    Parameters
    ----------
    path:
        Destination file path.
    data:
        JSON-serializable object. Values JSON cannot represent natively
        (numpy scalars, paths) are written via ``str()``.
    indent:
        JSON indentation (default 2).
    """
    _atomic_write(path, lambda handle: json.dump(data, handle, indent=indent, default=str))


def atomic_write_text(path: str | os.PathLike, content: str) -> None:
    """Write *content* as text atomically via temp-file + rename."""
    _atomic_write(path, lambda handle: handle.write(content))
