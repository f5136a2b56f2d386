"""
Centralized file I/O utilities.

- Single place for encoding and path-string handling
- Use Path.read_bytes() consistently (no raw open/read)
"""

import os
from pathlib import Path
from typing import Union

from .config import DEFAULT_FILE_ENCODING


def read_source_bytes(path: Union[Path, str]) -> bytes:
    """Read a file from disk as raw bytes."""
    p = Path(path) if not isinstance(path, Path) else path
    return p.read_bytes()


def decode_source(data: bytes) -> str:
    """Decode module source bytes with the standard encoding."""
    return data.decode(DEFAULT_FILE_ENCODING)


def to_generic_path(path: Union[Path, str]) -> str:
    """Absolute, lexically normal, forward-slash form of a filesystem path."""
    normalized = os.path.normpath(os.path.abspath(str(path)))
    return normalized.replace(os.sep, "/")
