"""
Embedded Bundle

Read-only virtual filesystem appended to a runtime binary (or stored as a
standalone .bundle file). Layout, all integers little-endian:

    [prefix bytes][file blobs][index][footer]

    footer: magic(8) u32 version, u32 reserved, u64 index_size
    index:  u32 version, u32 file_count, u32 entry_len, u32 reserved, entry
            then per file: u32 path_len, u32 reserved, u64 offset, u64 size, path

Offsets are relative to the first blob.
"""

import io
import logging
import os
import posixpath
import struct
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Optional, Tuple, Union

from ..shared.errors import BundleFormatError
from ..utils.config import (
    BUNDLE_MAGIC, BUNDLE_VERSION, BUNDLE_ENV_VAR, DEFAULT_BUNDLE_FILENAME, FILE_URL_PREFIX,
)

logger = logging.getLogger(__name__)

_FOOTER = struct.Struct("<8sIIQ")
_INDEX_HEADER = struct.Struct("<IIII")
_RECORD = struct.Struct("<IIQQ")


def normalize_bundle_path(path: str) -> str:
    """
    Map a path into bundle key space.

    Returns "" for the bundle root, for empty input and for anything that
    escapes the bundle (leading "..").
    """
    normalized = path
    if normalized.startswith(FILE_URL_PREFIX):
        normalized = normalized[len(FILE_URL_PREFIX):]
    normalized = normalized.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    if not normalized:
        return ""
    normalized = posixpath.normpath(normalized).lstrip("/")
    if normalized == "." or normalized == ".." or normalized.startswith("../"):
        return ""
    return normalized


@dataclass(frozen=True)
class BundleFileInfo:
    offset: int
    size: int


class EmbeddedBundle:
    """In-memory index over a bundle; blob bytes are read on demand."""

    def __init__(self, entry_path: str, files: Dict[str, BundleFileInfo],
                 data_start: int, path: Optional[str] = None, data: Optional[bytes] = None):
        self._entry_path = entry_path
        self._files = files
        self._data_start = data_start
        self._path = path
        self._data = data

    @classmethod
    def load_from_path(cls, path: Union[Path, str]) -> Optional["EmbeddedBundle"]:
        """Open a bundle file or a binary with a bundle appended; None if absent or malformed."""
        try:
            with open(path, "rb") as f:
                return cls._load(f, os.path.getsize(path), path=str(path))
        except OSError as e:
            logger.debug(f"Bundle not readable at {path}: {e}")
            return None

    @classmethod
    def from_bytes(cls, data: bytes) -> Optional["EmbeddedBundle"]:
        return cls._load(io.BytesIO(data), len(data), data=data)

    @classmethod
    def _load(cls, f: BinaryIO, file_size: int, path: Optional[str] = None,
              data: Optional[bytes] = None) -> Optional["EmbeddedBundle"]:
        if file_size <= _FOOTER.size:
            return None

        f.seek(file_size - _FOOTER.size)
        footer = f.read(_FOOTER.size)
        if len(footer) != _FOOTER.size:
            return None
        magic, version, _reserved, index_size = _FOOTER.unpack(footer)
        if magic != BUNDLE_MAGIC:
            return None
        if version != BUNDLE_VERSION or index_size == 0 or index_size > file_size - _FOOTER.size:
            return None

        index_start = file_size - _FOOTER.size - index_size
        f.seek(index_start)
        index = f.read(index_size)
        if len(index) != index_size:
            return None

        try:
            entry_path, files, data_size = _parse_index(index)
        except (struct.error, UnicodeDecodeError, ValueError) as e:
            logger.debug(f"Malformed bundle index: {e}")
            return None

        if data_size > index_start:
            return None
        return cls(entry_path, files, index_start - data_size, path=path, data=data)

    @property
    def entry_path(self) -> str:
        return self._entry_path

    @property
    def file_names(self) -> List[str]:
        return sorted(self._files)

    def find_file(self, path: str) -> Optional[BundleFileInfo]:
        return self._files.get(normalize_bundle_path(path))

    def __contains__(self, path: str) -> bool:
        return self.find_file(path) is not None

    def read_file(self, path: str) -> Optional[bytes]:
        info = self.find_file(path)
        if info is None:
            return None
        start = self._data_start + info.offset
        if self._data is not None:
            return self._data[start:start + info.size]
        try:
            with open(self._path, "rb") as f:
                f.seek(start)
                blob = f.read(info.size)
        except OSError as e:
            logger.error(f"Failed to read bundle file {path}: {e}")
            return None
        return blob if len(blob) == info.size else None


def _parse_index(index: bytes) -> Tuple[str, Dict[str, BundleFileInfo], int]:
    cursor = 0
    version, file_count, entry_len, _reserved = _INDEX_HEADER.unpack_from(index, cursor)
    cursor += _INDEX_HEADER.size
    if version != BUNDLE_VERSION:
        raise ValueError(f"unsupported index version {version}")
    if cursor + entry_len > len(index):
        raise ValueError("entry path overruns index")
    entry_path = normalize_bundle_path(index[cursor:cursor + entry_len].decode("utf-8"))
    cursor += entry_len

    files: Dict[str, BundleFileInfo] = {}
    data_size = 0
    for _ in range(file_count):
        path_len, _reserved, offset, size = _RECORD.unpack_from(index, cursor)
        cursor += _RECORD.size
        if cursor + path_len > len(index):
            raise ValueError("file path overruns index")
        name = normalize_bundle_path(index[cursor:cursor + path_len].decode("utf-8"))
        cursor += path_len
        if name:
            files[name] = BundleFileInfo(offset, size)
        data_size = max(data_size, offset + size)
    return entry_path, files, data_size


def build_bundle(files: Iterable[Tuple[str, bytes]], entry_path: str, prefix: bytes = b"") -> bytes:
    """Serialize (bundle_path, contents) pairs into bundle bytes."""
    blobs = bytearray()
    records = []
    for name, contents in files:
        bundle_path = normalize_bundle_path(name)
        if not bundle_path:
            raise BundleFormatError(f"Invalid bundle path: {name}", path=name)
        records.append((bundle_path.encode("utf-8"), len(blobs), len(contents)))
        blobs += contents

    entry = normalize_bundle_path(entry_path).encode("utf-8")
    index = bytearray(_INDEX_HEADER.pack(BUNDLE_VERSION, len(records), len(entry), 0))
    index += entry
    for name_bytes, offset, size in records:
        index += _RECORD.pack(len(name_bytes), 0, offset, size)
        index += name_bytes

    footer = _FOOTER.pack(BUNDLE_MAGIC, BUNDLE_VERSION, 0, len(index))
    return bytes(prefix) + bytes(blobs) + bytes(index) + footer


def collect_directory(root: Union[Path, str]) -> List[Tuple[str, bytes]]:
    """Every regular file under root, keyed by its root-relative posix path."""
    root = Path(root)
    collected = []
    for file_path in sorted(p for p in root.rglob("*") if p.is_file()):
        collected.append((file_path.relative_to(root).as_posix(), file_path.read_bytes()))
    return collected


def write_bundle(files: Iterable[Tuple[str, bytes]], entry_path: str,
                 output: Union[Path, str], prefix: Optional[Union[Path, str]] = None) -> Path:
    """Write a bundle file, optionally appended to a copy of a runtime binary."""
    prefix_bytes = Path(prefix).read_bytes() if prefix is not None else b""
    output = Path(output)
    if output.parent and not output.parent.exists():
        output.parent.mkdir(parents=True)
    output.write_bytes(build_bundle(files, entry_path, prefix=prefix_bytes))
    logger.debug(f"Wrote bundle {output}")
    return output


def discover_bundle(search_dirs: Optional[Iterable[Union[Path, str]]] = None) -> Optional[EmbeddedBundle]:
    """
    Locate a bundle for this process.

    Order: $JSMODULES_BUNDLE, then app.bundle in each search dir (default:
    the directory of the launched script).
    """
    env_bundle = os.environ.get(BUNDLE_ENV_VAR)
    if env_bundle:
        bundle = EmbeddedBundle.load_from_path(env_bundle)
        if bundle is not None:
            logger.info(f"Loaded bundle from {BUNDLE_ENV_VAR}: {env_bundle}")
            return bundle
        logger.warning(f"{BUNDLE_ENV_VAR} does not name a valid bundle: {env_bundle}")

    if search_dirs is None:
        search_dirs = [Path(sys.argv[0]).resolve().parent] if sys.argv and sys.argv[0] else []
    for directory in search_dirs:
        candidate = Path(directory) / DEFAULT_BUNDLE_FILENAME
        if candidate.is_file():
            bundle = EmbeddedBundle.load_from_path(candidate)
            if bundle is not None:
                logger.info(f"Loaded bundle: {candidate}")
                return bundle
    return None
