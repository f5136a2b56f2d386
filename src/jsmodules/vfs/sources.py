"""
Virtual File Sources

Read-only existence/read abstraction the resolver works against. The
filesystem source sees real paths; the bundle source sees the flattened,
root-relative key space of an EmbeddedBundle.
"""

import posixpath
from abc import ABC, abstractmethod
from pathlib import Path

from ..shared.errors import ErrorKind, ModuleLoadError
from ..shared.types import StorageKind
from ..utils.config import BUNDLE_DIR_MARKERS
from ..utils.io_utils import read_source_bytes
from .bundle import EmbeddedBundle, normalize_bundle_path


class FileSource(ABC):
    """Storage backend interface."""

    kind: StorageKind

    @abstractmethod
    def exists_file(self, path: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def exists_dir(self, path: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def read_file(self, path: str) -> bytes:
        """Raises ModuleLoadError when the file cannot be read."""
        raise NotImplementedError

    @property
    def is_bundle(self) -> bool:
        return self.kind is StorageKind.BUNDLE


class FilesystemSource(FileSource):
    kind = StorageKind.FILESYSTEM

    def exists_file(self, path: str) -> bool:
        try:
            return Path(path).is_file()
        except OSError:
            return False

    def exists_dir(self, path: str) -> bool:
        try:
            return Path(path).is_dir()
        except OSError:
            return False

    def read_file(self, path: str) -> bytes:
        try:
            return read_source_bytes(path)
        except OSError as e:
            raise ModuleLoadError(f"Failed to open file: {path}", kind=ErrorKind.IO, path=path) from e


class BundleSource(FileSource):
    kind = StorageKind.BUNDLE

    def __init__(self, bundle: EmbeddedBundle):
        self.bundle = bundle

    def exists_file(self, path: str) -> bool:
        normalized = normalize_bundle_path(path)
        return bool(normalized) and self.bundle.find_file(normalized) is not None

    def exists_dir(self, path: str) -> bool:
        # Bundles store no directory entries; infer one from its contents
        base = normalize_bundle_path(path)
        return any(self.exists_file(posixpath.join(base, marker)) for marker in BUNDLE_DIR_MARKERS)

    def read_file(self, path: str) -> bytes:
        data = self.bundle.read_file(path)
        if data is None:
            raise ModuleLoadError(f"Bundle file not found: {path}", kind=ErrorKind.NOT_FOUND, path=path)
        return data
