"""
Module Specifier and Resolution Types

Pure data structures shared by the resolver, the loader and the engine hooks.
"""

from dataclasses import dataclass
from enum import Enum

from ..utils.config import FILE_URL_PREFIX


class ResolveMode(Enum):
    """Import forbids extension probing and directory-index fallback."""
    IMPORT = "import"
    REQUIRE = "require"


class ModuleFormat(Enum):
    ESM = "esm"
    CJS = "cjs"
    JSON = "json"


class StorageKind(Enum):
    FILESYSTEM = "filesystem"
    BUNDLE = "bundle"


class SpecifierKind(Enum):
    RELATIVE_PATH = "relative"
    ABSOLUTE_PATH = "absolute"
    WINDOWS_ABSOLUTE_PATH = "windows-absolute"
    BARE_PACKAGE = "bare"
    SCOPED_PACKAGE = "scoped"
    SUBPATH_IMPORT = "subpath-import"
    FILE_URL = "file-url"


@dataclass(frozen=True)
class ResolvedModule:
    """
    Result of resolving one specifier.

    resolved_path is absolute and forward-slashed on the filesystem, and
    root-relative without a leading slash inside a bundle.
    """
    resolved_path: str
    storage: StorageKind
    format: ModuleFormat

    @property
    def is_bundle(self) -> bool:
        return self.storage is StorageKind.BUNDLE

    def __str__(self) -> str:
        return f"{self.resolved_path} ({self.storage.value}, {self.format.value})"


def normalize_specifier(specifier: str) -> str:
    """Strip a file:// prefix and turn backslashes into forward slashes."""
    normalized = specifier
    if normalized.startswith(FILE_URL_PREFIX):
        normalized = normalized[len(FILE_URL_PREFIX):]
    return normalized.replace("\\", "/")


def is_windows_absolute(path: str) -> bool:
    return len(path) > 2 and path[0].isalpha() and path[0].isascii() and path[1] == ":"


def is_relative_path(path: str) -> bool:
    return path.startswith("./") or path.startswith("../")


def has_path_prefix(path: str) -> bool:
    """True for specifiers that are paths by syntax alone."""
    return path.startswith("/") or is_relative_path(path)


def classify_specifier(specifier: str) -> SpecifierKind:
    """Classify a raw (not yet normalized) specifier."""
    if specifier.startswith(FILE_URL_PREFIX):
        return SpecifierKind.FILE_URL
    normalized = normalize_specifier(specifier)
    if normalized.startswith("#"):
        return SpecifierKind.SUBPATH_IMPORT
    if normalized.startswith("/"):
        return SpecifierKind.ABSOLUTE_PATH
    if is_relative_path(normalized):
        return SpecifierKind.RELATIVE_PATH
    if is_windows_absolute(normalized):
        return SpecifierKind.WINDOWS_ABSOLUTE_PATH
    if normalized.startswith("@"):
        return SpecifierKind.SCOPED_PACKAGE
    return SpecifierKind.BARE_PACKAGE
