"""
Package Descriptors

Parsed, memoized package.json data per package root. Only name, type, main,
exports and imports are interpreted; exports/imports stay raw JSON trees for
the exports matcher.
"""

import logging
import posixpath
from dataclasses import dataclass
from typing import Dict, Optional

from ..frontend.json_parser import JsonValue, parse_json
from ..shared.errors import JsonParseError, ModuleError, PackageJsonError
from ..utils.config import PACKAGE_JSON, PACKAGE_TYPE_MODULE
from ..utils.io_utils import decode_source
from ..vfs.sources import FileSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageDescriptor:
    """
    What the resolver knows about one package root.

    exports/imports are None when the key is absent; a present-but-null key
    is kept as a JSON null node so has_exports still reports it.
    """
    root_path: str
    name: Optional[str] = None
    type: Optional[str] = None
    main: Optional[str] = None
    exports: Optional[JsonValue] = None
    imports: Optional[JsonValue] = None

    @property
    def has_exports(self) -> bool:
        return self.exports is not None

    @property
    def has_imports(self) -> bool:
        return self.imports is not None

    @property
    def is_module(self) -> bool:
        return self.type == PACKAGE_TYPE_MODULE


class PackageCache:
    """
    Lazily parsed descriptors keyed by root path.

    Lives as long as its resolver; there is no invalidation. Failures are not
    cached, so a package.json written later is picked up.
    """

    def __init__(self, source: FileSource):
        self.source = source
        self._descriptors: Dict[str, PackageDescriptor] = {}

    def load(self, package_root: str) -> PackageDescriptor:
        """Raises PackageJsonError when package.json is missing or invalid."""
        cached = self._descriptors.get(package_root)
        if cached is not None:
            return cached

        pkg_path = posixpath.join(package_root, PACKAGE_JSON)
        try:
            text = decode_source(self.source.read_file(pkg_path))
        except ModuleError as e:
            raise PackageJsonError(f"Cannot read {PACKAGE_JSON}: {e.message}", path=pkg_path) from e
        except UnicodeDecodeError as e:
            raise PackageJsonError(f"Invalid {PACKAGE_JSON} encoding: {e}", path=pkg_path) from e

        try:
            root = parse_json(text)
        except JsonParseError as e:
            raise PackageJsonError(f"Invalid {PACKAGE_JSON}: {e.message}", path=pkg_path) from e
        if not root.is_object:
            raise PackageJsonError(f"Invalid {PACKAGE_JSON}: top-level value is not an object",
                                   path=pkg_path)

        descriptor = PackageDescriptor(
            root_path=package_root,
            name=root.get_string("name"),
            type=root.get_string("type"),
            main=root.get_string("main"),
            exports=root.get("exports"),
            imports=root.get("imports"),
        )
        self._descriptors[package_root] = descriptor
        logger.debug(f"Loaded {pkg_path} (name={descriptor.name!r}, type={descriptor.type!r})")
        return descriptor

    def try_load(self, package_root: str) -> Optional[PackageDescriptor]:
        """Like load(), but an absent or broken package.json yields None."""
        try:
            return self.load(package_root)
        except PackageJsonError as e:
            logger.debug(f"Ignoring package.json at {package_root}: {e.message}")
            return None

    def cached(self, package_root: str) -> Optional[PackageDescriptor]:
        return self._descriptors.get(package_root)

    def clear(self) -> None:
        self._descriptors.clear()
