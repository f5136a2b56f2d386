"""
Module Path Resolution

Maps (specifier, referrer, mode) to a concrete module file following
Node's resolution rules, over either the real filesystem or an embedded
bundle.

Node Pattern: lib/internal/modules/esm/resolve.js (+ CJS Module._findPath)

    "./util"            -> <referrer dir>/util.js        (require mode probes)
    "lodash/fp"         -> node_modules/lodash/fp.js     (ancestor search)
    "@scope/pkg/sub"    -> node_modules/@scope/pkg + "./sub"
    "#internal"         -> nearest package.json "imports"

Resolution has no side effects beyond the package.json cache, so the same
inputs always yield the same ResolvedModule.
"""

import logging
import posixpath
from typing import Optional, Tuple

from ..shared.errors import ErrorKind, PackageJsonError, ResolutionError
from ..shared.types import (
    ModuleFormat, ResolvedModule, ResolveMode, has_path_prefix, is_windows_absolute,
    normalize_specifier,
)
from ..utils.config import (
    CJS_EXTENSIONS, DEFAULT_MAIN, ESM_EXTENSIONS, IMPORT_CONDITIONS, INDEX_BASENAME,
    JSON_EXTENSIONS, NODE_MODULES, PACKAGE_JSON, REQUIRE_CONDITIONS, REQUIRE_EXTENSIONS,
    SUBPATH_ROOT, TYPE_DEPENDENT_EXTENSIONS,
)
from ..utils.io_utils import to_generic_path
from ..vfs.bundle import discover_bundle, normalize_bundle_path
from ..vfs.sources import BundleSource, FileSource, FilesystemSource
from .exports_matcher import resolve_exports_target
from .package_info import PackageCache, PackageDescriptor

logger = logging.getLogger(__name__)


def conditions_for(mode: ResolveMode) -> Tuple[str, ...]:
    return IMPORT_CONDITIONS if mode is ResolveMode.IMPORT else REQUIRE_CONDITIONS


def split_package_specifier(specifier: str) -> Tuple[str, str]:
    """
    Split a bare specifier into (package name, subpath).

    >>> split_package_specifier("@scope/pkg/sub/path")
    ('@scope/pkg', './sub/path')
    >>> split_package_specifier("lodash")
    ('lodash', '.')
    """
    if specifier.startswith("@"):
        scope, sep, rest = specifier.partition("/")
        if not sep or scope == "@" or not rest or rest.startswith("/"):
            raise ResolutionError(
                f"Invalid scoped package specifier: {specifier}",
                kind=ErrorKind.SPECIFIER_SYNTAX,
            )
        name, sep, subpath = rest.partition("/")
        package_name = f"{scope}/{name}"
    else:
        package_name, sep, subpath = specifier.partition("/")
        if not package_name:
            raise ResolutionError(f"Invalid package specifier: {specifier}",
                                  kind=ErrorKind.SPECIFIER_SYNTAX)
    return package_name, (f"./{subpath}" if sep else SUBPATH_ROOT)


class ModuleResolver:
    """
    Node-compatible specifier resolution.

    Filesystem paths come back absolute and forward-slashed; bundle paths come
    back root-relative with no leading slash. The entry point (empty referrer)
    resolves against root_dir, or against the bundle root.
    """

    def __init__(self, root_dir: str = ".", source: Optional[FileSource] = None):
        self.source = source if source is not None else FilesystemSource()
        self.root_dir = root_dir or "."
        self.packages = PackageCache(self.source)

    @classmethod
    def for_environment(cls, root_dir: str = ".") -> "ModuleResolver":
        """Resolve inside a discovered bundle if there is one, else on disk."""
        bundle = discover_bundle()
        if bundle is not None:
            return cls(root_dir, BundleSource(bundle))
        return cls(root_dir)

    @property
    def using_bundle(self) -> bool:
        return self.source.is_bundle

    def set_root_dir(self, root_dir: str) -> None:
        self.root_dir = root_dir or "."

    def dirname(self, path: str) -> str:
        parent = posixpath.dirname(path)
        if not parent:
            return "" if self.using_bundle else self.root_dir
        return parent

    def _base_dir(self, referrer: str) -> str:
        if referrer:
            return self.dirname(referrer)
        return "" if self.using_bundle else self.root_dir

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def resolve(self, specifier: str, referrer: str = "",
                mode: ResolveMode = ResolveMode.REQUIRE) -> ResolvedModule:
        """
        Resolve a specifier as seen from referrer (a resolved module path, or
        "" for the entry point).

        Raises:
            ResolutionError: the specifier does not name a module
            PackageJsonError: a package.json that must be read is malformed
        """
        normalized = normalize_specifier(specifier)
        if not normalized:
            raise ResolutionError("Empty module specifier", kind=ErrorKind.SPECIFIER_SYNTAX)

        if normalized.startswith("#"):
            resolved = self._resolve_imports(normalized, referrer, mode)
        elif self._is_path_specifier(normalized):
            resolved = self.resolve_path(normalized, referrer, mode)
        else:
            bundle_path = normalize_bundle_path(normalized) if self.using_bundle else ""
            if bundle_path and self.source.exists_file(bundle_path):
                # Flattened bundle entries may be named without "./"
                resolved = self.resolve_path("/" + bundle_path, referrer, mode)
            else:
                resolved = self._resolve_package(normalized, referrer, mode)

        logger.debug(f"Resolved '{specifier}' from {referrer or '<entry>'} ({mode.value}) -> {resolved}")
        return resolved

    def resolve_resolved_path(self, resolved_path: str) -> ResolvedModule:
        """Wrap a path that was resolved earlier (engine loader callback)."""
        normalized = normalize_specifier(resolved_path)
        if self.using_bundle:
            normalized = normalize_bundle_path(normalized)
            if not normalized:
                raise ResolutionError(f"Invalid bundle module path: {resolved_path}",
                                      kind=ErrorKind.SPECIFIER_SYNTAX)
        else:
            normalized = to_generic_path(normalized)
        return self._resolved(normalized)

    def read_source(self, resolved: ResolvedModule) -> bytes:
        """Raw bytes of a resolved module; raises ModuleLoadError."""
        return self.source.read_file(resolved.resolved_path)

    def _is_path_specifier(self, specifier: str) -> bool:
        if has_path_prefix(specifier):
            return True
        return not self.using_bundle and is_windows_absolute(specifier)

    def _resolved(self, path: str) -> ResolvedModule:
        return ResolvedModule(path, self.source.kind, self.detect_format(path))

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def resolve_path(self, path_spec: str, referrer: str, mode: ResolveMode) -> ResolvedModule:
        """Resolve a path specifier: exact file, probed file, then directory."""
        normalized = normalize_specifier(path_spec)
        base_dir = self._base_dir(referrer)

        if self.using_bundle:
            if normalized.startswith("/"):
                target = normalized[1:]
            else:
                target = posixpath.join(base_dir, normalized)
            target = normalize_bundle_path(target)
            if not target:
                raise ResolutionError(f"Invalid bundle path: {path_spec}", kind=ErrorKind.SPECIFIER_SYNTAX)
        elif normalized.startswith("/") or is_windows_absolute(normalized):
            target = to_generic_path(normalized)
        else:
            target = to_generic_path(posixpath.join(base_dir, normalized))

        try:
            return self._resolve_as_file(target, mode)
        except ResolutionError:
            if not self.source.exists_dir(target):
                raise
        return self._resolve_as_directory(target, mode)

    def _resolve_as_file(self, path: str, mode: ResolveMode) -> ResolvedModule:
        if self.source.exists_file(path):
            return self._resolved(path)

        if mode is ResolveMode.IMPORT:
            raise ResolutionError(
                f"Module not found (import requires extension): {path}",
                kind=ErrorKind.POLICY,
                path=path,
            )

        for ext in REQUIRE_EXTENSIONS:
            candidate = path + ext
            if self.source.exists_file(candidate):
                return self._resolved(candidate)

        raise ResolutionError(f"Module not found: {path}", path=path)

    def _resolve_as_directory(self, path: str, mode: ResolveMode) -> ResolvedModule:
        if not self.source.exists_dir(path):
            raise ResolutionError(f"Directory not found: {path}", path=path)

        pkg = None
        if self.source.exists_file(posixpath.join(path, PACKAGE_JSON)):
            try:
                pkg = self.packages.load(path)
            except PackageJsonError as e:
                logger.warning(f"Treating {path} as having no package.json: {e.message}")

        if pkg is not None:
            if pkg.has_exports and mode is ResolveMode.IMPORT:
                return self._resolve_package_exports(pkg, SUBPATH_ROOT, mode)
            main_path = posixpath.normpath(posixpath.join(path, pkg.main)) if pkg.main else None
            if main_path and main_path != posixpath.normpath(path):
                try:
                    return self.resolve_path(main_path, "", mode)
                except ResolutionError as e:
                    logger.debug(f"\"main\" of {path} did not resolve: {e.message}")

        if mode is ResolveMode.IMPORT:
            raise ResolutionError(f"Unsupported directory import: {path}", kind=ErrorKind.POLICY, path=path)

        try:
            return self._resolve_as_file(posixpath.join(path, INDEX_BASENAME), mode)
        except ResolutionError:
            raise ResolutionError(f"Directory module not found: {path}", path=path) from None

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def _resolve_package(self, specifier: str, referrer: str, mode: ResolveMode) -> ResolvedModule:
        package_name, subpath = split_package_specifier(normalize_specifier(specifier))

        package_root = self.find_package_root(self._base_dir(referrer), package_name)
        if package_root is None:
            raise ResolutionError(
                f"Package not found: {package_name}",
                note=f"searched {NODE_MODULES} in every ancestor directory",
            )

        pkg = self.packages.try_load(package_root)
        if pkg is not None and pkg.has_exports:
            return self._resolve_package_exports(pkg, subpath, mode)

        if subpath != SUBPATH_ROOT:
            return self.resolve_path(posixpath.join(package_root, subpath[2:]), "", mode)

        if pkg is not None:
            try:
                return self._resolve_package_main(pkg, mode)
            except ResolutionError as e:
                logger.debug(f"Entry point of {package_name} did not resolve: {e.message}")

        return self.resolve_path(posixpath.join(package_root, DEFAULT_MAIN), "", mode)

    def _resolve_package_main(self, pkg: PackageDescriptor, mode: ResolveMode) -> ResolvedModule:
        main = pkg.main or DEFAULT_MAIN
        return self.resolve_path(posixpath.join(pkg.root_path, main), "", mode)

    def _resolve_package_exports(self, pkg: PackageDescriptor, subpath: str,
                                 mode: ResolveMode) -> ResolvedModule:
        target = resolve_exports_target(pkg.exports, subpath, conditions_for(mode))
        if not has_path_prefix(target):
            raise ResolutionError(f"Invalid exports target: {target}", kind=ErrorKind.POLICY,
                                  path=posixpath.join(pkg.root_path, PACKAGE_JSON))
        return self.resolve_path(posixpath.join(pkg.root_path, target), "", mode)

    def _resolve_imports(self, specifier: str, referrer: str, mode: ResolveMode) -> ResolvedModule:
        package_root = self.find_nearest_package(self._base_dir(referrer))
        if package_root is None:
            raise ResolutionError("No package.json found for imports resolution")

        pkg = self.packages.load(package_root)
        if not pkg.has_imports:
            raise ResolutionError("No imports defined in package.json",
                                  path=posixpath.join(package_root, PACKAGE_JSON))

        target = resolve_exports_target(pkg.imports, specifier, conditions_for(mode))
        if has_path_prefix(target):
            return self.resolve_path(posixpath.join(package_root, target), "", mode)

        # Bare target: a dependency of the declaring package
        return self._resolve_package(target, posixpath.join(package_root, PACKAGE_JSON), mode)

    # ------------------------------------------------------------------
    # Ancestor walks
    # ------------------------------------------------------------------

    def _ancestors(self, start_dir: str):
        """start_dir and each parent up to the root ("" in a bundle)."""
        if self.using_bundle:
            current = normalize_bundle_path(start_dir)
            while True:
                yield current
                if not current:
                    return
                current = posixpath.dirname(current)

        current = to_generic_path(start_dir)
        while True:
            yield current
            parent = posixpath.dirname(current)
            if parent == current:
                return
            current = parent

    def find_package_root(self, start_dir: str, package_name: str) -> Optional[str]:
        for directory in self._ancestors(start_dir):
            candidate = posixpath.join(directory, NODE_MODULES, package_name)
            if self.source.exists_dir(candidate):
                return candidate
        return None

    def find_nearest_package(self, start_dir: str) -> Optional[str]:
        for directory in self._ancestors(start_dir):
            if self.source.exists_file(posixpath.join(directory, PACKAGE_JSON)):
                return directory
        return None

    # ------------------------------------------------------------------
    # Format detection
    # ------------------------------------------------------------------

    def detect_format(self, path: str) -> ModuleFormat:
        ext = posixpath.splitext(path)[1]
        if ext in ESM_EXTENSIONS:
            return ModuleFormat.ESM
        if ext in CJS_EXTENSIONS:
            return ModuleFormat.CJS
        if ext in JSON_EXTENSIONS:
            return ModuleFormat.JSON
        if ext in TYPE_DEPENDENT_EXTENSIONS:
            package_root = self.find_nearest_package(self.dirname(path))
            if package_root is not None:
                pkg = self.packages.try_load(package_root)
                if pkg is not None and pkg.is_module:
                    return ModuleFormat.ESM
        return ModuleFormat.CJS
