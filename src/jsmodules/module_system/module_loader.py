"""
Module Loader

Loads and executes modules inside a hosted engine on top of ModuleResolver.

Node Pattern: lib/internal/modules/cjs/loader.js (Module._load)

This class handles:
- The per-path exports cache (one evaluation per resolved path)
- Circular requires, answered with the in-progress exports
- The CommonJS wrapper (exports, require, module, __filename, __dirname)
- ES modules on engines without native module support (ESM -> CJS rewrite)
- TypeScript sources through a TypeScriptTranspiler collaborator
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from typing import Dict, Optional, Set, Tuple

from ..frontend.esm_transpiler import transpile_esm_to_cjs
from ..runtime.engine import Engine, JSValue
from ..runtime.typescript import TypeScriptTranspiler, UnavailableTypeScriptTranspiler, is_typescript_path
from ..shared.errors import ErrorKind, ModuleError, ModuleLoadError, TranspileError
from ..shared.types import (
    ModuleFormat, ResolvedModule, ResolveMode, has_path_prefix, is_windows_absolute,
    normalize_specifier,
)
from ..utils.config import CJS_WRAPPER_PARAMS, FILE_URL_PREFIX, HOST_REQUIRE_GLOBAL
from ..utils.io_utils import decode_source
from ..vfs.sources import FileSource
from .path_resolver import ModuleResolver

logger = logging.getLogger(__name__)

# Cache lookup miss; a cached exports value may itself be None (JS null)
_MISS = object()

_JS_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


def escape_js_string(value: str) -> str:
    """Escape value for use inside a double-quoted JavaScript literal."""
    return "".join(_JS_ESCAPES.get(c, c) for c in value)


def make_cjs_wrapper(code: str) -> str:
    params = ", ".join(CJS_WRAPPER_PARAMS)
    if code and not code.endswith("\n"):
        code += "\n"
    return f"(function({params}) {{\n'use strict';\n{code}}})\n"


def make_json_wrapper(json_text: str) -> str:
    return f"module.exports = {json_text};\n"


def make_esm_bridge(specifier: str) -> str:
    """ES module source that re-exports a CommonJS module as its default export."""
    return (
        f"const __cjs = {HOST_REQUIRE_GLOBAL}(\"{escape_js_string(specifier)}\", \"\");\n"
        f"export default __cjs;\n"
    )


class ModuleSystem:
    """
    Module cache and execution for one engine instance.

    Every engine gets its own ModuleSystem; nothing is shared between
    instances.
    """

    def __init__(
        self,
        engine: Engine,
        root_dir: str = ".",
        source: Optional[FileSource] = None,
        ts_transpiler: Optional[TypeScriptTranspiler] = None,
        resolver: Optional[ModuleResolver] = None,
    ):
        """
        Args:
            engine: Engine that evaluates module code
            root_dir: Directory the entry point resolves against
            source: File source (filesystem if None)
            ts_transpiler: TypeScript collaborator (TypeScript disabled if None)
            resolver: Pre-built resolver; overrides root_dir and source
        """
        self.engine = engine
        self.resolver = resolver if resolver is not None else ModuleResolver(root_dir, source)
        self.ts_transpiler = ts_transpiler if ts_transpiler is not None else UnavailableTypeScriptTranspiler()
        self._exports_cache: Dict[str, JSValue] = {}
        self._loading: Dict[str, JSValue] = {}  # path -> module object
        self._loaded_paths: Set[str] = set()

    @property
    def loaded_paths(self) -> Set[str]:
        """Every resolved path handed to the engine so far."""
        return set(self._loaded_paths)

    def is_cached(self, path: str) -> bool:
        return path in self._exports_cache

    def is_loading(self, path: str) -> bool:
        return path in self._loading

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def load_entry(self, entry_path: str) -> bool:
        """
        Resolve, read and run the program's entry module.

        A bare "main.js" is treated as "./main.js". Returns False (after
        logging) on any failure.
        """
        entry_spec = entry_path
        normalized = normalize_specifier(entry_path)
        if not (has_path_prefix(normalized) or entry_path.startswith(FILE_URL_PREFIX)
                or is_windows_absolute(normalized)):
            entry_spec = "./" + entry_spec

        try:
            resolved = self.resolver.resolve(entry_spec, "", ResolveMode.REQUIRE)
            self._loaded_paths.add(resolved.resolved_path)
            source = self._read_module_source(resolved)

            if resolved.format is ModuleFormat.ESM:
                if self.engine.supports_native_esm:
                    if not self.engine.eval(source, resolved.resolved_path):
                        raise ModuleLoadError(f"Error while executing module: {resolved.resolved_path}",
                                              path=resolved.resolved_path)
                    return True
                self.execute_cjs_module(replace(resolved, format=ModuleFormat.CJS),
                                        transpile_esm_to_cjs(source))
                return True

            self.execute_cjs_module(resolved, source, source_is_json=resolved.format is ModuleFormat.JSON)
            return True
        except ModuleError as e:
            logger.error(f"Failed to load entry {entry_path}: {e.message}")
            return False

    # ------------------------------------------------------------------
    # require()
    # ------------------------------------------------------------------

    def require(self, specifier: str, referrer: str = "") -> JSValue:
        """
        require() as called from script code. Failures are logged and turned
        into a pending engine exception; the return value is then undefined.
        """
        try:
            resolved = self.resolver.resolve(specifier, referrer, ResolveMode.REQUIRE)
            if resolved.format is ModuleFormat.ESM and self.engine.supports_native_esm:
                raise ModuleLoadError(f"Cannot require ES module: {resolved.resolved_path}",
                                      kind=ErrorKind.POLICY, path=resolved.resolved_path)
            self._loaded_paths.add(resolved.resolved_path)
            return self.require_resolved(resolved)
        except ModuleError as e:
            logger.error(f"require('{specifier}') failed: {e.message}")
            self.engine.throw_exception(e.message)
            return self.engine.new_undefined()

    def require_resolved(self, resolved: ResolvedModule) -> JSValue:
        """Exports of an already-resolved module; raises ModuleError."""
        cached = self._cached_exports(resolved.resolved_path)
        if cached is not _MISS:
            return cached

        source = self._read_module_source(resolved)
        if resolved.format is ModuleFormat.ESM:
            return self.execute_cjs_module(replace(resolved, format=ModuleFormat.CJS),
                                           transpile_esm_to_cjs(source))
        return self.execute_cjs_module(resolved, source, source_is_json=resolved.format is ModuleFormat.JSON)

    def create_require_function(self, referrer: str) -> JSValue:
        engine = self.engine

        def require(args):
            if not args:
                return engine.new_undefined()
            return self.require(engine.to_string(args[0]), referrer)

        return engine.new_function("require", require)

    def install_globals(self) -> None:
        """Register the host require function used by ESM bridge modules."""
        engine = self.engine

        def host_require(args):
            if not args:
                return engine.new_undefined()
            referrer = ""
            if len(args) > 1 and not engine.is_undefined(args[1]):
                referrer = engine.to_string(args[1])
            return self.require(engine.to_string(args[0]), referrer)

        engine.set_global_property(HOST_REQUIRE_GLOBAL, engine.new_function(HOST_REQUIRE_GLOBAL, host_require))

    # ------------------------------------------------------------------
    # CommonJS execution
    # ------------------------------------------------------------------

    def _cached_exports(self, path: str):
        if path not in self._exports_cache:
            return _MISS
        module_obj = self._loading.get(path)
        if module_obj is not None:
            # Circular require: hand out whatever the module has exported so far
            logger.debug(f"Circular require of {path}; returning partial exports")
            return self.engine.get_property(module_obj, "exports")
        logger.debug(f"Module cache hit: {path}")
        return self._exports_cache[path]

    @contextmanager
    def _loading_module(self, path: str, module_obj: JSValue):
        self._loading[path] = module_obj
        try:
            yield
        finally:
            self._loading.pop(path, None)

    def execute_cjs_module(self, resolved: ResolvedModule, source: str,
                           source_is_json: bool = False) -> JSValue:
        """
        Run source as a CommonJS module body, at most once per path.

        Raises:
            ModuleLoadError: the wrapper failed to compile or the body threw;
                             the path is evicted so a later require retries.
                             Any other exception evicts the path the same way
                             and propagates unchanged
        """
        path = resolved.resolved_path
        cached = self._cached_exports(path)
        if cached is not _MISS:
            return cached

        engine = self.engine
        code = make_json_wrapper(source) if source_is_json else source

        exports_obj = engine.new_object()
        module_obj = engine.new_object()
        engine.set_property(module_obj, "exports", exports_obj)
        engine.protect(exports_obj)
        engine.protect(module_obj)
        self._exports_cache[path] = exports_obj

        require_fn = self.create_require_function(path)
        engine.protect(require_fn)

        logger.debug(f"Executing module {path}")
        try:
            with self._loading_module(path, module_obj):
                wrapper = engine.eval_script_with_result(make_cjs_wrapper(code), path)
                if wrapper is None:
                    raise ModuleLoadError(f"Failed to compile module: {path}", path=path)

                args = [
                    exports_obj,
                    require_fn,
                    module_obj,
                    engine.new_string(path),
                    engine.new_string(self.resolver.dirname(path)),
                ]
                if engine.call(wrapper, engine.new_undefined(), args) is None:
                    raise ModuleLoadError(f"Error while executing module: {path}", path=path)
        except Exception:
            self._exports_cache.pop(path, None)
            engine.unprotect(exports_obj)
            raise
        finally:
            engine.unprotect(require_fn)
            engine.unprotect(module_obj)

        # The body may have replaced module.exports wholesale
        module_exports = engine.get_property(module_obj, "exports")
        engine.protect(module_exports)
        engine.unprotect(exports_obj)
        self._exports_cache[path] = module_exports
        return module_exports

    # ------------------------------------------------------------------
    # Native ESM engines
    # ------------------------------------------------------------------

    def resolve_for_import(self, specifier: str, referrer: str = "") -> ResolvedModule:
        return self.resolver.resolve(specifier, referrer, ResolveMode.IMPORT)

    def get_esm_source(self, resolved: ResolvedModule) -> Tuple[str, str]:
        """
        (source, filename) for an engine's ES module loader.

        CommonJS and JSON modules are served as a bridge module whose default
        export is the module's CommonJS exports.
        """
        path = resolved.resolved_path
        if resolved.format is ModuleFormat.ESM:
            source = self._read_module_source(resolved)
        else:
            specifier = "/" + path if resolved.is_bundle and not path.startswith("/") else path
            source = make_esm_bridge(specifier)
        self._loaded_paths.add(path)
        return source, path

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _read_module_source(self, resolved: ResolvedModule) -> str:
        path = resolved.resolved_path
        data = self.resolver.read_source(resolved)
        try:
            source = decode_source(data)
        except UnicodeDecodeError as e:
            raise ModuleLoadError(f"Module is not valid UTF-8: {path}", kind=ErrorKind.IO, path=path) from e

        if is_typescript_path(path):
            if not self.ts_transpiler.is_available():
                raise TranspileError("TypeScript support is not enabled", path=path)
            source = self.ts_transpiler.transpile(source, path)
        return source

    def clear_caches(self) -> None:
        """Drop every cached module (releasing pinned exports) and package.json."""
        for exports in self._exports_cache.values():
            self.engine.unprotect(exports)
        self._exports_cache.clear()
        self._loaded_paths.clear()
        self.resolver.packages.clear()
