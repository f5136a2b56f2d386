"""
jsmodules: Node-compatible module resolution and loading for embedded
JavaScript engines.
"""

from .shared.errors import (
    ErrorKind, ModuleError, ResolutionError, PackageJsonError, JsonParseError,
    TranspileError, ModuleLoadError, BundleFormatError, format_error,
)
from .shared.types import ResolveMode, ModuleFormat, StorageKind, ResolvedModule, classify_specifier
from .module_system import ModuleResolver, ModuleSystem, PackageDescriptor
from .vfs import EmbeddedBundle, FilesystemSource, BundleSource, discover_bundle
from .runtime import Engine, EngineType, EsmHostHooks, TypeScriptTranspiler
from .frontend import parse_json, transpile_esm_to_cjs

__version__ = "0.1.0"

__all__ = [
    'ErrorKind',
    'ModuleError',
    'ResolutionError',
    'PackageJsonError',
    'JsonParseError',
    'TranspileError',
    'ModuleLoadError',
    'BundleFormatError',
    'format_error',
    'ResolveMode',
    'ModuleFormat',
    'StorageKind',
    'ResolvedModule',
    'classify_specifier',
    'ModuleResolver',
    'ModuleSystem',
    'PackageDescriptor',
    'EmbeddedBundle',
    'FilesystemSource',
    'BundleSource',
    'discover_bundle',
    'Engine',
    'EngineType',
    'EsmHostHooks',
    'TypeScriptTranspiler',
    'parse_json',
    'transpile_esm_to_cjs',
]
