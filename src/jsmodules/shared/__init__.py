"""
Shared components: error taxonomy and resolution data types.
"""

from .errors import (
    ErrorKind, ModuleError, ResolutionError, PackageJsonError, JsonParseError,
    TranspileError, ModuleLoadError, BundleFormatError, format_error,
)
from .types import (
    ResolveMode, ModuleFormat, StorageKind, SpecifierKind, ResolvedModule,
    normalize_specifier, classify_specifier, is_windows_absolute, has_path_prefix,
)
