"""Virtual file sources: real filesystem and embedded bundles."""

from .bundle import (
    EmbeddedBundle, BundleFileInfo, normalize_bundle_path, build_bundle,
    write_bundle, collect_directory, discover_bundle,
)
from .sources import FileSource, FilesystemSource, BundleSource

__all__ = [
    'EmbeddedBundle',
    'BundleFileInfo',
    'normalize_bundle_path',
    'build_bundle',
    'write_bundle',
    'collect_directory',
    'discover_bundle',
    'FileSource',
    'FilesystemSource',
    'BundleSource',
]
