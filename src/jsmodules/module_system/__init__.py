"""
Module system: package.json metadata, specifier resolution and loading.
"""

from .package_info import PackageDescriptor, PackageCache
from .exports_matcher import resolve_exports_target, resolve_conditional_target, match_pattern, is_subpath_key
from .path_resolver import ModuleResolver, split_package_specifier, conditions_for
from .module_loader import ModuleSystem, escape_js_string, make_cjs_wrapper, make_esm_bridge

__all__ = [
    'PackageDescriptor',
    'PackageCache',
    'resolve_exports_target',
    'resolve_conditional_target',
    'match_pattern',
    'is_subpath_key',
    'ModuleResolver',
    'split_package_specifier',
    'conditions_for',
    'ModuleSystem',
    'escape_js_string',
    'make_cjs_wrapper',
    'make_esm_bridge',
]
