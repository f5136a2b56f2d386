"""
ES Module Host Hooks

Callbacks a native-ESM engine calls while linking a module graph: one to
turn an import specifier into a module name, one to fetch that module's
source. Each hooks object is bound to the ModuleSystem of its engine.
"""

import logging
from typing import TYPE_CHECKING, Tuple

from ..shared.errors import ModuleError

if TYPE_CHECKING:
    from ..module_system.module_loader import ModuleSystem

logger = logging.getLogger(__name__)


class EsmHostHooks:
    def __init__(self, module_system: "ModuleSystem"):
        self.module_system = module_system

    def normalize(self, specifier: str, referrer: str) -> str:
        """
        Module name for specifier imported from referrer (a name returned
        earlier, or "" for the entry point). Raises ModuleError.
        """
        try:
            resolved = self.module_system.resolve_for_import(specifier, referrer)
        except ModuleError as e:
            logger.error(f"Cannot resolve import '{specifier}' from {referrer or '<entry>'}: {e.message}")
            raise
        return resolved.resolved_path

    def load(self, module_name: str) -> Tuple[str, str]:
        """(source, filename) for a name produced by normalize()."""
        resolver = self.module_system.resolver
        try:
            resolved = resolver.resolve_resolved_path(module_name)
            return self.module_system.get_esm_source(resolved)
        except ModuleError as e:
            logger.error(f"Cannot load module {module_name}: {e.message}")
            raise
