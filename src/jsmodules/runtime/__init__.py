"""Engine-facing collaborators: engine contract, TypeScript hook, ESM host hooks."""

from .engine import Engine, EngineType, JSValue, NativeCallback
from .typescript import (
    TypeScriptTranspiler, UnavailableTypeScriptTranspiler, ExternalCommandTranspiler,
    is_typescript_path,
)
from .esm_hooks import EsmHostHooks

__all__ = [
    'Engine',
    'EngineType',
    'JSValue',
    'NativeCallback',
    'TypeScriptTranspiler',
    'UnavailableTypeScriptTranspiler',
    'ExternalCommandTranspiler',
    'is_typescript_path',
    'EsmHostHooks',
]
