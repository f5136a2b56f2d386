"""
Error Reporting

Node Pattern: ERR_MODULE_NOT_FOUND / ERR_PACKAGE_PATH_NOT_EXPORTED family,
collapsed into a few kinds that callers can branch on.
"""

import os
from enum import Enum
from typing import Optional

from ..utils.config import COLOR_ENV_VAR


# ---------------------------------------------------------------------------
# ANSI color helpers (disabled when NO_COLOR is set)
# ---------------------------------------------------------------------------

def _use_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    explicit = os.environ.get(COLOR_ENV_VAR, "").lower()
    if explicit in ("0", "false", "no", "never"):
        return False
    return True

_BOLD   = "\033[1m"
_RED    = "\033[31m"
_BLUE   = "\033[34m"
_CYAN   = "\033[36m"
_RESET  = "\033[0m"

def _style(text: str, *codes: str, color: bool = True) -> str:
    if not color:
        return text
    prefix = "".join(codes)
    return f"{prefix}{text}{_RESET}" if prefix else text


class ErrorKind(Enum):
    """Coarse failure categories; the message carries the detail."""
    SPECIFIER_SYNTAX = "specifier"
    NOT_FOUND = "not-found"
    POLICY = "policy"
    MALFORMED_METADATA = "metadata"
    IO = "io"
    TRANSPILE = "transpile"
    EXECUTION = "execution"


# ============================================================================
# Exception Classes
# ============================================================================

class ModuleError(Exception):
    """Base exception for all module resolution and loading errors"""
    default_kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str, kind: Optional[ErrorKind] = None,
                 path: Optional[str] = None, note: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind if kind is not None else self.default_kind
        self.path = path
        self.note = note

    def __str__(self):
        return self.message


class ResolutionError(ModuleError):
    """A specifier could not be mapped to a module file"""
    pass


class PackageJsonError(ModuleError):
    """package.json is missing, unreadable or not an object"""
    default_kind = ErrorKind.MALFORMED_METADATA


class JsonParseError(ModuleError):
    """Malformed JSON text"""
    default_kind = ErrorKind.MALFORMED_METADATA

    def __init__(self, message: str, position: int = 0):
        super().__init__(message)
        self.position = position


class TranspileError(ModuleError):
    """TypeScript transpilation failed or is unavailable"""
    default_kind = ErrorKind.TRANSPILE


class ModuleLoadError(ModuleError):
    """Reading, compiling or evaluating a resolved module failed"""
    default_kind = ErrorKind.EXECUTION


class BundleFormatError(ModuleError):
    """Invalid input while writing an embedded bundle"""
    default_kind = ErrorKind.IO


def format_error(error: ModuleError, color: Optional[bool] = None) -> str:
    """
    Render a module error for terminal output.

    Example output (plain, no color)::

        error[not-found]: Package not found: left-pad
         --> /work/app/main.js
          = note: searched node_modules in every ancestor directory
    """
    use_color = color if color is not None else _use_color()
    lines = [
        _style(f"error[{error.kind.value}]", _BOLD, _RED, color=use_color)
        + _style(f": {error.message}", _BOLD, color=use_color)
    ]
    if error.path:
        lines.append(_style(" --> ", _BOLD, _BLUE, color=use_color) + error.path)
    if error.note:
        lines.append(
            _style("  = ", _BOLD, _CYAN, color=use_color)
            + _style("note: ", _BOLD, color=use_color)
            + error.note
        )
    return "\n".join(lines)
