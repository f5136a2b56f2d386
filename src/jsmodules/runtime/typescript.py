"""
TypeScript Transpiler Collaborators

Type stripping is delegated to an external tool; the module system only
needs is_available() and transpile().
"""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..shared.errors import TranspileError
from ..utils.config import TYPESCRIPT_EXTENSIONS

logger = logging.getLogger(__name__)


def is_typescript_path(path: str) -> bool:
    return path.endswith(TYPESCRIPT_EXTENSIONS)


class TypeScriptTranspiler(ABC):
    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def transpile(self, source: str, filename: str) -> str:
        """Return JavaScript for source; raises TranspileError."""
        raise NotImplementedError


class UnavailableTypeScriptTranspiler(TypeScriptTranspiler):
    """Default when no TypeScript tool is configured."""

    def is_available(self) -> bool:
        return False

    def transpile(self, source: str, filename: str) -> str:
        raise TranspileError("TypeScript support is not enabled", path=filename)


class ExternalCommandTranspiler(TypeScriptTranspiler):
    """
    Pipe source through a command line tool (esbuild by default).

    The command reads TypeScript on stdin and writes JavaScript on stdout;
    ".tsx" files get the tsx loader.
    """

    def __init__(self, executable: str = "esbuild", extra_args: Sequence[str] = ()):
        self.executable = executable
        self.extra_args = list(extra_args)

    def _resolve_executable(self) -> Optional[str]:
        return shutil.which(self.executable)

    def is_available(self) -> bool:
        return self._resolve_executable() is not None

    def _command(self, executable: str, filename: str):
        loader = "tsx" if filename.endswith(".tsx") else "ts"
        return [executable, f"--loader={loader}", f"--sourcefile={filename}", *self.extra_args]

    def transpile(self, source: str, filename: str) -> str:
        executable = self._resolve_executable()
        if executable is None:
            raise TranspileError(f"TypeScript transpiler not found: {self.executable}", path=filename)

        logger.debug(f"Transpiling {filename} with {executable}")
        try:
            result = subprocess.run(
                self._command(executable, filename),
                input=source,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise TranspileError(f"Failed to run {self.executable}: {e}", path=filename) from e

        if result.returncode != 0:
            raise TranspileError(
                f"TypeScript transpile failed: {result.stderr.strip() or f'exit code {result.returncode}'}",
                path=filename,
            )
        return result.stdout
