"""
Engine Interface

The narrow slice of a hosted JavaScript engine the module system drives.
Values are opaque handles owned by the engine; the module system never
inspects them beyond these calls.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Optional, Sequence

JSValue = Any
NativeCallback = Callable[[Sequence[JSValue]], JSValue]


class EngineType(Enum):
    V8 = "v8"
    QUICKJS = "quickjs"
    JAVASCRIPTCORE = "javascriptcore"


class Engine(ABC):
    """
    Engine collaborator contract.

    Failure convention: eval() returns False and call()/eval_script_with_result()
    return None when script code throws; the pending exception stays in the
    engine. throw_exception() schedules an exception to be raised in script
    code once the current native callback returns.
    """

    @property
    @abstractmethod
    def engine_type(self) -> EngineType:
        raise NotImplementedError

    @property
    def supports_native_esm(self) -> bool:
        """Whether eval() accepts module code (import/export) directly."""
        return self.engine_type is EngineType.V8

    # Value construction
    @abstractmethod
    def new_object(self) -> JSValue:
        raise NotImplementedError

    @abstractmethod
    def new_string(self, value: str) -> JSValue:
        raise NotImplementedError

    @abstractmethod
    def new_function(self, name: str, callback: NativeCallback) -> JSValue:
        raise NotImplementedError

    @abstractmethod
    def new_undefined(self) -> JSValue:
        raise NotImplementedError

    # Properties
    @abstractmethod
    def get_property(self, obj: JSValue, name: str) -> JSValue:
        raise NotImplementedError

    @abstractmethod
    def set_property(self, obj: JSValue, name: str, value: JSValue) -> bool:
        raise NotImplementedError

    @abstractmethod
    def set_global_property(self, name: str, value: JSValue) -> bool:
        raise NotImplementedError

    # Execution
    @abstractmethod
    def call(self, func: JSValue, this_arg: JSValue, args: Sequence[JSValue]) -> Optional[JSValue]:
        raise NotImplementedError

    @abstractmethod
    def eval(self, code: str, filename: str = "<eval>") -> bool:
        raise NotImplementedError

    @abstractmethod
    def eval_script_with_result(self, code: str, filename: str = "<eval>") -> Optional[JSValue]:
        raise NotImplementedError

    @abstractmethod
    def throw_exception(self, message: str) -> None:
        raise NotImplementedError

    # GC pinning for handles held on the native side
    @abstractmethod
    def protect(self, value: JSValue) -> None:
        raise NotImplementedError

    @abstractmethod
    def unprotect(self, value: JSValue) -> None:
        raise NotImplementedError

    # Conversions
    @abstractmethod
    def to_string(self, value: JSValue) -> str:
        raise NotImplementedError

    @abstractmethod
    def is_undefined(self, value: JSValue) -> bool:
        raise NotImplementedError
