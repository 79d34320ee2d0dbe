from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional, Sequence

from .errors import EvalError, InvocationError, ResolutionError, register_dispatch_module
from .types import HsValue, to_host, to_script, type_label

# frames of this module are dispatch plumbing, not the script author's concern
register_dispatch_module(__file__)

class HostBridge:
    """
    Reflection bridge between script code and host (Python) objects.

    Exceptions raised inside host code come back wrapped in exactly one
    InvocationError. Lookup failures are ResolutionErrors: the call itself
    was invalid, nothing was thrown.
    """

    def __init__(self) -> None:
        self._classes: Dict[str, type] = {}
        self._lock = threading.Lock()

    def import_class(self, pytype: type, name: Optional[str] = None) -> None:
        names = {name or pytype.__name__, f"{pytype.__module__}.{pytype.__qualname__}"}

        with self._lock:
            for key in names:
                self._classes[key] = pytype

    def lookup_class(self, path: str) -> Optional[type]:
        with self._lock:
            return self._classes.get(path)

    def construct(self, pytype: type, args: Sequence[HsValue]) -> HsValue:
        return self._dispatch(pytype, f"{pytype.__name__}()", args)

    def invoke_method(self, receiver: Any, name: str, args: Sequence[HsValue]) -> HsValue:
        member = self._member(receiver, name, "Method")

        if not callable(member):
            raise ResolutionError(f"Method {name}() not found in class '{type_label(receiver)}': not callable")

        return self._dispatch(member, name, args)

    def call(self, fn: Callable[..., Any], args: Sequence[HsValue]) -> HsValue:
        return self._dispatch(fn, getattr(fn, "__name__", repr(fn)), args)

    def get_attr(self, receiver: Any, name: str) -> HsValue:
        return to_script(self._member(receiver, name, "Field"))

    def set_attr(self, receiver: Any, name: str, value: HsValue) -> None:
        self._dispatch(setattr, name, [receiver, name, value])

    def _member(self, receiver: Any, name: str, what: str) -> Any:
        try:
            return getattr(receiver, name)
        except AttributeError:
            raise ResolutionError(f"{what} {name} not found in class '{type_label(receiver)}'") from None

    def _dispatch(self, fn: Callable[..., Any], member: str, args: Sequence[HsValue]) -> HsValue:
        host_args = [to_host(a) for a in args]

        try:
            result = fn(*host_args)
        except (EvalError, RecursionError):
            # already classified, or the interpreter ran out of stack
            raise
        except Exception as exc:
            raise InvocationError(member, exc) from exc

        return to_script(result)
