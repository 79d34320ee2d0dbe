from __future__ import annotations

import enum
import logging
import sys
import traceback
from types import SimpleNamespace
from typing import IO, Any, List, Optional, Sequence, Set, Tuple

logger = logging.getLogger(__name__)

# source files of the reflective-invocation machinery; trace filtering stops at
# the first frame that belongs to one of them
_DISPATCH_FILES: Set[str] = set()

def register_dispatch_module(filename: str) -> None:
    _DISPATCH_FILES.add(filename)

def is_dispatch_frame(frame: traceback.FrameSummary) -> bool:
    return frame.filename in _DISPATCH_FILES

def position_of(node: Any) -> Optional[SimpleNamespace]:
    """Line/column of a lark Tree or Token, if the parser recorded one."""
    if node is None:
        return None

    line = getattr(node, "line", None)
    column = getattr(node, "column", None)

    if line is None:
        meta = getattr(node, "meta", None)
        line = getattr(meta, "line", None)
        column = getattr(meta, "column", None)

    if line is None:
        return None

    return SimpleNamespace(line=line, column=column)

# ---------- Taxonomy ----------

class ErrorKind(enum.Enum):
    EVAL = "eval"
    RESOLUTION = "resolution"
    TARGET = "target"

class EvalError(Exception):
    """The script cannot continue: malformed program state or a failed lookup."""

    kind = ErrorKind.EVAL

    def __init__(
        self,
        message: str,
        node: Optional[Any] = None,
        call_stack: Optional[Sequence[str]] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.node = node
        self.call_stack: Tuple[str, ...] = tuple(call_stack or ())
        self.hs_meta: Optional[object] = position_of(node)

        if cause is not None:
            self.__cause__ = cause

    @property
    def catchable(self) -> bool:
        return self.kind is ErrorKind.TARGET

    def attach(self, node: Any, call_stack: Optional[Sequence[str]] = None) -> None:
        """Record the failing node unless a more specific one was recorded already."""
        if self.node is None:
            self.node = node

        if self.hs_meta is None:
            self.hs_meta = position_of(node)

        if call_stack and not self.call_stack:
            self.call_stack = tuple(call_stack)

    def base_message(self) -> str:
        msg = self.message
        meta = self.hs_meta

        if meta is None:
            return msg

        line = getattr(meta, "line", None)
        col = getattr(meta, "column", None)

        if line is None:
            return msg

        if col is None:
            return f"{msg} (line {line})"

        return f"{msg} (line {line}, col {col})"

    def __str__(self) -> str:
        return self.base_message()

class ResolutionError(EvalError):
    """A variable, class, method or enclosing instance could not be located."""

    kind = ErrorKind.RESOLUTION

class UndefinedVariableError(ResolutionError):
    def __init__(self, name: str, node: Optional[Any] = None, call_stack: Optional[Sequence[str]] = None):
        super().__init__(f"Undefined variable: {name}", node, call_stack)
        self.name = name

class ScopeReleasedError(EvalError):
    def __init__(self, scope_name: str):
        super().__init__(f"Scope '{scope_name}' has been released")
        self.scope_name = scope_name

class TargetError(EvalError):
    """
    Wraps an exception thrown by the script, or by host code the script called.

    A TargetError may be caught by a script-level catch clause, which sees the
    unwrapped target rather than this wrapper. When it escapes to the embedder
    it can be unwrapped with get_target() to find out what was thrown.
    """

    kind = ErrorKind.TARGET

    def __init__(
        self,
        message: str = "TargetError",
        target: Optional[BaseException] = None,
        node: Optional[Any] = None,
        call_stack: Optional[Sequence[str]] = None,
        in_native_code: bool = False,
    ):
        super().__init__(message, node, call_stack, cause=target)
        # native-origin traces are worth printing; script-origin ones only show interpreter internals
        self.in_native_code = in_native_code

    def get_target(self) -> Optional[BaseException]:
        target = self.__cause__

        if isinstance(target, InvocationError):
            return target.__cause__

        return target

    def __str__(self) -> str:
        base = self.base_message()
        cause = self.__cause__

        if cause is None:
            return base

        return f"{base}\nCaused by: {format_cause_chain(cause)}"

    def target_trace(self) -> List[str]:
        """Frames of the native target, innermost first, up to the bridge dispatch."""
        if not self.in_native_code:
            return []

        target = self.get_target()
        if target is None:
            return []

        return filter_native_frames(target)

    def print_stack_trace(self, debug: bool = False, out: Optional[IO[str]] = None) -> None:
        stream = out if out is not None else sys.stderr

        if debug:
            traceback.print_exception(type(self), self, self.__traceback__, file=stream, chain=False)
            print("--- Target Stack Trace ---", file=stream)

        for line in self.target_trace():
            print(line, file=stream)

class InvocationError(Exception):
    """The single wrapper the host bridge puts around an exception raised in host code."""

    def __init__(self, member: str, target: BaseException):
        super().__init__(f"invocation of {member} failed")
        self.member = member
        self.__cause__ = target

    @property
    def target(self) -> Optional[BaseException]:
        return self.__cause__

class ThrownValue(Exception):
    """Carries a non-exception value thrown by a script `throw`."""

    def __init__(self, value: Any):
        super().__init__(repr(value))
        self.value = value

class ReturnSignal(Exception):
    """Internal control-flow exception used to implement `return`."""

    def __init__(self, value: Any):
        self.value = value

# ---------- Rendering ----------

def _next_cause(exc: BaseException) -> Optional[BaseException]:
    if exc.__cause__ is not None:
        return exc.__cause__

    if exc.__suppress_context__:
        return None

    return exc.__context__

def describe_exception(exc: BaseException) -> str:
    text = exc.base_message() if isinstance(exc, EvalError) else str(exc)
    name = type(exc).__name__

    return f"{name}: {text}" if text else name

def format_cause_chain(exc: BaseException) -> str:
    lines: List[str] = []
    seen: Set[int] = set()
    cur: Optional[BaseException] = exc

    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        lines.append(describe_exception(cur))
        cur = _next_cause(cur)

    return "\n".join(lines)

def filter_native_frames(exc: BaseException) -> List[str]:
    frames = traceback.extract_tb(exc.__traceback__)
    lines: List[str] = []

    for frame in reversed(frames):
        if is_dispatch_frame(frame):
            break
        lines.append(f"        at {frame.name} ({frame.filename}:{frame.lineno})")

    return lines

# ---------- Classification ----------

def classify_exception(
    exc: BaseException,
    node: Optional[Any] = None,
    call_stack: Optional[Sequence[str]] = None,
    context: Optional[str] = None,
) -> EvalError:
    """Route an exception that escaped script or host code into the taxonomy.

    EvalErrors come back unchanged in identity, so nothing is wrapped twice and
    a resolution failure never turns into something a script can catch.
    """
    if isinstance(exc, EvalError):
        return exc

    if isinstance(exc, InvocationError):
        message = context or f"Method Invocation {exc.member}"
    else:
        message = context or f"Exception in native code: {type(exc).__name__}"

    logger.debug("wrapping %s into a native TargetError: %s", type(exc).__name__, message)

    return TargetError(message, exc, node, call_stack, in_native_code=True)

def interpreter_failure(
    exc: BaseException,
    where: str,
    node: Optional[Any] = None,
    call_stack: Optional[Sequence[str]] = None,
) -> EvalError:
    """An exception raised by the interpreter's own machinery while running `where`.

    Host code never reaches here unclassified (the bridge wraps it first), so
    whatever arrives means evaluation cannot go on: the result is a general
    EvalError that scripts cannot catch.
    """
    if isinstance(exc, EvalError):
        return exc

    if isinstance(exc, RecursionError):
        message = f"Stack overflow in {where}"
    else:
        message = f"Internal error in {where}: {describe_exception(exc)}"

    logger.debug("interpreter failure in %s: %s", where, type(exc).__name__)

    return EvalError(message, node, call_stack, cause=exc)
