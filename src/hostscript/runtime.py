from __future__ import annotations

import logging
import threading
from typing import Any, List, MutableMapping, Optional, Sequence

from .errors import UndefinedVariableError, interpreter_failure
from .host import HostBridge
from .parser import parse_source
from .registry import ClassRegistry
from .scope import NOT_FOUND, AssignPolicy, CallStack, ExternalScope, Scope
from .types import HsValue, to_host, to_script

logger = logging.getLogger(__name__)

DEFAULT_HOST_CLASSES: Sequence[type] = (
    Exception,
    ArithmeticError,
    KeyError,
    RuntimeError,
    TypeError,
    ValueError,
    ZeroDivisionError,
)

class Interpreter:
    """
    One script runtime: a global scope, the class registry and the host bridge.

    A single Interpreter may evaluate scripts on several threads at once. Each
    thread gets its own call stack; the scope graph and the registries are
    shared and individually locked.
    """

    def __init__(
        self,
        namespace: Optional[MutableMapping[str, Any]] = None,
        *,
        assign_policy: AssignPolicy = AssignPolicy.DECLARE_LOCAL,
        name: str = "global",
        host_classes: Sequence[type] = DEFAULT_HOST_CLASSES,
    ):
        self.registry = ClassRegistry()
        self.bridge = HostBridge()
        self._local = threading.local()

        if namespace is not None:
            self.global_scope: Scope = ExternalScope(namespace, name=name, context=self, assign_policy=assign_policy)
        else:
            self.global_scope = Scope(name=name, context=self, assign_policy=assign_policy)

        for pytype in host_classes:
            self.bridge.import_class(pytype)

        logger.debug(
            "interpreter ready (scope=%r, policy=%s, host classes=%d)",
            self.global_scope,
            assign_policy.value,
            len(host_classes),
        )

    @property
    def call_stack(self) -> CallStack:
        stack = getattr(self._local, "call_stack", None)

        if stack is None:
            stack = CallStack(self.global_scope)
            self._local.call_stack = stack

        return stack

    def child_scope(self, name: str = "child", parent: Optional[Scope] = None) -> Scope:
        return Scope(parent=parent or self.global_scope, name=name)

    def eval(self, source: str, scope: Optional[Scope] = None) -> Any:
        """Parse and run `source`; returns the value of its last statement as a host value."""
        # local import to avoid cycle
        from .evaluator import eval_expr

        target = scope if scope is not None else self.global_scope
        tree = parse_source(source)
        stack = self.call_stack
        depth = len(stack)

        try:
            return to_host(eval_expr(tree, target))
        except RecursionError as exc:
            raise interpreter_failure(exc, "top level", call_stack=stack.snapshot())
        finally:
            stack.unwind(depth)

    def get(self, name: str) -> Any:
        value = self.global_scope.lookup(name)

        if value is NOT_FOUND:
            raise UndefinedVariableError(name)

        return to_host(value)

    def declare(self, name: str, value: Any) -> None:
        self.global_scope.declare_local(name, to_script(value))

    def set(self, name: str, value: Any) -> Scope:
        return self.global_scope.set_existing(name, to_script(value))

    def import_class(self, pytype: type, name: Optional[str] = None) -> None:
        self.bridge.import_class(pytype, name)

    def class_names(self) -> List[str]:
        return self.registry.names()

    def construct(self, class_path: str, *args: Any, scope: Optional[Scope] = None) -> HsValue:
        """Build an instance from host code, as `new class_path(args)` would inside `scope`."""
        from .eval.construct import construct

        return construct(class_path, [to_script(a) for a in args], scope or self.global_scope)
