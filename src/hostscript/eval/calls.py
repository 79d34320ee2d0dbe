from __future__ import annotations

from typing import Any, List, Optional

from lark import Tree

from ..errors import EvalError, ResolutionError, ReturnSignal, interpreter_failure
from ..scope import NOT_FOUND, Scope
from ..types import NULL, HsClass, HsInstance, HsMethod, HsNull, HsValue, signature
from .common import EvalFunc, eval_args, expect_name_token, host_invoke, null_pointer, runtime_of
from .enclosing import resolve_static_invocation

def call_method(
    method: HsMethod,
    receiver: Optional[HsInstance],
    args: List[HsValue],
    caller_scope: Scope,
    node: Any = None,
) -> HsValue:
    """
    Invoke a script method.

    Instance calls run in a fresh scope under the receiver's scope, static and
    top-level calls under the scope the method was declared in. A body without
    `return` yields its last statement's value, except in `void` methods.
    """
    from ..evaluator import eval_node  # local import to avoid cycle
    from .blocks import eval_statements

    if len(args) != len(method.params):
        raise ResolutionError(f"Method {method.qualified_name} expects {len(method.params)} args; got {len(args)}", node)

    ctx = runtime_of(caller_scope)
    parent = receiver.scope if receiver is not None else method.scope
    call_scope = Scope(parent=parent, name=f"{method.qualified_name}()")

    for name, value in zip(method.params, args):
        call_scope.declare_local(name, value)

    with ctx.call_stack.entered(call_scope):
        try:
            result = eval_statements(method.body.children, call_scope, eval_node)
        except ReturnSignal as signal:
            return signal.value
        except EvalError:
            raise
        except Exception as exc:
            raise interpreter_failure(exc, method.qualified_name, node, ctx.call_stack.snapshot())

    if method.return_type == "void":
        return NULL

    return result

def find_lexical_method(name: str, arity: int, scope: Scope) -> Optional[tuple[HsMethod, Optional[HsInstance]]]:
    """Search the methods of every owner on the scope chain, innermost first."""
    for s in scope.chain():
        owner = s.owner

        if isinstance(owner, HsInstance):
            method = owner.cls.find_method(name, arity)
            if method is not None:
                return method, (None if method.is_static else owner)
        elif isinstance(owner, HsClass):
            method = owner.find_method(name, arity, static_only=True)
            if method is not None:
                return method, None

    return None

def eval_invoke(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    name_tok, args_node = n.children
    name = expect_name_token(name_tok, "Method name")
    args = eval_args(args_node, scope, eval_func)

    found = find_lexical_method(name, len(args), scope)
    if found is not None:
        method, receiver = found
        return call_method(method, receiver, args, scope, n)

    value = scope.lookup(name)

    if isinstance(value, HsMethod):
        return call_method(value, None, args, scope, n)

    if value is not NOT_FOUND and callable(value) and not isinstance(value, (HsClass, HsInstance)):
        ctx = runtime_of(scope)
        return host_invoke(scope, n, ctx.bridge.call, value, args)

    raise ResolutionError(f"Command not found: {signature(name, args)}", n)

def eval_method_call(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    recv_node, name_tok, args_node = n.children
    receiver = eval_func(recv_node, scope)
    name = expect_name_token(name_tok, "Method name")
    args = eval_args(args_node, scope, eval_func)

    match receiver:
        case HsInstance(cls=cls):
            method = cls.find_method(name, len(args))

            if method is None:
                raise ResolutionError(f"Method {signature(name, args)} not found in class '{cls.full_name}'", n)

            return call_method(method, None if method.is_static else receiver, args, scope, n)
        case HsClass():
            method = resolve_static_invocation(receiver, name, args, scope, n)
            return call_method(method, None, args, scope, n)
        case HsNull():
            raise null_pointer(f"method invocation {name}", n)
        case _:
            ctx = runtime_of(scope)
            return host_invoke(scope, n, ctx.bridge.invoke_method, receiver, name, args)
