from __future__ import annotations

from lark import Tree

from ..errors import EvalError, ResolutionError, UndefinedVariableError
from ..scope import NOT_FOUND, Scope
from ..tree import tree_label
from ..types import HsClass, HsInstance, HsNull, HsValue
from .common import EvalFunc, expect_name_token, host_invoke, null_pointer, runtime_of, stack_snapshot
from .enclosing import resolve_class_path, resolve_static_field

def eval_name_ref(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    name = expect_name_token(n.children[0], "Name")
    value = scope.lookup(name)

    if value is not NOT_FOUND:
        return value

    # bare class names evaluate to the class, for static access
    cls = resolve_class_path([name], scope)
    if cls is not None:
        return cls

    raise UndefinedVariableError(name, n, stack_snapshot(scope))

def eval_this_ref(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    this = scope.lookup("this")

    if this is NOT_FOUND:
        raise ResolutionError("'this' is not available in a static context", n)

    return this

def get_instance_field(instance: HsInstance, name: str, n: Tree) -> HsValue:
    value = instance.scope.lookup_local(name)

    if value is NOT_FOUND:
        raise ResolutionError(f"No such field: {name} in class '{instance.cls.full_name}'", n)

    return value

def eval_field_access(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    recv_node, name_tok = n.children
    receiver = eval_func(recv_node, scope)
    name = expect_name_token(name_tok, "Field name")

    match receiver:
        case HsInstance():
            return get_instance_field(receiver, name, n)
        case HsClass():
            return resolve_static_field(receiver, name, n)
        case HsNull():
            raise null_pointer(f"field access {name}", n)
        case _:
            ctx = runtime_of(scope)
            return host_invoke(scope, n, ctx.bridge.get_attr, receiver, name)

def eval_assign(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    target, value_node = n.children
    value = eval_func(value_node, scope)

    match tree_label(target):
        case 'name_ref':
            name = expect_name_token(target.children[0], "Assignment target")
            scope.set_existing(name, value)
        case 'field_access':
            _assign_field(target, value, scope, eval_func)
        case label:
            raise EvalError(f"Can't assign to {label}", n)

    return value

def _assign_field(target: Tree, value: HsValue, scope: Scope, eval_func: EvalFunc) -> None:
    recv_node, name_tok = target.children
    receiver = eval_func(recv_node, scope)
    name = expect_name_token(name_tok, "Field name")

    match receiver:
        case HsInstance(scope=instance_scope):
            instance_scope.declare_local(name, value)
        case HsClass(static_scope=static_scope):
            static_scope.declare_local(name, value)
        case HsNull():
            raise null_pointer(f"field assignment {name}", target)
        case _:
            ctx = runtime_of(scope)
            host_invoke(scope, target, ctx.bridge.set_attr, receiver, name, value)
