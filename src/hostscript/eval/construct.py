from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, Union

from lark import Tree

from ..errors import EvalError, ResolutionError, ReturnSignal, interpreter_failure
from ..scope import Scope
from ..types import EnclosingBinding, HsClass, HsInstance, HsNull, HsValue, default_value, signature
from .calls import call_method
from .common import EvalFunc, eval_args, host_invoke, null_pointer, runtime_of, type_name_parts
from .enclosing import resolve_class_path, resolve_enclosing, resolve_member_class

logger = logging.getLogger(__name__)

def construct(
    class_path: Union[str, Sequence[str]],
    args: List[HsValue],
    scope: Scope,
    *,
    receiver: Optional[HsValue] = None,
    node: Any = None,
) -> HsValue:
    """
    Instantiate the class at `class_path` as seen from `scope`.

    With a receiver the path is resolved against the receiver's class
    (`receiver.new Inner()`), and the receiver becomes the enclosing instance.
    Resolution failures propagate as they are; only what the constructor body
    throws is classified as a TargetError.
    """
    ctx = runtime_of(scope)
    parts = class_path.split(".") if isinstance(class_path, str) else list(class_path)

    if receiver is not None:
        target = resolve_member_class(receiver, parts, node)
    else:
        found = resolve_class_path(parts, scope)

        if found is None:
            raise ResolutionError(f"Class: {'.'.join(parts)} not found in namespace", node, ctx.call_stack.snapshot())

        if not isinstance(found, HsClass):
            return host_invoke(scope, node, ctx.bridge.construct, found, args)

        target = found

    binding = resolve_enclosing(target, scope, receiver=receiver, node=node)

    return instantiate(binding, args, scope, node)

def instantiate(binding: EnclosingBinding, args: List[HsValue], scope: Scope, node: Any = None) -> HsInstance:
    cls = binding.target
    ctx = runtime_of(scope)
    ctor = cls.find_constructor(len(args))

    if ctor is None and (args or cls.constructors):
        raise ResolutionError(
            f"Constructor error: {signature(cls.name, args)} not found in class '{cls.full_name}'",
            node,
            ctx.call_stack.snapshot(),
        )

    # inner instances hang off the enclosing instance's scope, everything else off the class
    parent = binding.instance.scope if binding.instance is not None else cls.static_scope
    instance_scope = Scope(parent=parent, name=f"{cls.full_name} instance")
    instance = HsInstance(cls, instance_scope, binding.instance)
    instance_scope.owner = instance
    instance_scope.declare_local("this", instance)

    logger.debug(
        "constructing %s (enclosing=%r, static_context=%s)",
        cls.full_name,
        binding.instance,
        binding.static_context,
    )

    with ctx.call_stack.entered(instance_scope):
        try:
            _init_fields(instance)

            if ctor is not None:
                call_method(ctor, instance, args, scope, node)
        except ReturnSignal:
            pass
        except EvalError:
            raise
        except Exception as exc:
            raise interpreter_failure(exc, f"constructor of {cls.full_name}", node, ctx.call_stack.snapshot())

    return instance

def _init_fields(instance: HsInstance) -> None:
    from ..evaluator import eval_node  # local import to avoid cycle

    for decl in instance.cls.fields:
        if decl.is_static:
            continue

        if decl.initializer is None:
            value = default_value(decl.type_name)
        else:
            value = eval_node(decl.initializer, instance.scope)

        instance.scope.declare_local(decl.name, value)

def eval_new_expr(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    type_node, args_node = n.children
    args = eval_args(args_node, scope, eval_func)

    return construct(type_name_parts(type_node), args, scope, node=n)

def eval_qualified_new(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    recv_node, type_node, args_node = n.children
    receiver = eval_func(recv_node, scope)
    args = eval_args(args_node, scope, eval_func)

    if isinstance(receiver, HsNull):
        raise null_pointer("qualified new", n)

    return construct(type_name_parts(type_node), args, scope, receiver=receiver, node=n)
