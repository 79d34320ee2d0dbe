from __future__ import annotations

import logging
from typing import Optional

from lark import Tree

from ..errors import EvalError
from ..scope import Scope
from ..tree import child_by_label, children_by_label, is_token, tree_children, tree_label
from ..types import FieldDecl, HsClass, HsMethod, HsValue, default_value
from .blocks import is_static_decl
from .common import EvalFunc, expect_name_token, modifier_names, runtime_of, type_name_parts

logger = logging.getLogger(__name__)

def _param_names(params_node: Optional[Tree]) -> list[str]:
    names: list[str] = []

    for param in children_by_label(params_node, 'param'):
        name_tok = tree_children(param)[-1]
        names.append(expect_name_token(name_tok, "Parameter name"))

    return names

def build_method(n: Tree, scope: Scope, owner: Optional[HsClass] = None) -> HsMethod:
    name_tok = next((ch for ch in tree_children(n) if is_token(ch)), None)
    name = expect_name_token(name_tok, "Method name")
    return_node = child_by_label(n, 'return_type')
    return_type = None

    if return_node is not None:
        return_type = ".".join(type_name_parts(tree_children(return_node)[0]))

    body = child_by_label(n, 'block')
    if body is None:
        raise EvalError(f"Method {name} has no body", n)

    return HsMethod(
        name=name,
        params=_param_names(child_by_label(n, 'params')),
        body=body,
        scope=scope,
        owner=owner,
        is_static=is_static_decl(n),
        return_type=return_type,
    )

def eval_method_decl(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsValue:
    """A method outside any class body is bound as a variable of the current scope."""
    method = build_method(n, scope)
    scope.declare_local(method.name, method)

    return method

def eval_class_decl(n: Tree, scope: Scope, eval_func: EvalFunc) -> HsClass:
    ctx = runtime_of(scope)
    mods_node, name_tok, body = tree_children(n)
    name = expect_name_token(name_tok, "Class name")
    outer = scope.owner if isinstance(scope.owner, HsClass) else None
    full_name = f"{outer.full_name}.{name}" if outer is not None else name

    static_scope = Scope(parent=scope, name=f"class {full_name}")
    cls = HsClass(
        name=name,
        full_name=full_name,
        static_scope=static_scope,
        outer=outer,
        is_static="static" in modifier_names(mods_node),
        node=n,
    )
    static_scope.owner = cls

    if outer is not None:
        outer.inner[name] = cls

    for member in tree_children(body):
        _declare_member(cls, member, eval_func)

    ctx.registry.define(cls)
    logger.debug(
        "defined class %s (static=%s, outer=%s)",
        full_name,
        cls.is_static,
        outer.full_name if outer is not None else None,
    )

    return cls

def _declare_member(cls: HsClass, member: Tree, eval_func: EvalFunc) -> None:
    match tree_label(member):
        case 'var_decl':
            _declare_fields(cls, member, eval_func)
        case 'method_decl':
            method = build_method(member, cls.static_scope, owner=cls)

            if method.name == cls.name and method.return_type is None:
                cls.constructors.append(method)
            else:
                cls.add_method(method)
        case 'class_decl':
            eval_class_decl(member, cls.static_scope, eval_func)
        case 'empty_stmt':
            return
        case label:
            raise EvalError(f"Unsupported statement in body of class {cls.full_name}: {label}", member)

def _declare_fields(cls: HsClass, n: Tree, eval_func: EvalFunc) -> None:
    type_node = child_by_label(n, 'type_name')
    type_name = ".".join(type_name_parts(type_node)) if type_node is not None else None
    is_static = is_static_decl(n)

    for init in children_by_label(n, 'var_init'):
        name_tok, *rest = tree_children(init)
        decl = FieldDecl(
            name=expect_name_token(name_tok, "Field name"),
            type_name=type_name,
            initializer=rest[0] if rest else None,
            is_static=is_static,
        )
        cls.fields.append(decl)

        if is_static:
            value = eval_func(decl.initializer, cls.static_scope) if decl.initializer is not None else default_value(type_name)
            cls.static_scope.declare_local(decl.name, value)
