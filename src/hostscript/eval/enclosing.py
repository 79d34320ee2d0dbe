"""
Enclosing-instance resolution for `new` expressions.

A non-static nested class can only be built around a live instance of its
outer class. That instance is either named explicitly (`outer.new Inner()`)
or found on the scope chain as an ambient `this`. Static access through a
class name can only reach static members; it never falls through to
instance-nested resolution.
"""
from __future__ import annotations

from typing import Any, List, Optional, Sequence, Union

from ..errors import ResolutionError
from ..scope import NOT_FOUND, Scope
from ..types import EnclosingBinding, HsClass, HsInstance, HsMethod, HsValue, signature, type_label
from .common import stack_snapshot

ClassRef = Union[HsClass, type]

def owner_class(owner: Any) -> Optional[HsClass]:
    if isinstance(owner, HsInstance):
        return owner.cls

    if isinstance(owner, HsClass):
        return owner

    return None

def in_static_context(scope: Scope) -> bool:
    """True unless the nearest owning body on the chain is an instance."""
    for s in scope.chain():
        if s.owner is not None:
            return not isinstance(s.owner, HsInstance)

    return True

def find_enclosing_instance(outer: HsClass, scope: Scope) -> Optional[HsInstance]:
    for s in scope.chain():
        this = s.lookup_local("this")

        # a `this` of a class nested in `outer` leads out through its enclosing instances
        cur = this if isinstance(this, HsInstance) else None

        while cur is not None:
            if cur.cls is outer:
                return cur
            if not cur.cls.is_nested_within(outer):
                break
            cur = cur.enclosing

    return None

def _resolve_head(head: str, scope: Scope) -> Optional[HsClass]:
    # classes nested in the bodies we are lexically inside win over top-level ones
    for s in scope.chain():
        cls = owner_class(s.owner)
        if cls is None:
            continue

        for candidate in cls.lineage():
            nested = candidate.inner.get(head)
            if nested is not None:
                return nested

    ctx = scope.context
    if ctx is None:
        return None

    return ctx.registry.lookup(head)

def resolve_class_path(parts: Sequence[str], scope: Scope) -> Optional[ClassRef]:
    """Resolve a dotted class path lexically, then against imported host classes."""
    head, *rest = parts
    cls: Optional[HsClass] = _resolve_head(head, scope)

    for segment in rest:
        if cls is None:
            break
        cls = cls.inner.get(segment)

    if cls is not None:
        return cls

    ctx = scope.context
    if ctx is None:
        return None

    return ctx.bridge.lookup_class(".".join(parts))

def resolve_member_class(receiver: HsValue, parts: Sequence[str], node: Any = None) -> HsClass:
    """The class a qualified `receiver.new A.B()` names, relative to the receiver's class."""
    dotted = ".".join(parts)

    if not isinstance(receiver, HsInstance):
        raise ResolutionError(f"Qualified new of {dotted} needs a script object, got {type_label(receiver)}", node)

    cls: Optional[HsClass] = receiver.cls

    for segment in parts:
        cls = cls.inner.get(segment) if cls is not None else None

    if cls is None:
        raise ResolutionError(f"Class: {dotted} not found in class '{receiver.cls.full_name}'", node)

    return cls

def resolve_enclosing(
    target: HsClass,
    scope: Scope,
    receiver: Optional[HsValue] = None,
    node: Any = None,
) -> EnclosingBinding:
    static_context = in_static_context(scope)
    path = target.full_name
    outer = target.outer

    if outer is None or target.is_static:
        if receiver is not None:
            raise ResolutionError(f"Qualified new of static class: {path}", node, stack_snapshot(scope))

        return EnclosingBinding(target, None, path, static_context)

    # an explicit receiver always wins over an ambient `this`
    if receiver is not None:
        if not isinstance(receiver, HsInstance) or receiver.cls is not outer:
            raise ResolutionError(
                f"{type_label(receiver)} is not an enclosing instance of {path}",
                node,
                stack_snapshot(scope),
            )
        return EnclosingBinding(target, receiver, path, static_context)

    instance = find_enclosing_instance(outer, scope)

    if instance is None:
        raise ResolutionError(
            f"an enclosing instance that contains {path} is required",
            node,
            stack_snapshot(scope),
        )

    return EnclosingBinding(target, instance, path, static_context)

def resolve_static_invocation(cls: HsClass, name: str, args: List[HsValue], scope: Scope, node: Any = None) -> HsMethod:
    """A call made through a class name. Only static methods qualify, even if `name` is a nested class."""
    method = cls.find_method(name, len(args), static_only=True)

    if method is None:
        raise ResolutionError(
            f"Static method {signature(name, args)} not found in class '{cls.full_name}'",
            node,
            stack_snapshot(scope),
        )

    return method

def resolve_static_field(cls: HsClass, name: str, node: Any = None) -> HsValue:
    value = cls.static_scope.lookup_local(name)
    if value is not NOT_FOUND:
        return value

    nested = cls.inner.get(name)
    if nested is not None:
        return nested

    raise ResolutionError(f"No static field or inner class {name} in class '{cls.full_name}'", node)
