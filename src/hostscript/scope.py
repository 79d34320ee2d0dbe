from __future__ import annotations

import enum
import itertools
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, MutableMapping, Optional, Tuple

from .errors import ScopeReleasedError, UndefinedVariableError
from .types import NULL, HsValue

logger = logging.getLogger(__name__)

class ScopeKind(enum.Enum):
    LOCAL = "local"
    EXTERNAL = "external"

class AssignPolicy(enum.Enum):
    """What set_existing does with a name no scope in the chain binds."""
    DECLARE_LOCAL = "declare-local"
    FAIL = "fail"

class _NotFound:
    __slots__ = ()

    def __repr__(self) -> str:
        return "NOT_FOUND"

NOT_FOUND: Any = _NotFound()

_scope_ids = itertools.count(1)

class Scope:
    """
    One lexical scope: a local variable table plus a non-owning parent link.

    Reads walk local-then-parents. declare_local always writes the local table;
    set_existing rebinds the nearest scope that already holds the name. All
    access to one node's table is serialized on that node's lock.
    """

    kind = ScopeKind.LOCAL

    def __init__(
        self,
        parent: Optional['Scope'] = None,
        name: str = "scope",
        *,
        owner: Optional[Any] = None,
        context: Optional[Any] = None,
        assign_policy: Optional[AssignPolicy] = None,
    ):
        self.parent = parent
        self.name = name
        self.owner = owner
        self.scope_id = next(_scope_ids)
        self.vars: Dict[str, HsValue] = {}
        self._lock = threading.RLock()
        self._released = False

        self.context: Optional[Any]
        self.assign_policy: AssignPolicy

        if context is not None:
            self.context = context
        elif parent is not None:
            self.context = parent.context
        else:
            self.context = None

        if assign_policy is not None:
            self.assign_policy = assign_policy
        elif parent is not None:
            self.assign_policy = parent.assign_policy
        else:
            self.assign_policy = AssignPolicy.DECLARE_LOCAL

    # storage hooks; callers hold self._lock

    def _read_local(self, name: str) -> HsValue:
        return self.vars.get(name, NOT_FOUND)

    def _write_local(self, name: str, value: HsValue) -> None:
        self.vars[name] = value

    def _local_names(self) -> List[str]:
        return list(self.vars)

    # lifecycle

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            self._released = True

        logger.debug("released scope %s#%d", self.name, self.scope_id)

    def _check_live(self) -> None:
        if self._released:
            raise ScopeReleasedError(self.name)

    # reads

    def chain(self) -> Iterator['Scope']:
        scope: Optional[Scope] = self

        while scope is not None:
            yield scope
            scope = scope.parent

    def lookup_local(self, name: str) -> HsValue:
        self._check_live()

        with self._lock:
            return self._read_local(name)

    def lookup(self, name: str) -> HsValue:
        for scope in self.chain():
            value = scope.lookup_local(name)
            if value is not NOT_FOUND:
                return value

        return NOT_FOUND

    def get(self, name: str) -> HsValue:
        value = self.lookup(name)

        if value is NOT_FOUND:
            raise UndefinedVariableError(name)

        return value

    def has(self, name: str) -> bool:
        return self.lookup(name) is not NOT_FOUND

    def has_local(self, name: str) -> bool:
        return self.lookup_local(name) is not NOT_FOUND

    def find(self, name: str) -> Optional['Scope']:
        for scope in self.chain():
            if scope.has_local(name):
                return scope

        return None

    def local_names(self) -> List[str]:
        self._check_live()

        with self._lock:
            return self._local_names()

    # writes

    def declare_local(self, name: str, value: HsValue) -> None:
        self._check_live()

        with self._lock:
            self._write_local(name, value)

    def _rebind_if_present(self, name: str, value: HsValue) -> bool:
        self._check_live()

        with self._lock:
            if self._read_local(name) is NOT_FOUND:
                return False
            self._write_local(name, value)
            return True

    def set_existing(self, name: str, value: HsValue, policy: Optional[AssignPolicy] = None) -> 'Scope':
        """Rebind `name` where it is already bound; returns the scope that was written."""
        for scope in self.chain():
            if scope._rebind_if_present(name, value):
                return scope

        effective = policy if policy is not None else self.assign_policy

        if effective is AssignPolicy.FAIL:
            raise UndefinedVariableError(name)

        self.declare_local(name, value)
        return self

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}#{self.scope_id}>"

class ExternalScope(Scope):
    """
    A scope whose local table is a host-owned mapping.

    The mapping holds host values, so the null marker is stored as None and a
    key holding None reads back as the null marker: "declared but null" stays
    distinct from "not declared". Nothing is cached; every call goes to the
    mapping, which other host threads may change at any time.
    """

    kind = ScopeKind.EXTERNAL

    def __init__(
        self,
        store: Optional[MutableMapping[str, Any]] = None,
        parent: Optional[Scope] = None,
        name: str = "external",
        **kwargs: Any,
    ):
        super().__init__(parent, name, **kwargs)
        self.store: MutableMapping[str, Any] = store if store is not None else {}

    def _read_local(self, name: str) -> HsValue:
        try:
            value = self.store[name]
        except KeyError:
            return NOT_FOUND

        return NULL if value is None else value

    def _write_local(self, name: str, value: HsValue) -> None:
        self.store[name] = None if value is NULL else value

    def _local_names(self) -> List[str]:
        return list(self.store)

    def get_map(self) -> MutableMapping[str, Any]:
        return self.store

class CallStack:
    """Scopes of the calls in progress on one thread, innermost last."""

    def __init__(self, root: Optional[Scope] = None):
        self._frames: List[Scope] = [root] if root is not None else []

    def push(self, scope: Scope) -> None:
        self._frames.append(scope)

    def pop(self) -> Scope:
        return self._frames.pop()

    def __len__(self) -> int:
        return len(self._frames)

    def unwind(self, depth: int) -> None:
        """Drop every frame above `depth`."""
        del self._frames[depth:]

    def snapshot(self) -> Tuple[str, ...]:
        return tuple(scope.name for scope in reversed(self._frames))

    @contextmanager
    def entered(self, scope: Scope) -> Iterator[Scope]:
        self.push(scope)

        try:
            yield scope
        finally:
            self.pop()
