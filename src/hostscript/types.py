from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence, Tuple
from typing_extensions import TypeAlias

from lark import Tree

if TYPE_CHECKING:
    from .scope import Scope

# ---------- Value Model ----------
# Script values are host objects plus the types below.

class HsNull:
    """The script null marker; host code sees it as None."""

    _instance: Optional['HsNull'] = None

    def __new__(cls) -> 'HsNull':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "null"

    def __bool__(self) -> bool:
        return False

NULL = HsNull()

@dataclass(eq=False)
class FieldDecl:
    name: str
    type_name: Optional[str]
    initializer: Optional[Any]  # expression tree, or None for the type default
    is_static: bool = False

@dataclass(eq=False)
class HsMethod:
    name: str
    params: List[str]
    body: Tree
    scope: 'Scope'                # defining scope; receivers replace it for instance calls
    owner: Optional['HsClass'] = None
    is_static: bool = False
    return_type: Optional[str] = None

    @property
    def qualified_name(self) -> str:
        if self.owner is None:
            return self.name
        return f"{self.owner.full_name}.{self.name}"

    def __repr__(self) -> str:
        return f"<method {self.qualified_name}({', '.join(self.params)})>"

@dataclass(eq=False)
class HsClass:
    name: str
    full_name: str
    static_scope: 'Scope'
    outer: Optional['HsClass'] = None
    is_static: bool = False
    fields: List[FieldDecl] = field(default_factory=list)
    methods: Dict[str, List[HsMethod]] = field(default_factory=dict)
    constructors: List[HsMethod] = field(default_factory=list)
    inner: Dict[str, 'HsClass'] = field(default_factory=dict)
    node: Optional[Tree] = None

    def lineage(self) -> List['HsClass']:
        """This class followed by its lexically enclosing classes, innermost first."""
        chain: List[HsClass] = []
        cur: Optional[HsClass] = self

        while cur is not None:
            chain.append(cur)
            cur = cur.outer

        return chain

    def is_nested_within(self, other: 'HsClass') -> bool:
        return other in self.lineage()[1:]

    def add_method(self, method: HsMethod) -> None:
        self.methods.setdefault(method.name, []).append(method)

    def find_method(self, name: str, arity: int, static_only: bool = False) -> Optional[HsMethod]:
        for method in self.methods.get(name, ()):
            if len(method.params) != arity:
                continue
            if static_only and not method.is_static:
                continue
            return method

        return None

    def find_constructor(self, arity: int) -> Optional[HsMethod]:
        for ctor in self.constructors:
            if len(ctor.params) == arity:
                return ctor

        return None

    def constructor_params(self) -> List[Tuple[str, ...]]:
        return [tuple(ctor.params) for ctor in self.constructors]

    def __repr__(self) -> str:
        return f"<class {self.full_name}>"

@dataclass(eq=False)
class HsInstance:
    cls: HsClass
    scope: 'Scope'
    enclosing: Optional['HsInstance'] = None

    def release(self) -> None:
        self.scope.release()

    def __repr__(self) -> str:
        return f"<{self.cls.full_name} instance>"

@dataclass(frozen=True)
class EnclosingBinding:
    """Pairs a class about to be constructed with the instance that encloses it."""
    target: HsClass
    instance: Optional[HsInstance]
    class_path: str
    static_context: bool

HsValue: TypeAlias = Any

_PRIMITIVE_DEFAULTS: Dict[str, Any] = {
    "int": 0,
    "long": 0,
    "short": 0,
    "byte": 0,
    "float": 0.0,
    "double": 0.0,
    "boolean": False,
}

def default_value(type_name: Optional[str]) -> HsValue:
    if type_name is None:
        return NULL

    return _PRIMITIVE_DEFAULTS.get(type_name, NULL)

def to_script(value: Any) -> HsValue:
    return NULL if value is None else value

def to_host(value: HsValue) -> Any:
    return None if value is NULL else value

def type_label(value: HsValue) -> str:
    match value:
        case HsNull():
            return "null"
        case HsInstance(cls=cls):
            return cls.full_name
        case HsClass(full_name=full_name):
            return f"class {full_name}"
        case bool():
            return "boolean"
        case int():
            return "int"
        case float():
            return "double"
        case str():
            return "String"
        case type():
            return value.__name__
        case _:
            return type(value).__name__

def signature(name: str, args: Sequence[HsValue]) -> str:
    return f"{name}({', '.join(type_label(a) for a in args)})"
