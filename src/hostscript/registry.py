from __future__ import annotations

import threading
from typing import Dict, List, NamedTuple, Optional, Tuple

from .types import HsClass

class ClassInfo(NamedTuple):
    """Nesting metadata for one script class."""
    full_name: str
    is_static: bool
    outer: Optional[str]
    constructor_params: List[Tuple[str, ...]]

class ClassRegistry:
    """Script classes by dotted path (`Outer`, `Outer.Inner`)."""

    def __init__(self) -> None:
        self._classes: Dict[str, HsClass] = {}
        self._lock = threading.Lock()

    def define(self, cls: HsClass) -> None:
        with self._lock:
            self._classes[cls.full_name] = cls

    def lookup(self, path: str) -> Optional[HsClass]:
        with self._lock:
            return self._classes.get(path)

    def describe(self, path: str) -> Optional[ClassInfo]:
        cls = self.lookup(path)
        if cls is None:
            return None

        return ClassInfo(
            full_name=cls.full_name,
            is_static=cls.is_static,
            outer=cls.outer.full_name if cls.outer is not None else None,
            constructor_params=cls.constructor_params(),
        )

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._classes)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._classes
