"""Minimal synchronous dataflow cells driving the display pipeline.

A ``Cell`` holds a value; ``derive`` builds cells computed from other cells
and ``listen`` attaches side effects. Setting a cell re-evaluates every
direct and transitive dependent before ``set`` returns.

Ordering
--------
Each node has a level (source cells are level 0, a dependent is one above
its highest upstream). A propagation collects all affected nodes once and
runs them sorted by ``(level, registration order)``, so every dependent
sees fully updated upstream values and runs at most once per ``set``.

Usage contract
--------------
- Cells belong to the thread running the UI event loop. Work done on other
  threads must be handed back to that thread before calling ``set``.
- Dependents may call ``set`` on other cells; the nested propagation
  completes before control returns to the outer one.
- Cycles are a programming error and are not detected.
"""

from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

__all__ = [
    "Cell",
    "DerivedCell",
    "Listener",
    "Scope",
    "derive",
    "listen",
]

T = TypeVar("T")
U = TypeVar("U")

_registration = itertools.count()


class _Node:
    """Base for anything registered as a dependent of a cell."""

    level: int
    order: int
    disposed: bool = False

    def _react(self) -> None:
        raise NotImplementedError


class Cell(Generic[T]):
    """Observable value with synchronously recomputed dependents."""

    def __init__(self, value: T, name: Optional[str] = None) -> None:
        self._value = value
        self._dependents: List[_Node] = []
        self.level = 0
        self.order = next(_registration)
        self.name = name

    @property
    def value(self) -> T:
        return self._value

    def get(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        """Assign ``value`` and run every dependent before returning."""
        self._value = value
        _propagate(self)

    def map(self, fn: Callable[[T], U], name: Optional[str] = None) -> "DerivedCell[U]":
        return derive(fn, self, name=name)

    def on(self, callback: Callable[[T], Any]) -> "Listener":
        return listen(callback, self)

    @property
    def dependents(self) -> Tuple[_Node, ...]:
        return tuple(self._dependents)

    def __repr__(self) -> str:
        label = f" {self.name!r}" if self.name else ""
        return f"<{type(self).__name__}{label} value={self._value!r}>"


class DerivedCell(Cell[T], _Node):
    """Cell whose value is recomputed from upstream cells."""

    def __init__(self, fn: Callable[..., T], upstreams: Iterable[Cell], name: Optional[str] = None) -> None:
        upstreams = tuple(upstreams)
        if not upstreams:
            raise ValueError("derive() needs at least one upstream cell.")
        self._fn = fn
        self._upstreams = upstreams
        super().__init__(fn(*[c.value for c in upstreams]), name=name)
        self.level = 1 + max(c.level for c in upstreams)
        self.disposed = False
        for cell in upstreams:
            cell._dependents.append(self)

    def _react(self) -> None:
        self._value = self._fn(*[c.value for c in self._upstreams])

    def dispose(self) -> None:
        """Unregister from all upstream cells."""
        for cell in self._upstreams:
            if self in cell._dependents:
                cell._dependents.remove(self)
        self._upstreams = ()
        self.disposed = True


class Listener(_Node):
    """Side-effect node called with the current values of its upstreams."""

    def __init__(self, callback: Callable[..., Any], upstreams: Iterable[Cell]) -> None:
        upstreams = tuple(upstreams)
        if not upstreams:
            raise ValueError("listen() needs at least one upstream cell.")
        self._callback = callback
        self._upstreams = upstreams
        self.level = 1 + max(c.level for c in upstreams)
        self.order = next(_registration)
        self.disposed = False
        for cell in upstreams:
            cell._dependents.append(self)

    def _react(self) -> None:
        self._callback(*[c.value for c in self._upstreams])

    def disconnect(self) -> None:
        for cell in self._upstreams:
            if self in cell._dependents:
                cell._dependents.remove(self)
        self._upstreams = ()
        self.disposed = True

    dispose = disconnect


def derive(fn: Callable[..., T], *cells: Cell, name: Optional[str] = None) -> DerivedCell[T]:
    """Create a cell computed as ``fn(*values)`` and kept up to date."""
    return DerivedCell(fn, cells, name=name)


def listen(callback: Callable[..., Any], *cells: Cell) -> Listener:
    """Call ``callback(*values)`` whenever any of ``cells`` changes."""
    return Listener(callback, cells)


def _propagate(source: Cell) -> None:
    affected: Dict[int, _Node] = {}
    stack: List[_Node] = list(source._dependents)
    while stack:
        node = stack.pop()
        if id(node) in affected:
            continue
        affected[id(node)] = node
        stack.extend(getattr(node, "_dependents", ()))
    for node in sorted(affected.values(), key=lambda n: (n.level, n.order)):
        if node.disposed:
            continue
        node._react()


class Scope:
    """Owns cells and listeners so they can be released together."""

    def __init__(self) -> None:
        self._owned: List[Any] = []
        self.closed = False

    def derive(self, fn: Callable[..., T], *cells: Cell, name: Optional[str] = None) -> DerivedCell[T]:
        return self.track(derive(fn, *cells, name=name))

    def listen(self, callback: Callable[..., Any], *cells: Cell) -> Listener:
        return self.track(listen(callback, *cells))

    def track(self, obj):
        """Register anything exposing ``dispose()`` or ``disconnect()``."""
        self._owned.append(obj)
        return obj

    def close(self) -> None:
        # Dependents first so nothing fires on a half-released graph.
        for obj in reversed(self._owned):
            release = getattr(obj, "dispose", None) or getattr(obj, "disconnect")
            release()
        self._owned.clear()
        self.closed = True

    def __len__(self) -> int:
        return len(self._owned)
