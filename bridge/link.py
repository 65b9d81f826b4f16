"""
STACKBRIDGE LINK - Ownership and Borrowing Across the Boundary

Every file, node and edge proxy carries an owner link: a reference to the
GraphProxy that produced it. The link is an ordinary Python reference, so it
participates in garbage collection and keeps the owner alive for as long as
any derived proxy is alive. It is set once at construction and never
reassigned.

A proxy never stores anything that points into arena storage. To do anything,
it asks its owner for a borrow of the graph, re-resolves its handle, and lets
the borrow go when the call returns.

Borrow discipline (BorrowGuard, one per StackGraph however many proxies
expose it):
- any number of shared borrows, OR
- exactly one exclusive borrow
Checked at call time. A violation raises BorrowConflictError; the guard is
released on every exit path, including exceptions.
"""
import logging
import weakref
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:
    from bridge.graph_proxy import GraphProxy
    from core.stack_graph import StackGraph

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class BridgeError(Exception):
    """Base exception for errors reported at the proxy boundary."""
    pass


class OperandError(BridgeError):
    """
    Raised when an operand has the wrong kind or shape.

    Examples: a scope operand that is not an exported scope node, a node from
    another graph, a malformed span mapping, a non-integer precedence.
    """
    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class BorrowConflictError(BridgeError):
    """Raised when a borrow would alias an outstanding exclusive borrow."""
    def __init__(self, operation: str, requested: str, held: str):
        self.operation = operation
        self.requested = requested
        self.held = held
        super().__init__(
            f"{operation}: cannot take {requested} borrow of graph "
            f"while {held} borrow is outstanding"
        )


class ScopeExpiredError(BridgeError):
    """Raised when a proxy is used after its scoped exposure has ended."""
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"{operation}: graph scope has ended")


class ScriptError(BridgeError):
    """Raised when a script does not provide a callable entry point."""
    pass


# =============================================================================
# BORROW GUARD
# =============================================================================

class BorrowGuard:
    """
    Runtime borrow checker for one graph.

    Usage:
        guard = BorrowGuard()
        with guard.shared("edges"):
            ...
        with guard.exclusive("file"):
            ...
    """

    def __init__(self):
        self._shared = 0
        self._exclusive = False

    @property
    def shared_count(self) -> int:
        return self._shared

    @property
    def is_borrowed(self) -> bool:
        return self._exclusive or self._shared > 0

    @property
    def is_mutably_borrowed(self) -> bool:
        return self._exclusive

    @contextmanager
    def shared(self, operation: str) -> Iterator[None]:
        if self._exclusive:
            logger.warning("borrow conflict in %s: graph is mutably borrowed", operation)
            raise BorrowConflictError(operation, "shared", "an exclusive")
        self._shared += 1
        try:
            yield
        finally:
            self._shared -= 1

    @contextmanager
    def exclusive(self, operation: str) -> Iterator[None]:
        if self._exclusive:
            logger.warning("borrow conflict in %s: graph is mutably borrowed", operation)
            raise BorrowConflictError(operation, "exclusive", "an exclusive")
        if self._shared:
            logger.warning("borrow conflict in %s: graph is borrowed", operation)
            raise BorrowConflictError(operation, "exclusive", "a shared")
        self._exclusive = True
        try:
            yield
        finally:
            self._exclusive = False

    def __repr__(self) -> str:
        return f"BorrowGuard(shared={self._shared}, exclusive={self._exclusive})"


# One guard per graph, shared by every proxy exposing it. Entries go away
# with the graph.
_guards: "weakref.WeakKeyDictionary[StackGraph, BorrowGuard]" = weakref.WeakKeyDictionary()


def guard_for(graph: "StackGraph") -> BorrowGuard:
    """Return the borrow guard of a graph, creating it on first exposure."""
    guard = _guards.get(graph)
    if guard is None:
        guard = BorrowGuard()
        _guards[graph] = guard
    return guard


# =============================================================================
# LINKED PROXY (Shared Base)
# =============================================================================

class LinkedProxy:
    """
    Base class of every proxy that pairs a small value with an owner link.

    Subclasses store a handle (or an Edge value) in `_value`; `_owner` is the
    GraphProxy link. Equality is by value AND owner identity.
    """

    __slots__ = ("_owner", "_value")

    def __init__(self, owner: "GraphProxy", value: Any):
        self._owner = owner
        self._value = value

    @property
    def owner(self) -> "GraphProxy":
        """The graph proxy this value is linked to."""
        return self._owner

    def __eq__(self, other: object) -> bool:
        if type(other) is not type(self):
            return NotImplemented
        return self._owner is other._owner and self._value == other._value

    def __hash__(self) -> int:
        return hash((type(self).__name__, id(self._owner), self._value))

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, name):
            raise AttributeError(f"{type(self).__name__}.{name} cannot be reassigned")
        object.__setattr__(self, name, value)
