"""
Restartable external iteration over graph nodes.

A NodeIteration is stepped by its consumer. Its only state between steps is
the last node it returned, held by the consumer; every step takes a fresh
shared borrow and recomputes the arena bounds, so the graph may be mutated
freely between steps.

Two calling conventions are offered:

    # Python iteration (each `for` loop restarts from the first node)
    for node in graph.nodes():
        ...

    # Pull-based protocol: a function invoked with its own state until None
    step, state, prev = graph.nodes().protocol()
    while (prev := step(state, prev)) is not None:
        ...
"""
import logging
from typing import TYPE_CHECKING, Callable, Iterator, Optional, Tuple

from core.ontology import ROOT_NODE_INDEX
from core.schemas import FileHandle, NodeHandle
from bridge.node_proxy import NodeProxy, node_operand

if TYPE_CHECKING:
    from bridge.graph_proxy import GraphProxy

logger = logging.getLogger(__name__)


StepFunction = Callable[["NodeIteration", Optional[NodeProxy]], Optional[NodeProxy]]


class NodeIteration:
    """Every node of a graph, or only the nodes of one file, in handle order."""

    def __init__(self, owner: "GraphProxy", file: Optional[FileHandle] = None):
        self._owner = owner
        self._file = file

    @property
    def file(self) -> Optional[FileHandle]:
        return self._file

    def step(self, prev: Optional[NodeProxy]) -> Optional[NodeProxy]:
        """
        Return the node after `prev` (or the first node when `prev` is None).

        Returns None once the candidate handle reaches the arena size observed
        during this step.
        """
        operation = "nodes"
        prev_index = 0
        if prev is not None:
            prev_index = node_operand(self._owner, prev, operation).index

        with self._owner.borrow(operation) as graph:
            arena_size = graph.arena_size
            candidate = max(prev_index + 1, ROOT_NODE_INDEX)
            while candidate < arena_size:
                handle = NodeHandle(candidate, graph.token)
                if self._file is None or graph.node(handle).file == self._file:
                    break
                candidate += 1
            else:
                return None

        return NodeProxy(self._owner, handle)

    def protocol(self) -> Tuple[StepFunction, "NodeIteration", None]:
        """Return (step function, state, initial value) for pull-based loops."""
        return NodeIteration.step, self, None

    def __iter__(self) -> Iterator[NodeProxy]:
        prev = None
        while True:
            node = self.step(prev)
            if node is None:
                return
            yield node
            prev = node

    def __repr__(self) -> str:
        scope = f"file={self._file.index}" if self._file is not None else "all"
        return f"NodeIteration({scope})"
