"""
STACKBRIDGE GRAPH PROXY - The Sole Owner

This is the most critical file of the bridge. The GraphProxy is the only
script-visible value that holds a StackGraph. Every file, node and edge proxy
links back to it, and every operation on any of them goes through it to
obtain a borrow of the graph.

Architecture (The Handle-Proxy Pattern):
  Script Layer
  - Holds: GraphProxy, FileProxy, NodeProxy, EdgeProxy values
  - Calls: graph.file("a.py").definition_node("foo")

  Bridge Layer (This Package)
  - Proxy = (handle or Edge value, owner link)
  - GraphProxy.borrow() / borrow_mut(): per-call, checked at runtime

  Arena Layer (core.stack_graph)
  - StackGraph: rustworkx node/edge arena, interning arenas

Exposure modes:
- Owned:  GraphProxy(graph) / GraphProxy.owned(graph). The proxy holds the
          graph for as long as it (or any derived proxy) is alive.
- Scoped: `with GraphProxy.scope(graph) as proxy:` lends the host's graph for
          the block. On exit the link is revoked; every derived proxy then
          raises ScopeExpiredError, and the host keeps using its graph.

All proxies over one StackGraph share its BorrowGuard, so a second exposure
of a graph (a nested scope, a re-entrant ScriptHost.call) cannot alias an
exclusive borrow held through the first.
"""
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import polars as pl

from core.ontology import JUMP_TO_NODE_INDEX, ROOT_NODE_INDEX
from core.schemas import FileHandle, NodeHandle
from core.stack_graph import StackGraph
from bridge.link import BorrowGuard, OperandError, ScopeExpiredError, guard_for
from bridge.edge_proxy import EdgeProxy
from bridge.file_proxy import FileProxy
from bridge.iteration import NodeIteration
from bridge.node_proxy import NodeProxy, text_operand
from infrastructure.logger import MutationLogger, get_logger

logger = logging.getLogger(__name__)


class GraphProxy:
    """
    Script-visible stack graph.

    Usage:
        proxy = GraphProxy()
        file = proxy.file("test.py")
        definition = file.definition_node("foo")
        definition.add_edge_from(proxy.root_node())

        assert len(list(proxy.nodes())) == 3

    Host access (outside any proxy call):
        with proxy.borrow() as graph:       # shared
            graph.node_count
        with proxy.borrow_mut() as graph:   # exclusive
            graph.add_symbol("x")
    """

    def __init__(
        self,
        graph: Optional[StackGraph] = None,
        *,
        journal: Optional[MutationLogger] = None,
    ):
        self._graph: Optional[StackGraph] = graph if graph is not None else StackGraph()
        self._token = self._graph.token
        self._guard = guard_for(self._graph)
        self._journal = journal if journal is not None else get_logger()
        self._scoped = False

    # =========================================================================
    # EXPOSURE
    # =========================================================================

    @classmethod
    def owned(
        cls, graph: StackGraph, journal: Optional[MutationLogger] = None
    ) -> "GraphProxy":
        """Wrap a graph, taking ownership of it."""
        return cls(graph, journal=journal)

    @classmethod
    @contextmanager
    def scope(
        cls, graph: StackGraph, journal: Optional[MutationLogger] = None
    ) -> Iterator["GraphProxy"]:
        """Lend the host's graph to scripts for the duration of a block."""
        proxy = cls(graph, journal=journal)
        proxy._scoped = True
        try:
            yield proxy
        finally:
            proxy._revoke()

    @classmethod
    @contextmanager
    def scope_file(
        cls,
        graph: StackGraph,
        file: FileHandle,
        journal: Optional[MutationLogger] = None,
    ) -> Iterator[FileProxy]:
        """Lend one existing file of the host's graph for a block."""
        if file.graph != graph.token:
            raise OperandError("scope_file", "file belongs to a different graph")
        with cls.scope(graph, journal=journal) as proxy:
            yield FileProxy(proxy, file)

    def _revoke(self) -> None:
        logger.debug("revoking scoped graph proxy %s", self._token)
        self._graph = None

    @property
    def is_scoped(self) -> bool:
        return self._scoped

    @property
    def is_alive(self) -> bool:
        return self._graph is not None

    # =========================================================================
    # BORROWING
    # =========================================================================

    @property
    def token(self) -> str:
        """The token of the graph behind this proxy."""
        return self._token

    @property
    def journal(self) -> MutationLogger:
        return self._journal

    @property
    def guard(self) -> BorrowGuard:
        return self._guard

    def _live_graph(self, operation: str) -> StackGraph:
        if self._graph is None:
            logger.warning("%s called on a proxy whose scope has ended", operation)
            raise ScopeExpiredError(operation)
        return self._graph

    @contextmanager
    def borrow(self, operation: str = "borrow") -> Iterator[StackGraph]:
        """Shared borrow of the graph."""
        graph = self._live_graph(operation)
        with self._guard.shared(operation):
            yield graph

    @contextmanager
    def borrow_mut(self, operation: str = "borrow_mut") -> Iterator[StackGraph]:
        """Exclusive borrow of the graph."""
        graph = self._live_graph(operation)
        with self._guard.exclusive(operation):
            yield graph

    # =========================================================================
    # SCRIPT-FACING OPERATIONS
    # =========================================================================

    def file(self, name) -> FileProxy:
        """Return the file with this name, creating it if necessary."""
        operation = "file"
        name = text_operand(name, operation, "file name")
        with self.borrow_mut(operation) as graph:
            existed = graph.get_file(name) is not None
            handle = graph.get_or_create_file(name)
        if not existed:
            self._journal.log_file_created(self._token, handle.index, name)
        return FileProxy(self, handle)

    def root_node(self) -> NodeProxy:
        """The root singleton. Needs a live graph but no borrow."""
        self._live_graph("root_node")
        return NodeProxy(self, NodeHandle(ROOT_NODE_INDEX, self._token))

    def jump_to_node(self) -> NodeProxy:
        self._live_graph("jump_to_node")
        return NodeProxy(self, NodeHandle(JUMP_TO_NODE_INDEX, self._token))

    def nodes(self) -> NodeIteration:
        """Every node of the graph, root and jump-to first."""
        return NodeIteration(self)

    def edges(self) -> List[EdgeProxy]:
        """Every edge of the graph, grouped by source node."""
        with self.borrow("edges") as graph:
            edges = list(graph.iter_edges())
        return [EdgeProxy(self, edge) for edge in edges]

    def files(self) -> List[FileProxy]:
        with self.borrow("files") as graph:
            handles = list(graph.iter_files())
        return [FileProxy(self, handle) for handle in handles]

    # =========================================================================
    # HOST-FACING HELPERS
    # =========================================================================

    @property
    def node_count(self) -> int:
        with self.borrow("node_count") as graph:
            return graph.node_count

    @property
    def edge_count(self) -> int:
        with self.borrow("edge_count") as graph:
            return graph.edge_count

    def to_polars_nodes(self) -> pl.DataFrame:
        with self.borrow("to_polars_nodes") as graph:
            return graph.to_polars_nodes()

    def to_polars_edges(self) -> pl.DataFrame:
        with self.borrow("to_polars_edges") as graph:
            return graph.to_polars_edges()

    def save_parquet(self, path: Path) -> Tuple[Path, Path]:
        with self.borrow("save_parquet") as graph:
            return graph.save_parquet(path)

    def save_arrow(self, path: Path) -> Tuple[Path, Path]:
        with self.borrow("save_arrow") as graph:
            return graph.save_arrow(path)

    def __repr__(self) -> str:
        if self._graph is None:
            return "GraphProxy(<scope ended>)"
        mode = "scoped" if self._scoped else "owned"
        return f"GraphProxy({mode}, {self._graph!r})"
