"""
STACKBRIDGE STACK GRAPH - The Arena

The mutable, arena-backed stack graph that the proxy bridge exposes. Nodes and
edges live in a rustworkx PyDiGraph, whose integer indices are stable as long
as nothing is removed (and a stack graph only grows). Symbols, strings and
file names live in append-only interning arenas.

Architecture (The Arena Pattern):
  Caller Layer (bridge proxies)
  - Holds only handles: NodeHandle(index, graph_token)
  - Calls: graph.node(handle), graph.add_edge(a, b, precedence)

  Arena Layer (This File)
  - _node_ids: Dict[NodeID, int]   (NodeID -> arena index)
  - _symbols / _strings / _files:  interning arenas (text <-> index)
  - _source_info / _debug_info:    per-node optional attachments

  Rust Layer (rustworkx.PyDiGraph)
  - Node slot 0: null sentinel
  - Node slot 1: root, slot 2: jump-to (always present)
  - Edges: multigraph, payload is an Edge value

Every handle carries the token of the graph that allocated it. Dereferencing a
handle against any other graph raises ForeignHandleError.

Thread Safety:
    NOT thread-safe. The bridge layer enforces dynamic borrow discipline.
"""
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import polars as pl
import rustworkx as rx

from core.ontology import (
    NodeKind,
    SENTINEL_INDEX, ROOT_NODE_INDEX, JUMP_TO_NODE_INDEX,
    ROOT_LOCAL_ID, JUMP_TO_LOCAL_ID,
    ROOT_ID_DISPLAY, JUMP_TO_ID_DISPLAY,
    DEFAULT_PRECEDENCE,
    get_display_template,
)
from core.schemas import (
    NodeHandle, FileHandle, SymbolHandle, StringHandle,
    NodeID, NodeData, Edge, SourceInfo, DebugPair,
    generate_token,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class GraphError(Exception):
    """Base exception for stack graph operations."""
    pass


class InvalidHandleError(GraphError):
    """Raised when a handle does not denote an element of this graph."""
    def __init__(self, handle, message: Optional[str] = None):
        self.handle = handle
        super().__init__(message or f"Invalid handle: {handle!r}")


class ForeignHandleError(InvalidHandleError):
    """Raised when a handle allocated by another graph is dereferenced here."""
    def __init__(self, handle, expected_graph: str):
        self.expected_graph = expected_graph
        super().__init__(
            handle,
            f"Handle {handle!r} belongs to graph {handle.graph}, "
            f"not to graph {expected_graph}",
        )


class NodeIDCollisionError(GraphError):
    """
    Raised when a freshly allocated node id is already in use.

    This is an allocation invariant violation (a logic defect), never a user
    error. It must propagate.
    """
    def __init__(self, node_id: NodeID):
        self.node_id = node_id
        super().__init__(f"Node ID collision: {node_id!r}")


# =============================================================================
# INTERNING ARENA
# =============================================================================

class _InternArena:
    """Append-only text arena. Slot 0 is the null sentinel."""

    def __init__(self):
        self._items: List[Optional[str]] = [None]
        self._index: Dict[str, int] = {}

    def intern(self, text: str) -> int:
        idx = self._index.get(text)
        if idx is None:
            idx = len(self._items)
            self._items.append(text)
            self._index[text] = idx
        return idx

    def find(self, text: str) -> Optional[int]:
        return self._index.get(text)

    def get(self, idx: int) -> Optional[str]:
        if 0 < idx < len(self._items):
            return self._items[idx]
        return None

    def __len__(self) -> int:
        return len(self._items) - 1


# =============================================================================
# STACK GRAPH (The Arena Engine)
# =============================================================================

class StackGraph:
    """
    In-memory stack graph backed by rustworkx.

    Usage:
        graph = StackGraph()
        file = graph.get_or_create_file("test.py")
        symbol = graph.add_symbol("foo")
        node = graph.add_pop_symbol_node(graph.new_node_id(file), symbol, True)
        graph.add_edge(graph.root_node(), node, 0)

        for handle in graph.iter_nodes():
            print(graph.display_node(handle))
    """

    def __init__(self):
        self._token = generate_token()

        # Core storage: Rust-native directed multigraph
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=True)
        self._graph.add_node(None)  # slot 0: null sentinel

        self._files = _InternArena()
        self._symbols = _InternArena()
        self._strings = _InternArena()

        self._node_ids: Dict[NodeID, int] = {}
        self._next_local_ids: Dict[int, int] = {}

        self._source_info: Dict[int, SourceInfo] = {}
        self._debug_info: Dict[int, List[DebugPair]] = {}

        root = self._graph.add_node(
            NodeData(kind=NodeKind.ROOT, id=NodeID(None, ROOT_LOCAL_ID))
        )
        jump_to = self._graph.add_node(
            NodeData(kind=NodeKind.JUMP_TO, id=NodeID(None, JUMP_TO_LOCAL_ID))
        )
        assert (root, jump_to) == (ROOT_NODE_INDEX, JUMP_TO_NODE_INDEX)
        self._node_ids[NodeID(None, ROOT_LOCAL_ID)] = root
        self._node_ids[NodeID(None, JUMP_TO_LOCAL_ID)] = jump_to

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def token(self) -> str:
        """Owner fingerprint carried by every handle this graph allocates."""
        return self._token

    @property
    def arena_size(self) -> int:
        """Number of node slots, including the null sentinel."""
        return self._graph.num_nodes()

    @property
    def node_count(self) -> int:
        """Number of nodes, including the two singletons."""
        return self._graph.num_nodes() - 1

    @property
    def edge_count(self) -> int:
        return self._graph.num_edges()

    @property
    def file_count(self) -> int:
        return len(self._files)

    # =========================================================================
    # SINGLETONS
    # =========================================================================

    def root_node(self) -> NodeHandle:
        return NodeHandle(ROOT_NODE_INDEX, self._token)

    def jump_to_node(self) -> NodeHandle:
        return NodeHandle(JUMP_TO_NODE_INDEX, self._token)

    # =========================================================================
    # FILES, SYMBOLS, STRINGS
    # =========================================================================

    def get_or_create_file(self, name: str) -> FileHandle:
        """Return the file with this name, creating it if necessary."""
        existing = self._files.find(name)
        if existing is not None:
            return FileHandle(existing, self._token)
        idx = self._files.intern(name)
        logger.debug("created file %s (%d)", name, idx)
        return FileHandle(idx, self._token)

    def get_file(self, name: str) -> Optional[FileHandle]:
        idx = self._files.find(name)
        return FileHandle(idx, self._token) if idx is not None else None

    def file_name(self, file: FileHandle) -> str:
        self._check_owner(file)
        name = self._files.get(file.index)
        if name is None:
            raise InvalidHandleError(file)
        return name

    def iter_files(self) -> Iterator[FileHandle]:
        for idx in range(1, len(self._files) + 1):
            yield FileHandle(idx, self._token)

    def add_symbol(self, text: str) -> SymbolHandle:
        return SymbolHandle(self._symbols.intern(text), self._token)

    def symbol_text(self, symbol: SymbolHandle) -> str:
        self._check_owner(symbol)
        text = self._symbols.get(symbol.index)
        if text is None:
            raise InvalidHandleError(symbol)
        return text

    def add_string(self, text: str) -> StringHandle:
        return StringHandle(self._strings.intern(text), self._token)

    def string_text(self, string: StringHandle) -> str:
        self._check_owner(string)
        text = self._strings.get(string.index)
        if text is None:
            raise InvalidHandleError(string)
        return text

    # =========================================================================
    # NODE OPERATIONS
    # =========================================================================

    def new_node_id(self, file: FileHandle) -> NodeID:
        """Return an unused node id in the given file."""
        self._check_owner(file)
        return NodeID(file, self._next_local_ids.get(file.index, 0))

    def add_push_symbol_node(
        self, id: NodeID, symbol: SymbolHandle, is_reference: bool
    ) -> Optional[NodeHandle]:
        """Add a push symbol node. Returns None if the id is already in use."""
        return self._add_node(NodeData(
            kind=NodeKind.PUSH_SYMBOL, id=id, symbol=symbol,
            is_reference=is_reference,
        ))

    def add_push_scoped_symbol_node(
        self, id: NodeID, symbol: SymbolHandle, scope: NodeID, is_reference: bool
    ) -> Optional[NodeHandle]:
        return self._add_node(NodeData(
            kind=NodeKind.PUSH_SCOPED_SYMBOL, id=id, symbol=symbol, scope=scope,
            is_reference=is_reference,
        ))

    def add_pop_symbol_node(
        self, id: NodeID, symbol: SymbolHandle, is_definition: bool
    ) -> Optional[NodeHandle]:
        return self._add_node(NodeData(
            kind=NodeKind.POP_SYMBOL, id=id, symbol=symbol,
            is_definition=is_definition,
        ))

    def add_pop_scoped_symbol_node(
        self, id: NodeID, symbol: SymbolHandle, is_definition: bool
    ) -> Optional[NodeHandle]:
        return self._add_node(NodeData(
            kind=NodeKind.POP_SCOPED_SYMBOL, id=id, symbol=symbol,
            is_definition=is_definition,
        ))

    def add_drop_scopes_node(self, id: NodeID) -> Optional[NodeHandle]:
        return self._add_node(NodeData(kind=NodeKind.DROP_SCOPES, id=id))

    def add_scope_node(self, id: NodeID, is_exported: bool) -> Optional[NodeHandle]:
        return self._add_node(NodeData(
            kind=NodeKind.SCOPE, id=id, is_exported=is_exported,
        ))

    def _add_node(self, data: NodeData) -> Optional[NodeHandle]:
        if data.id.file is None or data.id in self._node_ids:
            return None
        self._check_owner(data.id.file)
        if data.symbol is not None:
            self._check_owner(data.symbol)

        idx = self._graph.add_node(data)
        self._node_ids[data.id] = idx

        file_index = data.id.file.index
        self._next_local_ids[file_index] = max(
            self._next_local_ids.get(file_index, 0), data.id.local_id + 1
        )
        return NodeHandle(idx, self._token)

    def node(self, handle: NodeHandle) -> NodeData:
        """
        Dereference a node handle.

        Raises:
            ForeignHandleError: If the handle was allocated by another graph
            InvalidHandleError: If the handle is out of range
        """
        self._check_node(handle)
        return self._graph[handle.index]

    def node_for_id(self, id: NodeID) -> Optional[NodeHandle]:
        idx = self._node_ids.get(id)
        return NodeHandle(idx, self._token) if idx is not None else None

    def has_node(self, handle: NodeHandle) -> bool:
        return (
            handle.graph == self._token
            and SENTINEL_INDEX < handle.index < self._graph.num_nodes()
        )

    def iter_nodes(self) -> Iterator[NodeHandle]:
        """Iterate over every node handle in creation order."""
        for idx in range(ROOT_NODE_INDEX, self._graph.num_nodes()):
            yield NodeHandle(idx, self._token)

    def nodes_for_file(self, file: FileHandle) -> Iterator[NodeHandle]:
        """Iterate over the nodes of one file (full arena scan)."""
        self._check_owner(file)
        for idx in range(ROOT_NODE_INDEX, self._graph.num_nodes()):
            if self._graph[idx].file == file:
                yield NodeHandle(idx, self._token)

    # =========================================================================
    # EDGE OPERATIONS
    # =========================================================================

    def add_edge(
        self,
        source: NodeHandle,
        sink: NodeHandle,
        precedence: int = DEFAULT_PRECEDENCE,
    ) -> bool:
        """
        Add a directed edge.

        Edges that differ only in precedence are distinct. Adding an edge that
        already exists with the same precedence is a no-op.

        Returns:
            True if a new edge was stored
        """
        self._check_node(source)
        self._check_node(sink)

        edge = Edge(source, sink, precedence)
        for _, _, existing in self._graph.out_edges(source.index):
            if existing == edge:
                return False

        self._graph.add_edge(source.index, sink.index, edge)
        return True

    def outgoing_edges(self, handle: NodeHandle) -> List[Edge]:
        """Edges leaving a node, ordered by sink then precedence."""
        self._check_node(handle)
        return sorted(data for _, _, data in self._graph.out_edges(handle.index))

    def iter_edges(self) -> Iterator[Edge]:
        for handle in self.iter_nodes():
            yield from self.outgoing_edges(handle)

    # =========================================================================
    # SOURCE INFO & DEBUG INFO
    # =========================================================================

    def source_info(self, handle: NodeHandle) -> Optional[SourceInfo]:
        self._check_node(handle)
        return self._source_info.get(handle.index)

    def source_info_mut(self, handle: NodeHandle) -> SourceInfo:
        """Return the node's source info, creating an empty one if absent."""
        self._check_node(handle)
        info = self._source_info.get(handle.index)
        if info is None:
            info = SourceInfo()
            self._source_info[handle.index] = info
        return info

    def node_debug_info(self, handle: NodeHandle) -> Optional[List[DebugPair]]:
        self._check_node(handle)
        pairs = self._debug_info.get(handle.index)
        return list(pairs) if pairs is not None else None

    def node_debug_info_mut(self, handle: NodeHandle) -> List[DebugPair]:
        self._check_node(handle)
        return self._debug_info.setdefault(handle.index, [])

    def add_debug_info(self, handle: NodeHandle, key: str, value: str) -> DebugPair:
        pair = DebugPair(self.add_string(key), self.add_string(value))
        self.node_debug_info_mut(handle).append(pair)
        return pair

    # =========================================================================
    # DISPLAY
    # =========================================================================

    def display_node_id(self, id: NodeID) -> str:
        if not id.is_singleton():
            return f"{self.file_name(id.file)}({id.local_id})"
        if id.local_id == ROOT_LOCAL_ID:
            return ROOT_ID_DISPLAY
        if id.local_id == JUMP_TO_LOCAL_ID:
            return JUMP_TO_ID_DISPLAY
        return f"[{id.local_id}]"

    def display_node(self, handle: NodeHandle) -> str:
        """Deterministic single-line display form of a node."""
        data = self.node(handle)
        template = get_display_template(data.kind, data.flag)
        return template.format(
            id=self.display_node_id(data.id),
            symbol=self.symbol_text(data.symbol) if data.symbol is not None else "",
            scope=self.display_node_id(data.scope) if data.scope is not None else "",
        )

    def display_edge(self, edge: Edge) -> str:
        return (
            f"{self.display_node(edge.source)} "
            f"-{edge.precedence}-> "
            f"{self.display_node(edge.sink)}"
        )

    # =========================================================================
    # PERSISTENCE (Polars-Compatible)
    # =========================================================================

    def to_polars_nodes(self) -> pl.DataFrame:
        """
        Export nodes to a Polars DataFrame.

        One row per node, singletons included, in handle order.
        """
        rows: Dict[str, list] = {
            "handle": [], "file": [], "local_id": [], "kind": [],
            "symbol": [], "flag": [], "syntax_type": [], "display": [],
        }
        for handle in self.iter_nodes():
            data = self.node(handle)
            info = self._source_info.get(handle.index)
            rows["handle"].append(handle.index)
            rows["file"].append(
                self.file_name(data.file) if data.file is not None else None
            )
            rows["local_id"].append(data.id.local_id)
            rows["kind"].append(data.kind.value)
            rows["symbol"].append(
                self.symbol_text(data.symbol) if data.symbol is not None else None
            )
            rows["flag"].append(data.flag)
            rows["syntax_type"].append(
                self.string_text(info.syntax_type)
                if info is not None and info.syntax_type is not None else None
            )
            rows["display"].append(self.display_node(handle))

        return pl.DataFrame(rows, schema={
            "handle": pl.Int64, "file": pl.Utf8, "local_id": pl.Int64,
            "kind": pl.Utf8, "symbol": pl.Utf8, "flag": pl.Boolean,
            "syntax_type": pl.Utf8, "display": pl.Utf8,
        })

    def to_polars_edges(self) -> pl.DataFrame:
        """Export edges to a Polars DataFrame."""
        edges = list(self.iter_edges())
        return pl.DataFrame({
            "source": [e.source.index for e in edges],
            "sink": [e.sink.index for e in edges],
            "precedence": [e.precedence for e in edges],
            "display": [self.display_edge(e) for e in edges],
        }, schema={
            "source": pl.Int64, "sink": pl.Int64,
            "precedence": pl.Int64, "display": pl.Utf8,
        })

    def save_parquet(self, path: Path) -> Tuple[Path, Path]:
        """
        Save graph state to parquet files.

        Creates two files:
        - {path}.nodes.parquet
        - {path}.edges.parquet
        """
        path = Path(path)
        nodes_path = path.with_suffix(".nodes.parquet")
        edges_path = path.with_suffix(".edges.parquet")

        self.to_polars_nodes().write_parquet(nodes_path)
        self.to_polars_edges().write_parquet(edges_path)
        return nodes_path, edges_path

    def save_arrow(self, path: Path) -> Tuple[Path, Path]:
        """Save graph state to Arrow IPC files."""
        path = Path(path)
        nodes_path = path.with_suffix(".nodes.arrow")
        edges_path = path.with_suffix(".edges.arrow")

        self.to_polars_nodes().write_ipc(nodes_path)
        self.to_polars_edges().write_ipc(edges_path)
        return nodes_path, edges_path

    # =========================================================================
    # INTERNAL UTILITIES
    # =========================================================================

    def _check_owner(self, handle) -> None:
        if handle.graph != self._token:
            raise ForeignHandleError(handle, self._token)

    def _check_node(self, handle: NodeHandle) -> None:
        self._check_owner(handle)
        if not SENTINEL_INDEX < handle.index < self._graph.num_nodes():
            raise InvalidHandleError(handle)

    def __len__(self) -> int:
        """Return number of nodes."""
        return self.node_count

    def __contains__(self, handle: NodeHandle) -> bool:
        return self.has_node(handle)

    def __repr__(self) -> str:
        return f"StackGraph(nodes={self.node_count}, edges={self.edge_count})"
