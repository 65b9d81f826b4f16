"""
STACKBRIDGE NODE PROXY - A Node, Seen From a Script

A NodeProxy pairs a NodeHandle with the link to its GraphProxy. It holds no
NodeData: every accessor borrows the graph, re-resolves the handle, and
returns plain values (str, int, Span, DebugEntry) or other linked proxies.

Operations:
- local_id, kind, symbol, file
- outgoing_edges, add_edge_from, add_edge_to
- span / set_span, definiens_span / set_definiens_span
- syntax_type / set_syntax_type, debug_info / set_debug_info
- str(node): display form with source info suffixes
"""
import logging
from typing import TYPE_CHECKING, Any, List, Optional

import msgspec

from core.ontology import DEFAULT_PRECEDENCE, NodeKind
from core.schemas import DebugEntry, Edge, NodeHandle, Span
from bridge.link import LinkedProxy, OperandError
from bridge.edge_proxy import EdgeProxy
from infrastructure.logger import MutationType

if TYPE_CHECKING:
    from bridge.file_proxy import FileProxy
    from bridge.graph_proxy import GraphProxy

logger = logging.getLogger(__name__)


# =============================================================================
# OPERAND VALIDATION
# =============================================================================

def node_operand(owner: "GraphProxy", value: Any, operation: str) -> NodeHandle:
    """
    Validate that `value` is a node of the owner's graph and return its handle.

    Raises:
        OperandError: If `value` is not a NodeProxy, or belongs to another graph
    """
    if not isinstance(value, NodeProxy):
        raise OperandError(
            operation, f"expected a node, got {type(value).__name__}"
        )
    handle = value.handle
    if handle.graph != owner.token:
        raise OperandError(operation, "node belongs to a different graph")
    return handle


def text_operand(value: Any, operation: str, what: str = "symbol") -> str:
    """Convert a script value to text the way `tostring` would."""
    if isinstance(value, str):
        return value
    if value is None:
        raise OperandError(operation, f"{what} must be a string, got None")
    return str(value)


def precedence_operand(value: Any, operation: str) -> int:
    if value is None:
        return DEFAULT_PRECEDENCE
    if isinstance(value, bool) or not isinstance(value, int):
        raise OperandError(
            operation, f"precedence must be an integer, got {type(value).__name__}"
        )
    return value


def span_operand(value: Any, operation: str) -> Span:
    try:
        return Span.from_value(value)
    except (msgspec.ValidationError, TypeError) as e:
        raise OperandError(operation, f"malformed span: {e}") from e


# =============================================================================
# NODE PROXY
# =============================================================================

class NodeProxy(LinkedProxy):
    """
    Script-visible node value.

    Usage:
        node = file.definition_node("foo")
        node.add_edge_from(graph.root_node())
        node.set_span({"start": {"line": 1}, "end": {"line": 1}})
        print(node)   # [test.py(0) definition foo at 1:0-1:0]
    """

    __slots__ = ()

    def __init__(self, owner: "GraphProxy", handle: NodeHandle):
        super().__init__(owner, handle)

    @property
    def handle(self) -> NodeHandle:
        return self._value

    # =========================================================================
    # IDENTITY
    # =========================================================================

    def local_id(self) -> int:
        """The node's local id within its file."""
        with self._owner.borrow("local_id") as graph:
            return graph.node(self.handle).id.local_id

    @property
    def kind(self) -> NodeKind:
        with self._owner.borrow("kind") as graph:
            return graph.node(self.handle).kind

    def symbol(self) -> Optional[str]:
        with self._owner.borrow("symbol") as graph:
            data = graph.node(self.handle)
            if data.symbol is None:
                return None
            return graph.symbol_text(data.symbol)

    def is_exported_scope(self) -> bool:
        with self._owner.borrow("is_exported_scope") as graph:
            return graph.node(self.handle).is_exported_scope()

    def file(self) -> Optional["FileProxy"]:
        """The file this node belongs to; None for the root and jump-to nodes."""
        from bridge.file_proxy import FileProxy

        with self._owner.borrow("file") as graph:
            file = graph.node(self.handle).file
        return FileProxy(self._owner, file) if file is not None else None

    # =========================================================================
    # EDGES
    # =========================================================================

    def outgoing_edges(self) -> List[EdgeProxy]:
        with self._owner.borrow("outgoing_edges") as graph:
            edges = graph.outgoing_edges(self.handle)
        return [EdgeProxy(self._owner, edge) for edge in edges]

    def add_edge_from(self, other: "NodeProxy", precedence: Optional[int] = None) -> EdgeProxy:
        """Add an edge from `other` to this node."""
        operation = "add_edge_from"
        source = node_operand(self._owner, other, operation)
        return self._add_edge(operation, source, self.handle, precedence)

    def add_edge_to(self, other: "NodeProxy", precedence: Optional[int] = None) -> EdgeProxy:
        """Add an edge from this node to `other`."""
        operation = "add_edge_to"
        sink = node_operand(self._owner, other, operation)
        return self._add_edge(operation, self.handle, sink, precedence)

    def _add_edge(
        self,
        operation: str,
        source: NodeHandle,
        sink: NodeHandle,
        precedence: Optional[int],
    ) -> EdgeProxy:
        precedence = precedence_operand(precedence, operation)
        with self._owner.borrow_mut(operation) as graph:
            created = graph.add_edge(source, sink, precedence)
        edge = Edge(source, sink, precedence)
        if created:
            logger.debug("%s: %d -%d-> %d", operation, source.index, precedence, sink.index)
            self._owner.journal.log_edge_created(
                self._owner.token, source.index, sink.index, precedence
            )
        return EdgeProxy(self._owner, edge)

    # =========================================================================
    # SOURCE INFO
    # =========================================================================

    def span(self) -> Optional[Span]:
        with self._owner.borrow("span") as graph:
            info = graph.source_info(self.handle)
            return info.span if info is not None else None

    def set_span(self, span: Any) -> None:
        """
        Set the span of this node.

        Accepts a Span or a mapping with `start` and `end` positions, each
        with `line`, `column` (utf8_offset, utf16_offset, grapheme_offset),
        `containing_line` and `trimmed_line` (start, end). Missing entries
        default to 0.
        """
        value = span_operand(span, "set_span")
        with self._owner.borrow_mut("set_span") as graph:
            graph.source_info_mut(self.handle).span = value
        self._owner.journal.log_node_updated(
            self._owner.token, self.handle.index, MutationType.SPAN_SET,
            value=value.short(),
        )

    def definiens_span(self) -> Optional[Span]:
        with self._owner.borrow("definiens_span") as graph:
            info = graph.source_info(self.handle)
            return info.definiens_span if info is not None else None

    def set_definiens_span(self, span: Any) -> None:
        """Set the definiens span of this node. Same shape as `set_span`."""
        value = span_operand(span, "set_definiens_span")
        with self._owner.borrow_mut("set_definiens_span") as graph:
            graph.source_info_mut(self.handle).definiens_span = value
        self._owner.journal.log_node_updated(
            self._owner.token, self.handle.index, MutationType.DEFINIENS_SPAN_SET,
            value=value.short(),
        )

    def syntax_type(self) -> Optional[str]:
        with self._owner.borrow("syntax_type") as graph:
            info = graph.source_info(self.handle)
            if info is None or info.syntax_type is None:
                return None
            return graph.string_text(info.syntax_type)

    def set_syntax_type(self, syntax_type: Any) -> None:
        text = text_operand(syntax_type, "set_syntax_type", "syntax type")
        with self._owner.borrow_mut("set_syntax_type") as graph:
            graph.source_info_mut(self.handle).syntax_type = graph.add_string(text)
        self._owner.journal.log_node_updated(
            self._owner.token, self.handle.index, MutationType.SYNTAX_TYPE_SET,
            value=text,
        )

    # =========================================================================
    # DEBUG INFO
    # =========================================================================

    def debug_info(self) -> Optional[List[DebugEntry]]:
        """All debug entries of this node in insertion order, or None."""
        with self._owner.borrow("debug_info") as graph:
            pairs = graph.node_debug_info(self.handle)
            if pairs is None:
                return None
            return [
                DebugEntry(graph.string_text(p.key), graph.string_text(p.value))
                for p in pairs
            ]

    def set_debug_info(self, key: Any, value: Any) -> None:
        """Append a debug entry. Keys may repeat."""
        operation = "set_debug_info"
        key = text_operand(key, operation, "debug key")
        value = text_operand(value, operation, "debug value")
        with self._owner.borrow_mut(operation) as graph:
            graph.add_debug_info(self.handle, key, value)
        self._owner.journal.log_node_updated(
            self._owner.token, self.handle.index, MutationType.DEBUG_INFO_ADDED,
            key=key, value=value,
        )

    # =========================================================================
    # RENDERING
    # =========================================================================

    def render(self) -> str:
        with self._owner.borrow("tostring") as graph:
            display = graph.display_node(self.handle)
            info = graph.source_info(self.handle)
            if info is None:
                return display

            display = display[:-1]  # reopen the closing bracket
            if info.syntax_type is not None:
                display += f" ({graph.string_text(info.syntax_type)})"
            if info.span is not None and not info.span.is_default():
                display += f" at {info.span.short()}"
            if info.definiens_span is not None and not info.definiens_span.is_default():
                display += f" def {info.definiens_span.short()}"
            return display + "]"

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"NodeProxy({self.handle.index})"
