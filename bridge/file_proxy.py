"""
STACKBRIDGE FILE PROXY - Namespaced Node Construction

A FileProxy pairs a FileHandle with the link to its GraphProxy. It is the only
way to create nodes: every constructor interns its symbol, allocates a fresh
local id in this file, builds the node, and returns a new linked NodeProxy.

Constructor table (operation -> node kind, refining flag):

    definition_node          pop symbol          is_definition
    scoped_definition_node   pop scoped symbol   is_definition
    reference_node           push symbol         is_reference
    scoped_reference_node    push scoped symbol  is_reference   (needs scope)
    push_symbol_node         push symbol
    push_scoped_symbol_node  push scoped symbol                 (needs scope)
    pop_symbol_node          pop symbol
    pop_scoped_symbol_node   pop scoped symbol
    drop_scopes_node         drop scopes
    internal_scope_node      scope
    exported_scope_node      scope               is_exported

A scope operand must be an exported scope node of the same graph. Anything
else is an OperandError, raised before the graph is touched.
"""
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from core.ontology import NodeKind, SYMBOL_KINDS
from core.schemas import FileHandle, NodeHandle, NodeID
from core.stack_graph import NodeIDCollisionError, StackGraph
from bridge.link import LinkedProxy, OperandError
from bridge.edge_proxy import EdgeProxy
from bridge.iteration import NodeIteration
from bridge.node_proxy import NodeProxy, node_operand, text_operand

if TYPE_CHECKING:
    from bridge.graph_proxy import GraphProxy

logger = logging.getLogger(__name__)


NODE_CONSTRUCTORS: Dict[str, Tuple[NodeKind, bool]] = {
    "definition_node": (NodeKind.POP_SYMBOL, True),
    "scoped_definition_node": (NodeKind.POP_SCOPED_SYMBOL, True),
    "reference_node": (NodeKind.PUSH_SYMBOL, True),
    "scoped_reference_node": (NodeKind.PUSH_SCOPED_SYMBOL, True),
    "push_symbol_node": (NodeKind.PUSH_SYMBOL, False),
    "push_scoped_symbol_node": (NodeKind.PUSH_SCOPED_SYMBOL, False),
    "pop_symbol_node": (NodeKind.POP_SYMBOL, False),
    "pop_scoped_symbol_node": (NodeKind.POP_SCOPED_SYMBOL, False),
    "drop_scopes_node": (NodeKind.DROP_SCOPES, False),
    "internal_scope_node": (NodeKind.SCOPE, False),
    "exported_scope_node": (NodeKind.SCOPE, True),
}


class FileProxy(LinkedProxy):
    """
    Script-visible file value.

    Usage:
        file = graph.file("test.py")
        scope = file.exported_scope_node()
        ref = file.scoped_reference_node("bar", scope)
        for node in file.nodes():
            print(node)
    """

    __slots__ = ()

    def __init__(self, owner: "GraphProxy", handle: FileHandle):
        super().__init__(owner, handle)

    @property
    def handle(self) -> FileHandle:
        return self._value

    @property
    def name(self) -> str:
        with self._owner.borrow("name") as graph:
            return graph.file_name(self.handle)

    # =========================================================================
    # NODE CONSTRUCTION
    # =========================================================================

    def definition_node(self, symbol: Any) -> NodeProxy:
        return self._construct("definition_node", symbol)

    def scoped_definition_node(self, symbol: Any) -> NodeProxy:
        return self._construct("scoped_definition_node", symbol)

    def reference_node(self, symbol: Any) -> NodeProxy:
        return self._construct("reference_node", symbol)

    def scoped_reference_node(self, symbol: Any, scope: NodeProxy) -> NodeProxy:
        return self._construct("scoped_reference_node", symbol, scope)

    def push_symbol_node(self, symbol: Any) -> NodeProxy:
        return self._construct("push_symbol_node", symbol)

    def push_scoped_symbol_node(self, symbol: Any, scope: NodeProxy) -> NodeProxy:
        return self._construct("push_scoped_symbol_node", symbol, scope)

    def pop_symbol_node(self, symbol: Any) -> NodeProxy:
        return self._construct("pop_symbol_node", symbol)

    def pop_scoped_symbol_node(self, symbol: Any) -> NodeProxy:
        return self._construct("pop_scoped_symbol_node", symbol)

    def drop_scopes_node(self) -> NodeProxy:
        return self._construct("drop_scopes_node")

    def internal_scope_node(self) -> NodeProxy:
        return self._construct("internal_scope_node")

    def exported_scope_node(self) -> NodeProxy:
        return self._construct("exported_scope_node")

    def _construct(
        self,
        operation: str,
        symbol: Any = None,
        scope: Optional[NodeProxy] = None,
    ) -> NodeProxy:
        kind, flag = NODE_CONSTRUCTORS[operation]
        text = text_operand(symbol, operation) if kind in SYMBOL_KINDS else None
        scope_handle = None
        if kind == NodeKind.PUSH_SCOPED_SYMBOL:
            scope_handle = node_operand(self._owner, scope, operation)

        with self._owner.borrow_mut(operation) as graph:
            scope_id = None
            if scope_handle is not None:
                scope_id = _exported_scope_id(graph, scope_handle, operation)

            node_id = graph.new_node_id(self.handle)
            handle = _add_node(graph, kind, flag, node_id, text, scope_id)
            if handle is None:
                logger.error("%s: node id collision for %r", operation, node_id)
                raise NodeIDCollisionError(node_id)
            display = graph.display_node(handle)
            file_name = graph.file_name(self.handle)

        logger.debug("%s: created %s", operation, display)
        self._owner.journal.log_node_created(
            self._owner.token, handle.index, kind.value,
            file=file_name, display=display,
        )
        return NodeProxy(self._owner, handle)

    # =========================================================================
    # ENUMERATION
    # =========================================================================

    def nodes(self) -> NodeIteration:
        """Every node of this file, in creation order."""
        return NodeIteration(self._owner, self.handle)

    def edges(self) -> List[EdgeProxy]:
        """
        Every edge touching this file.

        First the edges from the root and jump-to nodes into this file (those
        singletons belong to no file, so scanning this file's nodes alone
        would miss them), then every edge leaving a node of this file.
        """
        with self._owner.borrow("edges") as graph:
            edges = []
            for singleton in (graph.root_node(), graph.jump_to_node()):
                for edge in graph.outgoing_edges(singleton):
                    if graph.node(edge.sink).file == self.handle:
                        edges.append(edge)
            for node in graph.nodes_for_file(self.handle):
                edges.extend(graph.outgoing_edges(node))
        return [EdgeProxy(self._owner, edge) for edge in edges]

    def root_node(self) -> NodeProxy:
        return self._owner.root_node()

    def jump_to_node(self) -> NodeProxy:
        return self._owner.jump_to_node()

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FileProxy({self.handle.index})"


# =============================================================================
# HELPERS
# =============================================================================

def _exported_scope_id(graph: StackGraph, scope: NodeHandle, operation: str) -> NodeID:
    data = graph.node(scope)
    if not data.is_exported_scope():
        raise OperandError(operation, "Can only push exported scope nodes")
    return data.id


def _add_node(
    graph: StackGraph,
    kind: NodeKind,
    flag: bool,
    node_id: NodeID,
    text: Optional[str],
    scope_id: Optional[NodeID],
) -> Optional[NodeHandle]:
    if kind == NodeKind.DROP_SCOPES:
        return graph.add_drop_scopes_node(node_id)
    if kind == NodeKind.SCOPE:
        return graph.add_scope_node(node_id, flag)

    symbol = graph.add_symbol(text)
    if kind == NodeKind.PUSH_SYMBOL:
        return graph.add_push_symbol_node(node_id, symbol, flag)
    if kind == NodeKind.PUSH_SCOPED_SYMBOL:
        return graph.add_push_scoped_symbol_node(node_id, symbol, scope_id, flag)
    if kind == NodeKind.POP_SYMBOL:
        return graph.add_pop_symbol_node(node_id, symbol, flag)
    if kind == NodeKind.POP_SCOPED_SYMBOL:
        return graph.add_pop_scoped_symbol_node(node_id, symbol, flag)
    raise ValueError(f"Unsupported node kind: {kind}")
