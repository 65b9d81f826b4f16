"""
STACKBRIDGE BRIDGE - Script-facing proxies over a StackGraph.

Every proxy pairs a handle with a link to the GraphProxy that owns the graph;
nothing here ever holds a reference into arena storage.
"""

from bridge.link import (
    BridgeError,
    OperandError,
    BorrowConflictError,
    ScopeExpiredError,
    ScriptError,
    BorrowGuard,
)
from bridge.node_proxy import NodeProxy
from bridge.edge_proxy import EdgeProxy
from bridge.iteration import NodeIteration
from bridge.file_proxy import FileProxy
from bridge.graph_proxy import GraphProxy
from bridge.script_host import ScriptHost

__all__ = [
    # Errors
    "BridgeError",
    "OperandError",
    "BorrowConflictError",
    "ScopeExpiredError",
    "ScriptError",
    # Proxies
    "BorrowGuard",
    "GraphProxy",
    "FileProxy",
    "NodeProxy",
    "EdgeProxy",
    "NodeIteration",
    "ScriptHost",
]
