"""
STACKBRIDGE CORE - The arena-backed stack graph.

This module provides access to:
- StackGraph and its exceptions
- Handle and payload types (NodeHandle, FileHandle, NodeID, Edge, Span, ...)
- The node vocabulary (NodeKind)
"""

from core.ontology import NodeKind
from core.schemas import (
    NodeHandle,
    FileHandle,
    SymbolHandle,
    StringHandle,
    NodeID,
    NodeData,
    Edge,
    Offset,
    LineRange,
    Position,
    Span,
    SourceInfo,
    DebugEntry,
)
from core.stack_graph import (
    StackGraph,
    GraphError,
    InvalidHandleError,
    ForeignHandleError,
    NodeIDCollisionError,
)

__all__ = [
    # Vocabulary
    "NodeKind",
    # Values
    "NodeHandle",
    "FileHandle",
    "SymbolHandle",
    "StringHandle",
    "NodeID",
    "NodeData",
    "Edge",
    "Offset",
    "LineRange",
    "Position",
    "Span",
    "SourceInfo",
    "DebugEntry",
    # Graph
    "StackGraph",
    "GraphError",
    "InvalidHandleError",
    "ForeignHandleError",
    "NodeIDCollisionError",
]
