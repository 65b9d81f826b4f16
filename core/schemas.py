"""
STACKBRIDGE SCHEMAS - The Grammar of the Stack Graph

If ontology.py is the Dictionary (defining the words we can use),
schemas.py is the Grammar (defining how we structure sentences).

This module defines the value types that flow through the graph and across
the proxy boundary:
- Handles: NodeHandle, FileHandle, SymbolHandle, StringHandle
- NodeID: the (file, local id) identity of a node
- NodeData: the payload stored in every arena slot
- Edge: the payload stored on every graph edge
- Span / Position / Offset / LineRange: source locations
- SourceInfo / DebugPair / DebugEntry: optional per-node attachments

Design Principles:
1. HANDLES, NOT POINTERS: a handle is an arena index plus the owning graph's
   token. It grants no access by itself; the graph re-resolves it on use.
2. FROZEN VALUES: handles, ids, edges and spans are immutable and hashable.
3. KW_ONLY: payload structs enforce keyword arguments.
4. ZERO DEFAULTS: every span field is optional and defaults to 0.
"""
import uuid
from typing import Annotated, Any, Optional

import msgspec

from core.ontology import NodeKind


NonNegative = Annotated[int, msgspec.Meta(ge=0)]


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def generate_token() -> str:
    """Generate a new graph token (the owner fingerprint carried by handles)."""
    return uuid.uuid4().hex


# =============================================================================
# HANDLES (Address-Independent Identifiers)
# =============================================================================

class NodeHandle(msgspec.Struct, frozen=True, order=True):
    """
    Stable identifier of one node inside one graph.

    Ordered by creation sequence. `graph` is the token of the StackGraph that
    allocated the handle; dereferencing against any other graph is rejected.
    """
    index: int
    graph: str


class FileHandle(msgspec.Struct, frozen=True, order=True):
    """Stable identifier of one file inside one graph."""
    index: int
    graph: str


class SymbolHandle(msgspec.Struct, frozen=True, order=True):
    """Interned symbol."""
    index: int
    graph: str


class StringHandle(msgspec.Struct, frozen=True, order=True):
    """Interned string (syntax types, debug keys and values)."""
    index: int
    graph: str


# =============================================================================
# NODE IDENTITY
# =============================================================================

class NodeID(msgspec.Struct, frozen=True):
    """
    Identity of a node: the file it belongs to and its local id in that file.

    Singleton nodes have no file.
    """
    file: Optional[FileHandle]
    local_id: int

    def is_singleton(self) -> bool:
        return self.file is None


# =============================================================================
# NODE DATA (The Arena Payload)
# =============================================================================

class NodeData(msgspec.Struct, kw_only=True, frozen=True):
    """
    The payload stored in every node slot of the rustworkx arena.

    Architecture Notes:
    - `id`: the NodeID (file + local id), NOT the arena index
    - `symbol`: set for push/pop kinds only
    - `scope`: set for push scoped kinds only (the NodeID of an exported scope)
    - `is_reference`: push kinds; `is_definition`: pop kinds;
      `is_exported`: scope kind
    """
    kind: NodeKind
    id: NodeID
    symbol: Optional[SymbolHandle] = None
    scope: Optional[NodeID] = None
    is_reference: bool = False
    is_definition: bool = False
    is_exported: bool = False

    @property
    def file(self) -> Optional[FileHandle]:
        return self.id.file

    @property
    def flag(self) -> bool:
        """The flag that refines this node's kind."""
        return self.is_reference or self.is_definition or self.is_exported

    def is_exported_scope(self) -> bool:
        return self.kind == NodeKind.SCOPE and self.is_exported


# =============================================================================
# EDGE (The Graph Relationship Payload)
# =============================================================================

class Edge(msgspec.Struct, frozen=True, order=True):
    """
    A directed edge between two nodes.

    Edges are small values, copied rather than referenced. Two edges between
    the same nodes with different precedence are distinct edges.
    """
    source: NodeHandle
    sink: NodeHandle
    precedence: int = 0


# =============================================================================
# SOURCE LOCATIONS
# =============================================================================

class Offset(msgspec.Struct, kw_only=True, frozen=True):
    """A column, expressed in three encodings."""
    utf8_offset: NonNegative = 0
    utf16_offset: NonNegative = 0
    grapheme_offset: NonNegative = 0


class LineRange(msgspec.Struct, kw_only=True, frozen=True):
    """UTF-8 byte offsets within the source file: [start, end)."""
    start: NonNegative = 0
    end: NonNegative = 0


class Position(msgspec.Struct, kw_only=True, frozen=True):
    """
    One endpoint of a span.

    `containing_line` is the line holding the position; `trimmed_line` is the
    same line with leading and trailing whitespace removed.
    """
    line: NonNegative = 0
    column: Offset = msgspec.field(default_factory=Offset)
    containing_line: LineRange = msgspec.field(default_factory=LineRange)
    trimmed_line: LineRange = msgspec.field(default_factory=LineRange)


class Span(msgspec.Struct, kw_only=True, frozen=True):
    """A source range. Every field is optional and defaults to 0."""
    start: Position = msgspec.field(default_factory=Position)
    end: Position = msgspec.field(default_factory=Position)

    def is_default(self) -> bool:
        return self == Span()

    def short(self) -> str:
        """Render as `line:col-line:col` using UTF-8 columns."""
        return (
            f"{self.start.line}:{self.start.column.utf8_offset}-"
            f"{self.end.line}:{self.end.column.utf8_offset}"
        )

    @classmethod
    def from_value(cls, value: Any) -> "Span":
        """
        Build a Span from a Span or a nested mapping.

        Raises:
            msgspec.ValidationError: if the mapping is malformed
        """
        if isinstance(value, Span):
            return value
        return msgspec.convert(value, type=cls)


# =============================================================================
# PER-NODE ATTACHMENTS
# =============================================================================

class SourceInfo(msgspec.Struct, kw_only=True):
    """
    Optional source information of a node.

    Each field is independently optional; an unset field is None, never a
    zero-valued structure.
    """
    span: Optional[Span] = None
    definiens_span: Optional[Span] = None
    syntax_type: Optional[StringHandle] = None


class DebugPair(msgspec.Struct, frozen=True):
    """A debug entry as stored in the graph (interned key and value)."""
    key: StringHandle
    value: StringHandle


class DebugEntry(msgspec.Struct, frozen=True):
    """A debug entry as returned across the boundary."""
    key: str
    value: str
