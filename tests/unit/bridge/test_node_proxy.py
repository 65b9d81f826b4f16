"""
Unit tests for bridge/node_proxy.py - NodeProxy

Tests:
- Edge insertion in both directions, precedence handling
- Span, definiens span, syntax type and debug info attachments
- Rendering with source info suffixes
- Operand validation
"""
import pytest

from core.schemas import DebugEntry, Position, Offset, Span
from core.stack_graph import StackGraph
from bridge.graph_proxy import GraphProxy
from bridge.link import OperandError


SPAN = {
    "start": {"line": 1, "column": {"utf8_offset": 4}},
    "end": {"line": 1, "column": {"utf8_offset": 7}},
}


# =============================================================================
# EDGES
# =============================================================================

def test_add_edge_from_and_to_are_symmetric(graph_proxy, test_file):
    """
    Validate that a.add_edge_to(b) and b.add_edge_from(a) make the same edge.

    Verifies:
    - Both return equal edge proxies
    - Only one edge is stored
    """
    a = test_file.internal_scope_node()
    b = test_file.internal_scope_node()

    first = a.add_edge_to(b)
    second = b.add_edge_from(a)

    assert first == second
    assert graph_proxy.edge_count == 1
    assert a.outgoing_edges() == [first]
    assert b.outgoing_edges() == []


def test_precedence_defaults_to_zero(test_file):
    a = test_file.internal_scope_node()
    b = test_file.internal_scope_node()

    assert a.add_edge_to(b).precedence == 0
    assert a.add_edge_to(b, 5).precedence == 5
    assert [e.precedence for e in a.outgoing_edges()] == [0, 5]


def test_precedence_must_be_integer(test_file):
    a = test_file.internal_scope_node()
    b = test_file.internal_scope_node()

    with pytest.raises(OperandError):
        a.add_edge_to(b, "high")
    with pytest.raises(OperandError):
        a.add_edge_to(b, 1.5)
    with pytest.raises(OperandError):
        a.add_edge_to(b, True)
    assert a.outgoing_edges() == []


def test_duplicate_edge_is_journaled_once(test_file, journal):
    a = test_file.internal_scope_node()
    b = test_file.internal_scope_node()

    a.add_edge_to(b)
    a.add_edge_to(b)

    events = journal.get_events_by_type("EDGE_CREATED")
    assert len(events) == 1
    assert (events[0].source, events[0].sink, events[0].precedence) == (
        a.handle.index, b.handle.index, 0,
    )


def test_edge_operand_must_be_node(test_file):
    a = test_file.internal_scope_node()
    with pytest.raises(OperandError):
        a.add_edge_to("b")
    with pytest.raises(OperandError):
        a.add_edge_from(None)


def test_edge_between_graphs_is_rejected(test_file):
    other = GraphProxy(StackGraph())
    foreign = other.file("test.py").internal_scope_node()
    local = test_file.internal_scope_node()

    with pytest.raises(OperandError, match="different graph"):
        local.add_edge_to(foreign)
    with pytest.raises(OperandError, match="different graph"):
        foreign.add_edge_from(local)


# =============================================================================
# SOURCE INFO
# =============================================================================

def test_attachments_are_none_until_set(test_file):
    node = test_file.definition_node("foo")

    assert node.span() is None
    assert node.definiens_span() is None
    assert node.syntax_type() is None
    assert node.debug_info() is None


def test_span_round_trip(test_file):
    node = test_file.definition_node("foo")
    node.set_span(SPAN)

    span = node.span()
    assert span.start == Position(line=1, column=Offset(utf8_offset=4))
    assert span.end.column.utf8_offset == 7
    assert node.definiens_span() is None


def test_set_span_accepts_span_value(test_file):
    node = test_file.definition_node("foo")
    value = Span(start=Position(line=2), end=Position(line=9))

    node.set_definiens_span(value)

    assert node.definiens_span() == value
    assert node.span() is None


def test_empty_span_mapping_is_a_default_span(test_file):
    """
    Validate that an all-defaults span is stored, and is distinct from no span.
    """
    node = test_file.definition_node("foo")
    node.set_span({})

    assert node.span() == Span()
    assert str(node) == "[test.py(0) definition foo]"


def test_malformed_span_is_rejected(test_file):
    node = test_file.definition_node("foo")

    with pytest.raises(OperandError):
        node.set_span({"start": {"line": "one"}})
    with pytest.raises(OperandError):
        node.set_span("1:2-3:4")
    assert node.span() is None


def test_syntax_type_round_trip(test_file, journal):
    node = test_file.definition_node("foo")
    node.set_syntax_type("function")

    assert node.syntax_type() == "function"
    assert journal.get_events_by_type("SYNTAX_TYPE_SET")[0].value == "function"


# =============================================================================
# DEBUG INFO
# =============================================================================

def test_debug_info_keeps_every_entry(test_file):
    """
    Validate that debug entries are kept in insertion order, repeats included.
    """
    node = test_file.definition_node("foo")
    node.set_debug_info("tsg_location", "line 12")
    node.set_debug_info("kind", "function")
    node.set_debug_info("tsg_location", "line 14")

    assert node.debug_info() == [
        DebugEntry("tsg_location", "line 12"),
        DebugEntry("kind", "function"),
        DebugEntry("tsg_location", "line 14"),
    ]


def test_debug_info_is_per_node(test_file):
    a = test_file.definition_node("a")
    b = test_file.definition_node("b")
    a.set_debug_info("k", "v")

    assert b.debug_info() is None


# =============================================================================
# RENDERING
# =============================================================================

def test_render_with_source_info(test_file):
    """
    Validate the display suffixes added by source info.

    Verifies:
    - Syntax type is shown in parentheses
    - Span follows " at ", definiens span follows " def "
    - Columns are UTF-8 offsets
    """
    node = test_file.definition_node("foo")
    node.set_syntax_type("function")
    node.set_span(SPAN)
    node.set_definiens_span({"start": {"line": 1}, "end": {"line": 3, "column": {"utf8_offset": 1}}})

    assert str(node) == "[test.py(0) definition foo (function) at 1:4-1:7 def 1:0-3:1]"


def test_render_with_span_only(test_file):
    node = test_file.reference_node("foo")
    node.set_span(SPAN)
    assert str(node) == "[test.py(0) reference foo at 1:4-1:7]"


def test_render_is_stable(test_file):
    node = test_file.definition_node("foo")
    node.set_syntax_type("function")
    assert str(node) == str(node)
    assert repr(node) == f"NodeProxy({node.handle.index})"


def test_proxy_fields_cannot_be_reassigned(test_file):
    node = test_file.definition_node("foo")
    with pytest.raises(AttributeError):
        node._value = None
