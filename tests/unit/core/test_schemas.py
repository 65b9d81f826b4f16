"""
Unit tests for core/schemas.py - handles and span values
"""
import msgspec
import pytest

from core.schemas import NodeHandle, Edge, Span, Position, Offset, LineRange


def test_span_from_partial_mapping_defaults_to_zero():
    """
    Validate that a span mapping may omit any entry.

    Verifies:
    - Given entries are decoded into nested structs
    - Missing entries default to 0
    """
    span = Span.from_value({
        "start": {"line": 1, "column": {"utf8_offset": 4}},
        "end": {"line": 2, "trimmed_line": {"start": 1, "end": 14}},
    })

    assert span.start.line == 1
    assert span.start.column == Offset(utf8_offset=4)
    assert span.start.containing_line == LineRange()
    assert span.end.trimmed_line == LineRange(start=1, end=14)
    assert span.end.column.grapheme_offset == 0


def test_span_from_empty_mapping_is_default():
    assert Span.from_value({}).is_default()
    assert not Span(start=Position(line=1)).is_default()


def test_span_from_malformed_mapping_raises():
    with pytest.raises(msgspec.ValidationError):
        Span.from_value({"start": {"line": "one"}})
    with pytest.raises(msgspec.ValidationError):
        Span.from_value({"start": {"line": -1}})


def test_span_short_uses_utf8_columns():
    span = Span(
        start=Position(line=1, column=Offset(utf8_offset=2, utf16_offset=9)),
        end=Position(line=3, column=Offset(utf8_offset=4)),
    )
    assert span.short() == "1:2-3:4"


def test_handles_order_by_creation_index():
    assert NodeHandle(3, "g") < NodeHandle(4, "g")
    assert NodeHandle(3, "g") == NodeHandle(3, "g")
    assert NodeHandle(3, "g") != NodeHandle(3, "h")


def test_edges_are_values():
    a, b = NodeHandle(1, "g"), NodeHandle(3, "g")
    assert Edge(a, b, 0) == Edge(a, b)
    assert Edge(a, b, 0) != Edge(a, b, 1)
    assert len({Edge(a, b, 0), Edge(a, b, 0), Edge(a, b, 1)}) == 2
