"""
Unit tests for infrastructure/logger.py - MutationLogger

Tests:
- Recording and querying events
- Disabled journal
- Ring buffer capacity
- Per-graph index
- File log round trip
- Subscribers
- Global journal management
"""
from infrastructure.logger import (
    EventBuffer,
    FileLogger,
    LoggerConfig,
    MutationLogger,
    MutationType,
    configure_logger,
    get_logger,
    reset_logger,
)


# =============================================================================
# RECORDING & QUERYING
# =============================================================================

def test_events_are_sequenced(journal):
    journal.log_file_created("g", 1, "test.py")
    journal.log_node_created("g", 3, "pop_symbol", file="test.py")
    journal.log_edge_created("g", 1, 3, 0)

    events = journal.get_recent_events()
    assert [e.sequence for e in events] == [1, 2, 3]
    assert [e.mutation_type for e in events] == [
        "FILE_CREATED", "NODE_CREATED", "EDGE_CREATED",
    ]
    assert len(journal) == 3


def test_events_for_node_include_edges(journal):
    """
    Validate that a node's events include edges into and out of it.
    """
    journal.log_node_created("g", 3, "scope")
    journal.log_node_created("g", 4, "scope")
    journal.log_edge_created("g", 3, 4, 0)
    journal.log_node_updated("g", 4, MutationType.SYNTAX_TYPE_SET, value="function")

    assert [e.mutation_type for e in journal.get_events_for_node(4)] == [
        "NODE_CREATED", "EDGE_CREATED", "SYNTAX_TYPE_SET",
    ]
    timeline = journal.get_node_timeline(4)
    assert timeline[-1] == {
        "sequence": 4, "type": "SYNTAX_TYPE_SET", "key": None, "value": "function",
    }


def test_events_by_type_accepts_enum(journal):
    journal.log_node_updated("g", 3, MutationType.DEBUG_INFO_ADDED, key="k", value="v")

    assert len(journal.get_events_by_type(MutationType.DEBUG_INFO_ADDED)) == 1
    assert len(journal.get_events_by_type("DEBUG_INFO_ADDED")) == 1
    assert journal.get_events_by_type(MutationType.SPAN_SET) == []


def test_events_are_indexed_by_graph(journal):
    """
    Validate that one journal keeps the histories of several graphs apart.

    Verifies:
    - get_events_for_graph returns only that graph's events, in order
    - Node queries can be narrowed to one graph
    """
    journal.log_node_created("a", 3, "scope")
    journal.log_node_created("b", 3, "pop_symbol")
    journal.log_edge_created("a", 1, 3, 0)

    assert [e.sequence for e in journal.get_events_for_graph("a")] == [1, 3]
    assert [e.node_kind for e in journal.get_events_for_graph("b")] == ["pop_symbol"]
    assert journal.get_events_for_graph("c") == []
    assert len(journal.get_events_for_node(3)) == 3
    assert len(journal.get_events_for_node(3, graph="b")) == 1
    assert journal.graphs() == ["a", "b"]


def test_bridge_events_carry_graph_token(graph_proxy, test_file, journal):
    test_file.definition_node("foo")
    assert len(journal.get_events_for_graph(graph_proxy.token)) == 2


def test_disabled_journal_records_nothing():
    journal = MutationLogger(LoggerConfig(enabled=False))

    assert journal.log_node_created("g", 3, "scope") is None
    assert len(journal) == 0


def test_clear(journal):
    journal.log_node_created("g", 3, "scope")
    journal.clear()
    assert journal.get_recent_events() == []


def test_buffer_keeps_most_recent():
    journal = MutationLogger(LoggerConfig(buffer_size=2))
    for node in (3, 4, 5):
        journal.log_node_created("g", node, "scope")

    assert [e.node for e in journal.get_recent_events()] == [4, 5]
    assert [e.sequence for e in journal.get_recent_events()] == [2, 3]


def test_eviction_updates_graph_index():
    journal = MutationLogger(LoggerConfig(buffer_size=2))
    journal.log_node_created("a", 3, "scope")
    journal.log_node_created("b", 3, "scope")
    journal.log_node_created("b", 4, "scope")

    assert journal.get_events_for_graph("a") == []
    assert journal.graphs() == ["b"]


def test_event_buffer_get_last():
    buffer = EventBuffer(max_size=10)
    assert buffer.get_last(3) == []
    assert buffer.get_last(0) == []
    assert buffer.next_sequence() == 1
    assert buffer.next_sequence() == 2


# =============================================================================
# FILE LOG
# =============================================================================

def test_file_log_round_trip(tmp_path):
    journal = MutationLogger(LoggerConfig(enable_file_log=True, log_path=tmp_path))
    journal.log_edge_created("g", 1, 3, 2)
    journal.close()

    events = FileLogger(tmp_path).read_log()

    assert len(events) == 1
    assert (events[0].source, events[0].sink, events[0].precedence) == (1, 3, 2)


def test_file_log_skips_malformed_lines(tmp_path):
    (tmp_path / "mutations.jsonl").write_text(
        '{"timestamp": "t", "sequence": 1, "mutation_type": "NODE_CREATED", "graph": "g", "node": 3}\n'
        "not json\n"
        "\n",
        encoding="utf-8",
    )

    events = FileLogger(tmp_path).read_log()

    assert [e.node for e in events] == [3]


def test_file_log_missing_file(tmp_path):
    assert FileLogger(tmp_path / "empty").read_log() == []


def test_file_log_appends_across_journals(tmp_path):
    """
    Validate that the journal file is appended to, and can be filtered by graph.
    """
    for graph in ("a", "b"):
        with MutationLogger(LoggerConfig(enable_file_log=True, log_path=tmp_path)) as journal:
            journal.log_node_created(graph, 3, "scope")

    file_log = FileLogger(tmp_path)
    assert [e.graph for e in file_log.read_log()] == ["a", "b"]
    assert [e.graph for e in file_log.read_log(graph="b")] == ["b"]
    assert file_log.path == tmp_path / "mutations.jsonl"


# =============================================================================
# SUBSCRIBERS
# =============================================================================

def test_subscribers_receive_events(journal):
    received = []
    journal.subscribe(received.append)
    journal.log_node_created("g", 3, "scope")
    journal.unsubscribe(received.append)
    journal.log_node_created("g", 4, "scope")

    assert [e.node for e in received] == [3]


def test_failing_subscriber_does_not_stop_recording(journal, caplog):
    def broken(event):
        raise RuntimeError("subscriber bug")

    received = []
    journal.subscribe(broken)
    journal.subscribe(received.append)

    journal.log_node_created("g", 3, "scope")

    assert len(received) == 1
    assert len(journal) == 1
    assert "subscriber" in caplog.text


def test_bridge_mutations_reach_subscriber(graph_proxy, test_file, journal):
    """
    Validate that a subscriber may call back into the bridge.

    Verifies:
    - Events are emitted after the recording operation's borrow is released
    """
    seen = []

    def on_event(event):
        seen.append(graph_proxy.node_count)

    journal.subscribe(on_event)
    test_file.definition_node("foo")

    assert seen == [3]


# =============================================================================
# GLOBAL JOURNAL
# =============================================================================

def test_global_journal_lifecycle(tmp_path):
    first = get_logger()
    assert get_logger() is first

    configured = configure_logger(LoggerConfig(buffer_size=5))
    assert get_logger() is configured
    assert configured is not first

    reset_logger()
    assert get_logger() is not configured


def test_journal_as_context_manager(tmp_path):
    with MutationLogger(LoggerConfig(enable_file_log=True, log_path=tmp_path)) as journal:
        journal.log_node_created("g", 3, "scope")

    assert (tmp_path / "mutations.jsonl").exists()
