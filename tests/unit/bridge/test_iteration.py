"""
Unit tests for bridge/iteration.py - NodeIteration

Tests the restartable, externally stepped node iteration:
- Step protocol
- Restarting after mutation
- Mutation between steps
- File filtering
"""
import pytest

from bridge.link import OperandError


def test_step_protocol_visits_every_node(graph_proxy, test_file):
    """
    Validate the pull protocol: call step(state, prev) until it returns None.

    Verifies:
    - The initial value is None
    - Nodes come back in handle order
    """
    test_file.definition_node("a")
    test_file.definition_node("b")

    step, state, prev = graph_proxy.nodes().protocol()
    assert prev is None

    seen = []
    while (prev := step(state, prev)) is not None:
        seen.append(prev.handle.index)

    assert seen == [1, 2, 3, 4]


def test_each_loop_restarts(graph_proxy, test_file):
    iteration = graph_proxy.nodes()
    assert len(list(iteration)) == 2

    test_file.definition_node("foo")

    assert len(list(iteration)) == 3


def test_nodes_added_between_steps_are_seen(graph_proxy, test_file):
    iteration = graph_proxy.nodes()
    first = iteration.step(None)
    second = iteration.step(first)

    added = test_file.definition_node("late")

    assert iteration.step(second) == added
    assert iteration.step(added) is None


def test_mutating_during_for_loop(graph_proxy, test_file):
    """
    Validate that a loop body may mutate the graph it is iterating.

    Verifies:
    - No borrow is held between steps
    - Nodes created during the loop are visited
    """
    test_file.internal_scope_node()

    visited = 0
    for node in graph_proxy.nodes():
        visited += 1
        if visited == 1:
            test_file.definition_node("added")
        node.set_debug_info("visited", "yes")

    assert visited == 4


def test_file_iteration_skips_other_files(graph_proxy, test_file):
    other = graph_proxy.file("other.py")
    other.internal_scope_node()
    mine = test_file.internal_scope_node()

    iteration = test_file.nodes()

    assert iteration.step(None) == mine
    assert iteration.step(mine) is None
    assert iteration.file == test_file.handle


def test_step_rejects_non_node(graph_proxy):
    with pytest.raises(OperandError):
        graph_proxy.nodes().step("root")
