"""
Integration tests for main.py - the stackbridge CLI
"""
import polars as pl
import pytest

from main import main


SCRIPT = """
def process_graph(graph):
    file = graph.file("test.py")
    definition = file.definition_node("foo")
    definition.add_edge_from(graph.root_node())


def broken(graph):
    file = graph.file("test.py")
    file.push_scoped_symbol_node("x", file.definition_node("y"))
"""


@pytest.fixture
def script(tmp_path):
    path = tmp_path / "build.py"
    path.write_text(SCRIPT, encoding="utf-8")
    return path


def test_run_prints_graph(script, capsys):
    assert main(["run", str(script)]) == 0

    out = capsys.readouterr().out
    assert "Nodes (3):" in out
    assert "[test.py(0) definition foo]" in out
    assert "Edges (1):" in out
    assert "[root] -0-> [test.py(0) definition foo]" in out


def test_run_exports_tables(script, tmp_path, capsys):
    base = tmp_path / "out" / "graph"
    base.parent.mkdir()

    assert main(["run", str(script), "--export", str(base)]) == 0

    nodes = pl.read_parquet(base.with_suffix(".nodes.parquet"))
    assert nodes["display"].to_list()[-1] == "[test.py(0) definition foo]"
    assert "Exported" in capsys.readouterr().out


def test_run_exports_arrow(script, tmp_path):
    base = tmp_path / "graph"
    assert main(["run", str(script), "--export", str(base), "--format", "arrow"]) == 0
    assert pl.read_ipc(base.with_suffix(".edges.arrow")).height == 1


def test_journal_lists_mutations(script, capsys):
    assert main(["journal", str(script)]) == 0

    lines = capsys.readouterr().out.splitlines()
    assert len(lines) == 3
    assert "FILE_CREATED" in lines[0]
    assert "[test.py(0) definition foo]" in lines[1]
    assert "1 -0-> 3" in lines[2]


def test_bridge_error_exits_nonzero(script, capsys):
    assert main(["run", str(script), "--entry", "broken"]) == 1
    assert "Can only push exported scope nodes" in capsys.readouterr().err


def test_missing_entry_exits_nonzero(script, capsys):
    assert main(["run", str(script), "--entry", "nope"]) == 1
    assert "does not define" in capsys.readouterr().err


def test_custom_config(script, tmp_path, capsys):
    config = tmp_path / "stackbridge.toml"
    config.write_text("[journal]\nenabled = false\n", encoding="utf-8")

    assert main(["--config", str(config), "journal", str(script)]) == 0
    assert capsys.readouterr().out == ""


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out
