"""
Script host: runs graph-building scripts against a host-owned StackGraph.

A script is a chunk of Python source that defines one or more entry functions
taking a graph proxy. The host keeps the graph; the script only ever sees
proxies, and only for the duration of the call.

Chunks are trusted, host-supplied code: they are executed with `exec` in the
host's interpreter, with no sandboxing. The proxies keep a script from holding
references into the graph, not from doing anything else Python allows.

Usage:
    host = ScriptHost()
    host.load('''
    def process_graph(graph):
        file = graph.file("test.py")
        definition = file.definition_node("foo")
        definition.add_edge_from(graph.root_node())
    ''', name="stack graph chunk")

    graph = StackGraph()
    host.call("process_graph", graph)
    assert graph.node_count == 3
"""
import logging
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from core.schemas import FileHandle
from core.stack_graph import StackGraph
from bridge.graph_proxy import GraphProxy
from bridge.link import ScriptError
from infrastructure.logger import MutationLogger

logger = logging.getLogger(__name__)


class ScriptHost:
    """Loads script chunks into one namespace and calls their entry points."""

    def __init__(self, journal: Optional[MutationLogger] = None):
        self._journal = journal
        self._namespace: Dict[str, Any] = {"__name__": "__stackbridge_script__"}
        self._chunks: List[str] = []

    @property
    def chunks(self) -> List[str]:
        """Names of the chunks loaded so far."""
        return list(self._chunks)

    def load(self, source: str, name: str = "<chunk>") -> "ScriptHost":
        """Compile and execute a chunk. Definitions accumulate across chunks."""
        code = compile(textwrap.dedent(source), name, "exec")
        exec(code, self._namespace)
        self._chunks.append(name)
        logger.debug("loaded script chunk %s", name)
        return self

    def load_file(self, path: Path) -> "ScriptHost":
        path = Path(path)
        return self.load(path.read_text(encoding="utf-8"), name=str(path))

    def get(self, entry: str) -> Callable[..., Any]:
        function = self._namespace.get(entry)
        if function is None:
            raise ScriptError(f"Script does not define {entry!r}")
        if not callable(function):
            raise ScriptError(f"Script entry {entry!r} is not callable")
        return function

    def call(self, entry: str, graph: StackGraph, *args: Any) -> Any:
        """Call `entry(graph_proxy, *args)` with the host's graph in scope."""
        function = self.get(entry)
        with GraphProxy.scope(graph, journal=self._journal) as proxy:
            return function(proxy, *args)

    def call_with_file(
        self, entry: str, graph: StackGraph, file: FileHandle, *args: Any
    ) -> Any:
        """Call `entry(file_proxy, *args)` with one file of the host's graph in scope."""
        function = self.get(entry)
        with GraphProxy.scope_file(graph, file, journal=self._journal) as file_proxy:
            return function(file_proxy, *args)
