"""
Edge proxy: an Edge value (copied, not referenced) plus the owner link.

Edge proxies are only produced by edge insertion and edge enumeration.
"""
from typing import TYPE_CHECKING

from core.schemas import Edge
from bridge.link import LinkedProxy

if TYPE_CHECKING:
    from bridge.graph_proxy import GraphProxy
    from bridge.node_proxy import NodeProxy


class EdgeProxy(LinkedProxy):
    __slots__ = ()

    def __init__(self, owner: "GraphProxy", edge: Edge):
        super().__init__(owner, edge)

    @property
    def edge(self) -> Edge:
        return self._value

    @property
    def precedence(self) -> int:
        return self._value.precedence

    def source(self) -> "NodeProxy":
        from bridge.node_proxy import NodeProxy
        return NodeProxy(self._owner, self._value.source)

    def sink(self) -> "NodeProxy":
        from bridge.node_proxy import NodeProxy
        return NodeProxy(self._owner, self._value.sink)

    def render(self) -> str:
        """`source -precedence-> sink`"""
        with self._owner.borrow("tostring") as graph:
            return graph.display_edge(self._value)

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        e = self._value
        return f"EdgeProxy({e.source.index} -{e.precedence}-> {e.sink.index})"
