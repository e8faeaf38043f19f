"""Graph visualization tools.

Renders compiled graphs as Mermaid flowcharts, the same format the
`draw_mermaid` export of other graph libraries produces, so the text can
be pasted into any Mermaid renderer.
"""

from typing import List, TYPE_CHECKING

from routegraph.core.graph.nodes.base import END, START, NodeKind
from routegraph.core.graph.state import NodeStatus, RunContext

if TYPE_CHECKING:
    from routegraph.core.graph.base import CompiledGraph


def _node_id(name: str) -> str:
    return name.replace(" ", "_")


def _edge_label(key) -> str:
    return str(key).replace('"', "'").replace("|", "/")


class GraphVisualizer:
    """Visualize graph structure and execution."""

    def __init__(self, graph: "CompiledGraph"):
        self.graph = graph

    def _node_line(self, name: str) -> str:
        node = self.graph.nodes[name]
        if node.kind == NodeKind.TOOL:
            return f"    {_node_id(name)}[[{name}]]"
        if node.kind == NodeKind.AGENT:
            return f"    {_node_id(name)}({name})"
        return f"    {_node_id(name)}[{name}]"

    def render_graph(self) -> str:
        """Mermaid flowchart of the compiled topology.

        Fixed edges are solid arrows; conditional edges are dotted arrows
        labelled with their route keys.
        """
        lines: List[str] = [
            "flowchart TD",
            f"    {_node_id(START)}([{START}])",
        ]
        lines.extend(self._node_line(name) for name in self.graph.nodes)
        lines.append(f"    {_node_id(END)}([{END}])")

        lines.append(f"    {_node_id(START)} --> {_node_id(self.graph.entry_point)}")
        for source, target in self.graph.edges.items():
            lines.append(f"    {_node_id(source)} --> {_node_id(target)}")
        for source, edge in self.graph.conditional_edges.items():
            for key, target in edge.target_map.items():
                lines.append(f"    {_node_id(source)} -.->|{_edge_label(key)}| {_node_id(target)}")
            if edge.default is not None:
                lines.append(f"    {_node_id(source)} -.->|default| {_node_id(edge.default)}")
        return "\n".join(lines)

    def render_execution(self, context: RunContext) -> str:
        """Visited path of one run with the last status of each node."""
        symbols = {
            NodeStatus.PENDING: "·",
            NodeStatus.RUNNING: "…",
            NodeStatus.COMPLETED: "✓",
            NodeStatus.ERROR: "✗",
        }
        lines = [f"Run {context.thread_id or '-'}: {context.steps} step(s)"]
        for index, name in enumerate(context.path, start=1):
            status = context.status.get(name, NodeStatus.PENDING)
            line = f"  {index}. {symbols[status]} {name}"
            if name in context.errors:
                line += f" ({context.errors[name]})"
            lines.append(line)
        if context.current_node == END:
            lines.append(f"  -> {END}")
        return "\n".join(lines)
