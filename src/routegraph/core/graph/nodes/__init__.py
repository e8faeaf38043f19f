"""Node package initialization.

Exposes node types and reserved names for building workflows.
"""

from routegraph.core.graph.nodes.base import (
    Node,
    NodeKind,
    START,
    END,
)
from routegraph.core.graph.nodes.agent import AgentNode
from routegraph.core.graph.nodes.tool import ToolNode

__all__ = [
    # Base node types
    "Node",
    "NodeKind",
    "AgentNode",
    "ToolNode",

    # Reserved names
    "START",
    "END",
]
