"""Graph package initialization.

Exposes core graph components and helpers for building workflows.
"""

from routegraph.core.errors import (
    CapabilityError,
    DuplicateNodeError,
    GraphConfigurationError,
    GraphError,
    GraphRunError,
    GraphValidationError,
    NoOutgoingEdgeError,
    RecursionLimitExceeded,
    RoutingKeyError,
    RunCancelledError,
    StorageError,
    UnknownNodeError,
)
from routegraph.core.graph.base import CompiledGraph, ConditionalEdge, Graph
from routegraph.core.graph.checkpoint import Checkpointer, MemorySaver
from routegraph.core.graph.config import GraphConfig, ToolLoopConfig
from routegraph.core.graph.executor import CancellationToken, Executor
from routegraph.core.graph.messages import (
    Message,
    MessageRole,
    ToolCall,
    assistant,
    human,
    pending_tool_calls,
    render_template,
    system,
    tool_message,
    trim_messages,
)
from routegraph.core.graph.nodes import END, START, AgentNode, Node, NodeKind, ToolNode
from routegraph.core.graph.state import NodeStatus, RunContext, RunState, merge
from routegraph.core.graph.tool_loop import (
    ToolRoute,
    build_tool_loop,
    route_from_agent,
    route_from_tools,
    turns_this_run,
)
from routegraph.core.graph.viz import GraphVisualizer

__all__ = [
    # Core classes
    "Graph",
    "CompiledGraph",
    "ConditionalEdge",
    "Executor",
    "CancellationToken",
    "Node",
    "NodeKind",
    "AgentNode",
    "ToolNode",
    "RunState",
    "RunContext",
    "NodeStatus",
    "GraphVisualizer",

    # Reserved names
    "START",
    "END",

    # Messages and state helpers
    "Message",
    "MessageRole",
    "ToolCall",
    "human",
    "system",
    "assistant",
    "tool_message",
    "pending_tool_calls",
    "trim_messages",
    "render_template",
    "merge",

    # Configuration and persistence
    "GraphConfig",
    "ToolLoopConfig",
    "Checkpointer",
    "MemorySaver",

    # Tool loop
    "build_tool_loop",
    "route_from_agent",
    "ToolRoute",
    "turns_this_run",
    "route_from_tools",

    # Errors
    "GraphError",
    "GraphConfigurationError",
    "DuplicateNodeError",
    "UnknownNodeError",
    "GraphValidationError",
    "RoutingKeyError",
    "NoOutgoingEdgeError",
    "GraphRunError",
    "RecursionLimitExceeded",
    "RunCancelledError",
    "CapabilityError",
    "StorageError",
]
