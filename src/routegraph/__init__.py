"""Routegraph - graph/state-machine engine for LLM workflows."""

from routegraph.core.logging import configure_logging, LogLevel, LogComponent
from routegraph.core.graph import (
    END,
    START,
    AgentNode,
    CancellationToken,
    CompiledGraph,
    Graph,
    GraphConfig,
    MemorySaver,
    Message,
    MessageRole,
    Node,
    NodeKind,
    RunState,
    ToolCall,
    ToolLoopConfig,
    ToolNode,
    assistant,
    build_tool_loop,
    human,
    system,
    tool_message,
)
from routegraph.core.tools.registry import Plugin, PluginRegistry
from routegraph.core.agent import PluginAgent

__all__ = [
    'Graph',
    'CompiledGraph',
    'Node',
    'NodeKind',
    'AgentNode',
    'ToolNode',
    'RunState',
    'Message',
    'MessageRole',
    'ToolCall',
    'human',
    'system',
    'assistant',
    'tool_message',
    'START',
    'END',
    'GraphConfig',
    'ToolLoopConfig',
    'CancellationToken',
    'MemorySaver',
    'build_tool_loop',
    'Plugin',
    'PluginRegistry',
    'PluginAgent',
    'configure_logging',
    'LogLevel',
    'LogComponent'
]
