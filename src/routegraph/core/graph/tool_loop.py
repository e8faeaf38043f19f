"""The agent/tool loop.

Builds the classic ReAct-style graph from a model and a plugin registry:

    __start__ -> agent
    agent --[tool name]--> <tool node> --> (next pending tool) or agent
    agent --[turn_limit]--> turn_limit --> __end__
    agent --[__end__]--> __end__

The agent routes to a tool node while the latest assistant turn carries
an unanswered call to an enabled tool. A soft turn guard ends long
conversations with an explanation; the compiled graph's recursion limit
is the hard stop behind it.

Example:
    ```python
    registry = PluginRegistry()
    registry.register_tool(CalculatorTool, name="calculator",
                           description="Perform mathematical calculations")

    app = build_tool_loop(model, registry)
    state = await app.invoke({"messages": [human("What is 25 * 4?")]})
    ```
"""

from typing import Any, Callable, Hashable, Iterable, NamedTuple, Optional, Sequence, TYPE_CHECKING

from routegraph.core.graph.base import CompiledGraph, Graph
from routegraph.core.graph.config import ToolLoopConfig
from routegraph.core.graph.messages import (
    Message,
    MessageRole,
    assistant,
    count_role,
    pending_tool_calls,
)
from routegraph.core.graph.nodes.agent import AgentNode
from routegraph.core.graph.nodes.base import END, START, Node
from routegraph.core.graph.state import RunState
from routegraph.core.logging import LogComponent, get_logger

if TYPE_CHECKING:
    from routegraph.core.tools.registry import PluginRegistry

logger = get_logger(LogComponent.GRAPH)

AGENT_NODE = "agent"
TURN_LIMIT_NODE = "turn_limit"

# Node names a plugin may not take
RESERVED_NAMES = frozenset({AGENT_NODE, TURN_LIMIT_NODE, START, END})


class ToolRoute(NamedTuple):
    """Route key for a tool call.

    Tool keys never compare equal to the string control keys, so a model
    asking for a tool literally named `turn_limit` or `__end__` cannot
    steer the loop.
    """
    name: str

    def __str__(self) -> str:
        return self.name


def turns_this_run(messages: Sequence[Message]) -> int:
    """Assistant messages since the latest human message.

    Checkpointed threads carry earlier runs' replies; only the current
    exchange counts against the turn guard.
    """
    start = 0
    for index in range(len(messages) - 1, -1, -1):
        if messages[index].role == MessageRole.HUMAN:
            start = index + 1
            break
    return count_role(messages[start:], MessageRole.ASSISTANT)


def route_from_agent(tool_names: Iterable[str], config: ToolLoopConfig) -> Callable[[RunState], Hashable]:
    """Router for the agent node.

    `tool_names` is the set of tool nodes compiled into the graph.

    1. More assistant turns this run than `max_assistant_turns` -> turn_limit
    2. No tool calls on the last message -> END
    3. First pending call names an enabled tool -> `ToolRoute(name)`
    4. Otherwise END, or `ToolRoute(name)` with no target when
       `end_on_unknown_tool` is off (the executor then raises RoutingKeyError)
    """
    tools = frozenset(tool_names)

    def route(state: RunState) -> Hashable:
        turns = turns_this_run(state.messages)
        if turns > config.max_assistant_turns:
            logger.warning(
                f"Potential infinite loop detected ({turns} assistant turns) - forcing end of conversation"
            )
            return TURN_LIMIT_NODE

        last = state.last_message
        if last is None or last.role != MessageRole.ASSISTANT or not last.tool_calls:
            return END

        pending = pending_tool_calls(state.messages)
        if not pending:
            return END

        tool_name = pending[0].name
        if tool_name in tools:
            logger.info(f"Routing to tool: {tool_name}")
            return ToolRoute(tool_name)

        if config.end_on_unknown_tool:
            logger.warning(f"Model requested unknown or disabled tool {tool_name!r}, ending conversation")
            return END
        return ToolRoute(tool_name)

    return route


def route_from_tools(tool_names: Iterable[str]) -> Callable[[RunState], str]:
    """Router for tool nodes: the next pending call's tool, else back to the agent.

    Pending calls to tools outside `tool_names` are left for the model to
    see on its next turn.
    """
    tools = frozenset(tool_names)

    def route(state: RunState) -> str:
        for call in pending_tool_calls(state.messages):
            if call.name in tools:
                return call.name
        return AGENT_NODE

    return route


def turn_limit_node(message: str) -> Node:
    """Node appending the turn-guard explanation."""

    def explain(state: RunState) -> dict:
        return {"messages": [assistant(message)]}

    return Node(name=TURN_LIMIT_NODE, fn=explain)


def build_tool_loop(
    model: Any,
    registry: "PluginRegistry",
    config: Optional[ToolLoopConfig] = None,
    checkpointer: Optional[Any] = None,
    system_prompt: Optional[str] = None,
) -> CompiledGraph:
    """Compile the agent/tool loop from the registry's enabled plugins.

    Args:
        model: Model capability receiving the prompt messages
        registry: Plugin registry; enabled plugins become tool nodes
        config: Loop configuration (turn guard, limits, retries)
        checkpointer: Optional per-thread state persistence
        system_prompt: Prompt template overriding `config.system_prompt`;
            `{tool_descriptions}` is filled from the registry at build time

    Returns:
        CompiledGraph with `config.recursion_limit`
    """
    config = config or ToolLoopConfig()
    template = system_prompt if system_prompt is not None else config.system_prompt

    graph = Graph(name="tool_loop")
    graph.add_node(
        AgentNode(
            name=AGENT_NODE,
            model=model,
            system_prompt=registry.render_prompt(template),
        )
    )
    graph.add_node(turn_limit_node(config.turn_limit_message))

    tool_nodes = registry.enabled_tool_nodes()
    for name, node in tool_nodes.items():
        node.retry_attempts = config.tool_retry_attempts
        node.backoff_multiplier = config.retry_backoff_multiplier
        graph.add_node(node)

    graph.add_edge(START, AGENT_NODE)

    target_map = {ToolRoute(name): name for name in tool_nodes}
    target_map[TURN_LIMIT_NODE] = TURN_LIMIT_NODE
    target_map[END] = END
    graph.add_conditional_edges(AGENT_NODE, route_from_agent(tool_nodes, config), target_map)

    tool_targets = {name: name for name in tool_nodes}
    tool_targets[AGENT_NODE] = AGENT_NODE
    for name in tool_nodes:
        graph.add_conditional_edges(name, route_from_tools(tool_nodes), tool_targets)

    graph.add_edge(TURN_LIMIT_NODE, END)

    logger.info(f"Building tool loop with tools: {list(tool_nodes) or 'none'}")
    return graph.compile(recursion_limit=config.recursion_limit, checkpointer=checkpointer)
