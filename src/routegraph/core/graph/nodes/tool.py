"""
Tool Node Implementation

A ToolNode executes the tool calls requested by the most recent assistant
message. It:
    - Picks up every pending call addressed to one of its tools
    - Invokes the matching capability (sync or async), with retries
    - Appends one `tool` message per call, correlated by `tool_call_id`
    - Turns failures into error tool messages instead of raising

Calls addressed to tools this node does not own are left pending for
another node.

Example:
--------
>>> from routegraph.core.tools import CalculatorTool, ToolClassCapability
>>>
>>> node = ToolNode(
...     name="calculator",
...     tools={"calculator": ToolClassCapability(CalculatorTool, name="calculator")},
... )
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import Field

from routegraph.core.errors import CapabilityError
from routegraph.core.graph.messages import Message, ToolCall, pending_tool_calls, tool_message
from routegraph.core.graph.nodes.base import Node, NodeKind
from routegraph.core.graph.state import PartialRunState, RunState
from routegraph.core.logging import LogComponent, get_logger
from routegraph.core.tools.capability import invoke_capability

logger = get_logger(LogComponent.NODES)


def format_tool_result(result: Any) -> str:
    """Render a tool result as message content."""
    if isinstance(result, str):
        return result
    if result is None:
        return ""
    try:
        return json.dumps(result, default=str)
    except (TypeError, ValueError):
        return str(result)


class ToolNode(Node):
    """
    Node that answers pending tool calls.

    Attributes:
        tools: Tool name -> capability
        retry_attempts: Attempts per call before reporting failure
        backoff_multiplier: Exponential backoff multiplier between attempts
    """
    kind: NodeKind = Field(default=NodeKind.TOOL)
    tools: Dict[str, Any] = Field(
        default_factory=dict,
        description="Tool name to capability handle"
    )
    retry_attempts: int = Field(default=1, ge=1)
    backoff_multiplier: float = Field(default=1.0, ge=0)

    def validate(self) -> bool:
        return bool(self.tools)

    def owns(self, call: ToolCall) -> bool:
        return call.name in self.tools

    async def _run_call(self, call: ToolCall) -> Message:
        capability = self.tools[call.name]
        logger.tool(f"[Calling Tool '{call.name}' with args {call.arguments}]")
        try:
            result = await invoke_capability(
                capability,
                call.arguments,
                attempts=self.retry_attempts,
                backoff_multiplier=self.backoff_multiplier,
                name=call.name,
            )
        except CapabilityError as e:
            logger.error(f"Tool '{call.name}' failed in node {self.name}: {e.cause}")
            return tool_message(f"Error: {e.cause}", tool_call_id=call.id, name=call.name)
        content = format_tool_result(result)
        logger.tool(f"Tool result: {content}")
        return tool_message(content, tool_call_id=call.id, name=call.name)

    async def process(self, state: RunState) -> Optional[PartialRunState]:
        """Execute owned pending calls in request order."""
        calls = [call for call in pending_tool_calls(state.messages) if self.owns(call)]
        if not calls:
            logger.warning(f"Tool node {self.name} reached with no pending calls for {sorted(self.tools)}")
            return None

        results: List[Message] = []
        for call in calls:
            results.append(await self._run_call(call))

        update = {"messages": results}
        self._log_node_result(update)
        return update
