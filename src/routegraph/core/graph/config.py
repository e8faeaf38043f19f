"""Configuration models for graphs and the tool-loop pattern.

Defaults can be overridden from the environment:

    ROUTEGRAPH_RECURSION_LIMIT      hard step limit for compiled graphs
    ROUTEGRAPH_MAX_ASSISTANT_TURNS  soft turn guard of the tool loop

Unparseable values fall back to the built-in default.
"""

import os
import logging
from pydantic import BaseModel, ConfigDict, Field

from routegraph.core.logging import LogComponent

logger = logging.getLogger(LogComponent.GRAPH.value)

DEFAULT_RECURSION_LIMIT = 25
DEFAULT_TOOL_LOOP_RECURSION_LIMIT = 100
DEFAULT_MAX_ASSISTANT_TURNS = 10

DEFAULT_SYSTEM_PROMPT = """You are a helpful AI assistant that can use various tools to help the user.
You have access to the following tools:
{tool_descriptions}

Always use tools when they can help answer the user's question better.
After using a tool, analyze the result and determine if you need another tool or can provide the final answer.
Be concise and helpful in your responses."""

DEFAULT_TURN_LIMIT_MESSAGE = (
    "I have reached the maximum number of reasoning steps for this request and "
    "stopped to avoid looping. Please rephrase or narrow down your question."
)


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value <= 0:
        logger.warning(f"Ignoring non-positive {name}={raw!r}, using {default}")
        return default
    return value


class GraphConfig(BaseModel):
    """Configuration for compiled graphs.

    Attributes:
        recursion_limit: Maximum node invocations per run
    """
    model_config = ConfigDict(validate_assignment=True)

    recursion_limit: int = Field(
        default_factory=lambda: _env_int("ROUTEGRAPH_RECURSION_LIMIT", DEFAULT_RECURSION_LIMIT),
        gt=0,
        description="Maximum node invocations per run"
    )


class ToolLoopConfig(BaseModel):
    """Configuration for the agent/tool loop.

    The soft turn guard (`max_assistant_turns`) ends a conversation with an
    explanation; the hard `recursion_limit` aborts the run with an error.
    They are independent and both must be positive.

    Attributes:
        max_assistant_turns: End once more assistant messages than this exist
        recursion_limit: Hard step limit of the compiled loop
        end_on_unknown_tool: End the run when the model asks for a tool that
            is not enabled. When False the router returns the raw tool name
            and the executor raises RoutingKeyError.
        tool_retry_attempts: Attempts per tool call before it is reported as
            failed
        retry_backoff_multiplier: Exponential backoff multiplier in seconds
        system_prompt: Template with a `{tool_descriptions}` placeholder
        turn_limit_message: Assistant text appended when the turn guard fires
    """
    model_config = ConfigDict(validate_assignment=True)

    max_assistant_turns: int = Field(
        default_factory=lambda: _env_int("ROUTEGRAPH_MAX_ASSISTANT_TURNS", DEFAULT_MAX_ASSISTANT_TURNS),
        gt=0
    )
    recursion_limit: int = Field(default=DEFAULT_TOOL_LOOP_RECURSION_LIMIT, gt=0)
    end_on_unknown_tool: bool = True
    tool_retry_attempts: int = Field(default=1, ge=1)
    retry_backoff_multiplier: float = Field(default=1.0, ge=0)
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    turn_limit_message: str = DEFAULT_TURN_LIMIT_MESSAGE
