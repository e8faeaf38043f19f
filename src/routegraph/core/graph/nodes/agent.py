"""
Agent Node Implementation

This module provides the AgentNode class for executing model steps within a
graph. Supports:
- A system prompt rendered per call (static text or a callable)
- `{channel}` placeholders filled from the run state's custom channels
- Any model capability (sync or async `invoke(messages)`)
- Output normalization into a single assistant Message
- A visible fallback message when the model call fails

The system prompt is sent to the model but never written into the run
state, so repeated turns on the same thread do not accumulate copies.
"""

from typing import Any, Callable, List, Optional, Union

from pydantic import Field, model_validator

from routegraph.core.errors import CapabilityError
from routegraph.core.graph.messages import (
    Message,
    MessageRole,
    assistant,
    coerce_message,
    render_template,
    system,
)
from routegraph.core.graph.nodes.base import Node, NodeKind
from routegraph.core.graph.state import PartialRunState, RunState
from routegraph.core.logging import LogComponent, get_logger
from routegraph.core.tools.capability import invoke_capability

logger = get_logger(LogComponent.NODES)

FALLBACK_MESSAGE = (
    "I encountered an error while processing your request. "
    "Could you please try again or rephrase your question?"
)


def normalize_model_output(output: Any, speaker: Optional[str] = None) -> Message:
    """Turn whatever a model capability returned into an assistant Message.

    Accepts a Message, a message-shaped dict, a plain string, or a provider
    response object exposing `.content`.
    """
    if isinstance(output, str):
        message = assistant(output)
    elif isinstance(output, (Message, dict)):
        message = coerce_message(output)
    elif hasattr(output, "content"):
        message = assistant(str(output.content or ""))
    else:
        raise TypeError(f"Model returned unsupported output type {type(output).__name__}")

    if message.role != MessageRole.ASSISTANT:
        raise ValueError(f"Model output must be an assistant message, got '{message.role.value}'")
    if speaker and message.name is None:
        message = message.model_copy(update={"name": speaker})
    return message


class AgentNode(Node):
    """
    Node for executing one model step.

    Attributes:
        model: Capability called with the prompt messages
        system_prompt: Text or zero-arg callable returning text
        speaker: Optional author tag stamped on responses
        prefix_speaker: Prefix content with "SPEAKER: " (debate transcripts)
        retry_attempts: Attempts before falling back
        fallback_message: Assistant text used when the model call fails
    """
    name: str = Field(default="agent")
    kind: NodeKind = Field(default=NodeKind.AGENT)
    model: Any = Field(
        ...,
        description="Model capability used for inference"
    )
    system_prompt: Optional[Union[str, Callable[[], str]]] = Field(default=None)
    speaker: Optional[str] = None
    prefix_speaker: bool = False
    retry_attempts: int = Field(default=1, ge=1)
    backoff_multiplier: float = Field(default=1.0, ge=0)
    fallback_message: str = FALLBACK_MESSAGE

    @model_validator(mode='after')
    def validate_agent_config(self) -> "AgentNode":
        """Validate agent configuration."""
        if self.model is None:
            raise ValueError(f"AgentNode {self.name} requires a model")
        return self

    def validate(self) -> bool:
        return self.model is not None

    def render_system_prompt(self, state: RunState) -> Optional[str]:
        prompt = self.system_prompt() if callable(self.system_prompt) else self.system_prompt
        if not prompt:
            return None
        return render_template(prompt, **state.channels)

    def build_prompt(self, state: RunState) -> List[Message]:
        """System prompt (unless the transcript already starts with one) plus history."""
        messages = list(state.messages)
        prompt = self.render_system_prompt(state)
        if prompt and not (messages and messages[0].role == MessageRole.SYSTEM):
            messages.insert(0, system(prompt))
        return messages

    async def process(self, state: RunState) -> Optional[PartialRunState]:
        """Call the model and append its response."""
        prompt = self.build_prompt(state)
        logger.debug(f"Agent {self.name} calling model with {len(prompt)} message(s)")

        try:
            output = await invoke_capability(
                self.model,
                prompt,
                attempts=self.retry_attempts,
                backoff_multiplier=self.backoff_multiplier,
                name=f"{self.name}.model",
            )
            response = normalize_model_output(output, speaker=self.speaker)
        except (CapabilityError, TypeError, ValueError) as e:
            logger.error(f"Error in agent node {self.name}: {e}")
            response = assistant(f"{self.fallback_message} (error: {e})", name=self.speaker)

        if self.prefix_speaker and self.speaker and not response.tool_calls:
            response = response.model_copy(
                update={"content": f"{self.speaker.upper()}: {response.content}"}
            )

        if response.tool_calls:
            logger.agent(f"Agent {self.name} requested tools: {[c.name for c in response.tool_calls]}")
        else:
            logger.agent(f"Agent {self.name}: {response.content}")

        update = {"messages": [response]}
        self._log_node_result(update)
        return update
