"""Conversation messages.

A Message is an immutable, role-tagged record. Code that needs to treat
roles differently switches on `message.role` rather than subclassing:

    if message.role == MessageRole.TOOL:
        ...

Also provides the history trimming helper and literal template rendering
used by prompt-building nodes.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from uuid import uuid4

from mirascope.core import BaseMessageParam
from pydantic import BaseModel, ConfigDict, Field, model_validator


class MessageRole(str, Enum):
    """Author of a message."""
    SYSTEM = "system"
    HUMAN = "human"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ToolCall(BaseModel):
    """A single tool request emitted by an assistant turn."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"call_{uuid4().hex[:12]}")
    name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)


class Message(BaseModel):
    """Atomic unit of conversational state.

    Attributes:
        role: Who produced the message
        content: Text, possibly empty when only tool calls are present
        tool_calls: Ordered tool requests (assistant turns only)
        tool_call_id: Id of the call this message answers (tool turns only)
        name: Optional author tag, e.g. the debate role that spoke
    """
    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = Field(default_factory=tuple)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def validate_role_fields(self) -> "Message":
        if self.tool_calls and self.role != MessageRole.ASSISTANT:
            raise ValueError(f"Only assistant messages may carry tool calls, got role '{self.role.value}'")
        if self.tool_call_id is not None and self.role != MessageRole.TOOL:
            raise ValueError("tool_call_id is only valid on tool messages")
        return self

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    def to_message_param(self) -> BaseMessageParam:
        """Convert to a mirascope message param for a provider call."""
        if self.role == MessageRole.SYSTEM:
            return BaseMessageParam(role="system", content=self.content)
        elif self.role == MessageRole.HUMAN:
            return BaseMessageParam(role="user", content=self.content)
        elif self.role == MessageRole.ASSISTANT:
            return BaseMessageParam(role="assistant", content=self.content)
        elif self.role == MessageRole.TOOL:
            return BaseMessageParam(role="tool", content=self.content)
        raise ValueError(f"Unhandled message role: {self.role}")

    def __str__(self) -> str:
        text = f"{self.role.value}: {self.content}"
        if self.tool_calls:
            calls = ", ".join(f"{c.name}({c.arguments})" for c in self.tool_calls)
            text += f" [tool calls: {calls}]"
        return text


def human(content: str, name: Optional[str] = None) -> Message:
    return Message(role=MessageRole.HUMAN, content=content, name=name)


def system(content: str) -> Message:
    return Message(role=MessageRole.SYSTEM, content=content)


def assistant(
    content: str = "",
    tool_calls: Optional[Sequence[ToolCall]] = None,
    name: Optional[str] = None,
) -> Message:
    return Message(
        role=MessageRole.ASSISTANT,
        content=content,
        tool_calls=tuple(tool_calls or ()),
        name=name,
    )


def tool_message(content: str, tool_call_id: Optional[str], name: Optional[str] = None) -> Message:
    return Message(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id, name=name)


def coerce_message(value: Any) -> Message:
    """Accept a Message, or a dict in Message shape."""
    if isinstance(value, Message):
        return value
    if isinstance(value, dict):
        data = dict(value)
        # Provider-style "user" role
        if data.get("role") == "user":
            data["role"] = MessageRole.HUMAN
        return Message.model_validate(data)
    raise TypeError(f"Cannot convert {type(value).__name__} to Message")


def last_message(messages: Sequence[Message], role: Optional[MessageRole] = None) -> Optional[Message]:
    """Most recent message, optionally restricted to one role."""
    for message in reversed(messages):
        if role is None or message.role == role:
            return message
    return None


def count_role(messages: Sequence[Message], role: MessageRole) -> int:
    return sum(1 for m in messages if m.role == role)


def pending_tool_calls(messages: Sequence[Message]) -> List[ToolCall]:
    """Tool calls of the latest assistant turn that have no result yet.

    Only the most recent assistant message counts; a call is answered once
    a tool message with its id appears after it.
    """
    for index in range(len(messages) - 1, -1, -1):
        message = messages[index]
        if message.role == MessageRole.ASSISTANT:
            answered = {
                m.tool_call_id for m in messages[index + 1:]
                if m.role == MessageRole.TOOL
            }
            return [call for call in message.tool_calls if call.id not in answered]
    return []


def trim_messages(
    messages: Sequence[Message],
    max_tokens: int,
    token_counter: Callable[[List[Message]], int] = len,
    strategy: str = "last",
    include_system: bool = True,
    allow_partial: bool = False,
) -> List[Message]:
    """Trim a history so it fits within `max_tokens`.

    Args:
        messages: The full history
        max_tokens: Budget measured by `token_counter`
        token_counter: Callable measuring a list of messages (default: one
            token per message)
        strategy: "last" keeps the newest messages, "first" the oldest
        include_system: Always keep a leading system message ("last" only)
        allow_partial: Cut the content of the boundary message to fill the
            budget instead of dropping it. Only meaningful when the counter
            measures content.

    Returns:
        A new list in original order.
    """
    if strategy not in ("first", "last"):
        raise ValueError(f"Unknown trim strategy: {strategy}")
    if max_tokens <= 0:
        return []

    messages = list(messages)
    if strategy == "first":
        kept: List[Message] = []
        for message in messages:
            if token_counter(kept + [message]) > max_tokens:
                if allow_partial:
                    partial = _partial_fit(kept, message, max_tokens, token_counter, keep_end=False)
                    if partial is not None:
                        kept.append(partial)
                break
            kept.append(message)
        return kept

    head: List[Message] = []
    body = messages
    if include_system and messages and messages[0].role == MessageRole.SYSTEM:
        head = [messages[0]]
        body = messages[1:]
        if token_counter(head) > max_tokens:
            return []

    tail: List[Message] = []
    for message in reversed(body):
        if token_counter(head + [message] + tail) > max_tokens:
            if allow_partial:
                partial = _partial_fit(head + tail, message, max_tokens, token_counter, keep_end=True)
                if partial is not None:
                    tail.insert(0, partial)
            break
        tail.insert(0, message)
    return head + tail


def _partial_fit(
    kept: List[Message],
    message: Message,
    max_tokens: int,
    token_counter: Callable[[List[Message]], int],
    keep_end: bool,
) -> Optional[Message]:
    content = message.content
    # Longest slice of content that still fits
    for size in range(len(content) - 1, 0, -1):
        piece = content[-size:] if keep_end else content[:size]
        candidate = message.model_copy(update={"content": piece})
        if token_counter(kept + [candidate]) <= max_tokens:
            return candidate
    return None


def render_template(template: str, **values: Any) -> str:
    """Substitute `{name}` placeholders literally.

    Unlike str.format, unknown braces (JSON examples in prompts) are left
    untouched.
    """
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{" + key + "}", str(value))
    return rendered
