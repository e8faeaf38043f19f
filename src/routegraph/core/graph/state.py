"""State management for the graph system.

This module provides:
1. NodeStatus: An enumeration of node execution statuses
2. RunState: The channel container threaded through a run
3. merge: The reducer applied to every partial update a node returns
4. RunContext: Per-invocation bookkeeping (steps, path, statuses, errors)

Reducer rules:
    - `messages` is append-only: existing entries are never removed or
      reordered, new ones are appended in order, duplicates are kept.
    - Any other channel present in the update overwrites the old value
      (unless a custom reducer is registered for it).
    - Channels absent from the update are carried over unchanged.

Nodes return deltas, never the full accumulated message list.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional
from datetime import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field

from routegraph.core.graph.messages import Message, coerce_message

MESSAGES = "messages"

ChannelReducer = Callable[[Any, Any], Any]
PartialRunState = Mapping[str, Any]


class NodeStatus(str, Enum):
    """Node execution status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


class RunState(BaseModel):
    """Mapping from channel name to channel value.

    Attributes:
        messages: Ordered, append-only conversation transcript
        channels: Every other channel (e.g. `language`, `documents`)
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    messages: List[Message] = Field(default_factory=list)
    channels: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_input(cls, value: Optional[Any] = None) -> "RunState":
        """Build a state from a RunState, a channel mapping, or nothing."""
        if value is None:
            return cls()
        if isinstance(value, RunState):
            return value.model_copy(deep=True)
        if not isinstance(value, Mapping):
            raise TypeError(f"Run input must be a mapping of channels, got {type(value).__name__}")
        return merge(cls(), value)

    def __getitem__(self, channel: str) -> Any:
        if channel == MESSAGES:
            return self.messages
        return self.channels[channel]

    def __contains__(self, channel: object) -> bool:
        return channel == MESSAGES or channel in self.channels

    def get(self, channel: str, default: Any = None) -> Any:
        if channel == MESSAGES:
            return self.messages
        return self.channels.get(channel, default)

    @property
    def last_message(self) -> Optional[Message]:
        return self.messages[-1] if self.messages else None

    def to_dict(self) -> Dict[str, Any]:
        return {MESSAGES: list(self.messages), **self.channels}


def _coerce_messages(value: Any) -> List[Message]:
    if value is None:
        return []
    if isinstance(value, (Message, dict)):
        return [coerce_message(value)]
    return [coerce_message(v) for v in value]


def merge(
    state: RunState,
    partial: Optional[PartialRunState],
    reducers: Optional[Mapping[str, ChannelReducer]] = None,
) -> RunState:
    """Apply a partial update and return a new state.

    Args:
        state: Current state (not modified)
        partial: Channel mapping returned by a node, or None for no update
        reducers: Optional per-channel reducers `(old, new) -> merged` for
            custom channels

    Returns:
        A new RunState

    Raises:
        TypeError: If the update is not a mapping
    """
    if partial is None:
        return state
    if isinstance(partial, RunState):
        raise TypeError("Nodes must return a partial channel mapping, not a full RunState")
    if not isinstance(partial, Mapping):
        raise TypeError(f"Node update must be a mapping of channels, got {type(partial).__name__}")

    messages = list(state.messages)
    channels = dict(state.channels)

    for channel, value in partial.items():
        if channel == MESSAGES:
            messages.extend(_coerce_messages(value))
        elif reducers and channel in reducers:
            channels[channel] = reducers[channel](channels.get(channel), value)
        else:
            channels[channel] = value

    return RunState(messages=messages, channels=channels)


class RunContext(BaseModel):
    """Per-invocation bookkeeping. Never shared between runs.

    Attributes:
        thread_id: Conversation key used for checkpoint correlation
        state: Current state
        steps: Number of completed node invocations
        current_node: Node about to run (or that just ran)
        path: Node names in execution order
        status: Last status per node
        errors: Last error text per node
        last_route_key: Key returned by the most recent router
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    thread_id: Optional[str] = None
    state: RunState = Field(default_factory=RunState)
    steps: int = 0
    current_node: Optional[str] = None
    path: List[str] = Field(default_factory=list)
    status: Dict[str, NodeStatus] = Field(default_factory=dict)
    errors: Dict[str, str] = Field(default_factory=dict)
    last_route_key: Any = None
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None

    def mark_status(self, node_name: str, status: NodeStatus) -> None:
        """Mark a node's execution status."""
        self.status[node_name] = status

    def add_error(self, node_name: str, error: str) -> None:
        """Record an error message for a node."""
        self.errors[node_name] = error
