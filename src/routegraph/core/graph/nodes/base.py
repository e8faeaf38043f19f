"""Base node class for the graph system.

A Node is an individual unit of work (an LLM call, a tool invocation, a
plain transformation) inside a workflow. It reads the current RunState and
returns a partial update, which the executor merges with the reducer.

Typical Usage:
    - Pass a function: `Node(name="echo", fn=echo)`
    - Or subclass Node and override `process`

Node functions may be sync or async and return a channel mapping such as
`{"messages": [assistant("hi")]}`, or None for no update.
"""

import inspect
import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from routegraph.core.graph.state import PartialRunState, RunState
from routegraph.core.logging import Colors, LogComponent, get_logger

logger = get_logger(LogComponent.NODES)

START = "__start__"
END = "__end__"
RESERVED_NAMES = frozenset({START, END})


class NodeKind(str, Enum):
    """Diagnostic tag. The engine does not treat kinds differently except
    for the role of the synthetic error message."""
    PLAIN = "plain"
    TOOL = "tool"
    AGENT = "agent"


class Node(BaseModel):
    """
    Named unit of computation in a graph.

    Attributes:
        name: Unique node name within a graph
        fn: Callable `RunState -> PartialRunState` (sync or async)
        kind: Diagnostic kind tag
        metadata: Optional node metadata
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = Field(..., description="Unique name for this node")
    fn: Optional[Callable[[RunState], Any]] = Field(default=None, exclude=True)
    kind: NodeKind = Field(default=NodeKind.PLAIN)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='after')
    def validate_node(self) -> 'Node':
        """Validate node configuration."""
        if not self.name:
            raise ValueError("Node must have a name")
        if self.name in RESERVED_NAMES:
            raise ValueError(f"Node name '{self.name}' is reserved")
        return self

    async def process(self, state: RunState) -> Optional[PartialRunState]:
        """Run the node body. Override in subclasses or pass `fn`."""
        if self.fn is None:
            raise NotImplementedError(f"Node {self.name} has no fn and does not override process()")
        result = self.fn(state)
        if inspect.isawaitable(result):
            result = await result
        return result

    def validate(self) -> bool:
        """
        Validate node configuration.

        Override in subclasses if additional checks are required.

        Returns:
            True if the node is considered valid.
        """
        return self.fn is not None or type(self).process is not Node.process

    def set_metadata(self, key: str, value: Any) -> None:
        """Set metadata value."""
        self.metadata[key] = value

    def get_metadata(self, key: str, default: Any = None) -> Any:
        """Get metadata value."""
        return self.metadata.get(key, default)

    def _log_node_result(self, update: Optional[PartialRunState]) -> None:
        """Log a node's partial update at DEBUG level."""
        if update is None or not logger.isEnabledFor(logging.DEBUG):
            return
        formatted = json.dumps(
            {
                channel: [str(m) for m in value] if isinstance(value, (list, tuple)) else str(value)
                for channel, value in update.items()
            },
            indent=2,
        )
        logger.debug(
            f"\n{Colors.BOLD}Node {self.name} Output:{Colors.RESET}\n"
            f"{Colors.INFO}{formatted}{Colors.RESET}"
        )
