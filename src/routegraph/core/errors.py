"""Exception hierarchy for graph construction and execution.

Configuration errors are raised while a graph is being defined, compiled,
or routed, and always abort. Run errors abort a single run but carry the
state accumulated up to the last completed step so callers can inspect a
partial transcript. Capability errors never abort a run; nodes turn them
into messages.
"""

from typing import Any, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from routegraph.core.graph.state import RunState


class GraphError(Exception):
    """Base class for all routegraph errors."""


class GraphConfigurationError(GraphError, ValueError):
    """A graph definition or routing table is wrong."""


class DuplicateNodeError(GraphConfigurationError):
    """A node name was registered twice on the same builder."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Node already registered: {name}")


class UnknownNodeError(GraphConfigurationError):
    """An edge references a node that was never registered."""

    def __init__(self, name: str, referenced_by: Optional[str] = None):
        self.name = name
        self.referenced_by = referenced_by
        where = f" (referenced by {referenced_by})" if referenced_by else ""
        super().__init__(f"Unknown node: {name}{where}")


class GraphValidationError(GraphConfigurationError):
    """Compile-time integrity check failed. Lists every problem found."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        details = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(f"Graph validation failed with {len(self.errors)} error(s):\n{details}")


class RoutingKeyError(GraphConfigurationError):
    """A router returned a key with no target and no default."""

    def __init__(self, node: str, key: Any, state: Optional["RunState"] = None, steps: int = 0):
        self.node = node
        self.key = key
        self.state = state
        self.steps = steps
        super().__init__(
            f"Router for node '{node}' returned unmapped key {key!r} at step {steps}"
        )


class NoOutgoingEdgeError(GraphConfigurationError):
    """A non-terminal node finished but has nowhere to go."""

    def __init__(self, node: str, state: Optional["RunState"] = None, steps: int = 0):
        self.node = node
        self.state = state
        self.steps = steps
        super().__init__(f"Node '{node}' has no outgoing edge (step {steps})")


class GraphRunError(GraphError):
    """A run stopped early. `state` holds the transcript up to the stop."""

    def __init__(self, message: str, state: "RunState", steps: int, last_node: Optional[str]):
        self.state = state
        self.steps = steps
        self.last_node = last_node
        super().__init__(message)


class RecursionLimitExceeded(GraphRunError):
    """The run hit the compiled graph's recursion limit."""

    def __init__(self, steps: int, last_node: Optional[str], state: "RunState", last_route_key: Any = None):
        self.last_route_key = last_route_key
        super().__init__(
            f"Recursion limit of {steps} reached without hitting a stop condition "
            f"(last node: {last_node}, last route key: {last_route_key!r})",
            state=state,
            steps=steps,
            last_node=last_node,
        )


class RunCancelledError(GraphRunError):
    """The caller cancelled the run between two steps."""

    def __init__(self, steps: int, last_node: Optional[str], state: "RunState"):
        super().__init__(
            f"Run cancelled after {steps} step(s) (last node: {last_node})",
            state=state,
            steps=steps,
            last_node=last_node,
        )


class CapabilityError(GraphError):
    """A model or tool call failed."""

    def __init__(self, capability: str, cause: Optional[BaseException] = None, message: Optional[str] = None):
        self.capability = capability
        self.cause = cause
        super().__init__(message or f"Capability '{capability}' failed: {cause}")


class StorageError(GraphError):
    """The checkpoint collaborator could not load or save a thread."""
