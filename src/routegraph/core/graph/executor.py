"""Graph Executor - runs compiled graphs.

The executor is a strict sequential interpreter. For one run it:
1. Loads the thread's checkpoint (if a thread id and checkpointer exist)
   and merges the input into it
2. Repeats: stop at END, enforce the recursion limit, honour
   cancellation, invoke exactly one node, merge its update, resolve the
   next node through the conditional or fixed edge
3. Saves the final (or cancelled) state back to the checkpointer

Node-body failures are recovered: the exception becomes a synthetic error
message in the transcript and the run continues, so downstream nodes can
react. Routing and topology failures are raised immediately.

Distinct runs share nothing but the compiled graph (immutable), the
checkpointer and whatever the node closures reference.
"""

import inspect
import threading
from datetime import datetime
from typing import Any, Optional, TYPE_CHECKING

from routegraph.core.errors import (
    NoOutgoingEdgeError,
    RecursionLimitExceeded,
    RoutingKeyError,
    RunCancelledError,
)
from routegraph.core.graph.messages import Message, assistant, pending_tool_calls, tool_message
from routegraph.core.graph.nodes.base import END, Node, NodeKind
from routegraph.core.graph.state import NodeStatus, RunContext, RunState, merge
from routegraph.core.logging import (
    Colors,
    LogComponent,
    RouteLoggingConfig,
    get_logger,
    log_state,
)

if TYPE_CHECKING:
    from routegraph.core.graph.base import CompiledGraph

logger = get_logger(LogComponent.GRAPH)


class CancellationToken:
    """Cooperative cancellation signal, safe to set from any thread.

    The executor checks it between steps, never while a node body runs.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def error_message_for(node: Node, state: RunState, error: BaseException) -> Message:
    """Synthetic transcript entry describing a failed node body.

    Tool nodes answer the first pending call so the failure stays
    correlated with the request; everything else reports as assistant.
    """
    text = f"Error in node '{node.name}': {type(error).__name__}: {error}"
    if node.kind == NodeKind.TOOL:
        pending = pending_tool_calls(state.messages)
        if pending:
            return tool_message(text, tool_call_id=pending[0].id, name=pending[0].name)
        return tool_message(text, tool_call_id=None, name=node.name)
    return assistant(text, name=node.name)


class Executor:
    """
    Executes one compiled graph.

    Example:
        executor = Executor(compiled)
        state = await executor.invoke({"messages": [human("hi")]}, thread_id="t1")
    """

    def __init__(self, graph: "CompiledGraph", logging_config: Optional[RouteLoggingConfig] = None):
        self.graph = graph
        self.checkpointer = graph.checkpointer
        self.logging_config = logging_config or RouteLoggingConfig()

    def _log_transition(self, message: str) -> None:
        if self.logging_config.show_node_transitions:
            logger.log(self.logging_config.level, message)

    def _initial_state(self, input: Optional[Any], thread_id: Optional[str]) -> RunState:
        state = RunState()
        if thread_id is not None and self.checkpointer is not None:
            loaded = self.checkpointer.load(thread_id)
            if loaded is not None:
                logger.debug(f"Loaded checkpoint for thread {thread_id} ({len(loaded.messages)} message(s))")
                state = loaded
        if input is None:
            return state
        if isinstance(input, RunState):
            input = input.to_dict()
        return merge(state, input, self.graph.reducers)

    def _save(self, context: RunContext) -> None:
        if context.thread_id is not None and self.checkpointer is not None:
            self.checkpointer.save(context.thread_id, context.state)
            logger.debug(f"Saved checkpoint for thread {context.thread_id}")

    async def _call_node(self, node: Node, context: RunContext) -> None:
        """Invoke one node body and merge its update into the context."""
        context.mark_status(node.name, NodeStatus.RUNNING)
        try:
            update = await node.process(context.state)
            context.state = merge(context.state, update, self.graph.reducers)
            context.mark_status(node.name, NodeStatus.COMPLETED)
        except Exception as e:
            logger.error(f"Error in node {node.name}: {e}")
            context.mark_status(node.name, NodeStatus.ERROR)
            context.add_error(node.name, str(e))
            context.state = merge(
                context.state,
                {"messages": [error_message_for(node, context.state, e)]},
                self.graph.reducers,
            )

    async def _resolve_next(self, node_name: str, context: RunContext) -> str:
        edge = self.graph.conditional_edges.get(node_name)
        if edge is not None:
            key = edge.route_fn(context.state)
            if inspect.isawaitable(key):
                key = await key
            context.last_route_key = key
            target = edge.resolve(key)
            if target is None:
                logger.error(f"Router for {node_name} returned unmapped key {key!r}")
                raise RoutingKeyError(node_name, key, state=context.state, steps=context.steps)
            self._log_transition(f"Transitioning {node_name} --[{key}]--> {target}")
            return target

        target = self.graph.edges.get(node_name)
        if target is None:
            raise NoOutgoingEdgeError(node_name, state=context.state, steps=context.steps)
        self._log_transition(f"Transitioning {node_name} --> {target}")
        return target

    async def run(
        self,
        input: Optional[Any] = None,
        thread_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunContext:
        """Run to END and return the run context.

        Raises:
            RecursionLimitExceeded: After `recursion_limit` node invocations
            RunCancelledError: When `cancel_token` fires between steps
            RoutingKeyError, NoOutgoingEdgeError: On routing misconfiguration
        """
        context = RunContext(thread_id=thread_id, state=self._initial_state(input, thread_id))
        current = self.graph.entry_point
        limit = self.graph.recursion_limit
        logger.info(f"Starting graph execution at node: {current} (thread: {thread_id})")

        while True:
            if current == END:
                context.current_node = END
                context.finished_at = datetime.utcnow()
                self._save(context)
                logger.info(
                    f"{Colors.SUCCESS}Reached {END} after {context.steps} step(s){Colors.RESET}"
                )
                log_state(logger, context.state.channels)
                return context

            last_node = context.path[-1] if context.path else None

            if context.steps >= limit:
                logger.error(f"Recursion limit of {limit} reached, aborting execution (last node: {last_node})")
                raise RecursionLimitExceeded(
                    steps=context.steps,
                    last_node=last_node,
                    state=context.state,
                    last_route_key=context.last_route_key,
                )

            if cancel_token is not None and cancel_token.cancelled:
                logger.warning(f"Run cancelled before node {current} after {context.steps} step(s)")
                context.finished_at = datetime.utcnow()
                self._save(context)
                raise RunCancelledError(steps=context.steps, last_node=last_node, state=context.state)

            node = self.graph.nodes[current]
            context.current_node = current
            context.path.append(current)
            await self._call_node(node, context)

            next_node = await self._resolve_next(current, context)
            context.steps += 1
            current = next_node

    async def invoke(
        self,
        input: Optional[Any] = None,
        thread_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunState:
        """Run to END and return the final state."""
        context = await self.run(input, thread_id=thread_id, cancel_token=cancel_token)
        return context.state
