"""Graph Base Classes

This module defines the builder and the compiled form of a workflow graph.
The builder provides a lightweight way to:
1. Register named nodes (agents, tools, plain functions)
2. Connect them with fixed edges and state-dependent conditional edges
3. Validate referential integrity, collecting every problem at once
4. Compile into an immutable CompiledGraph that can be run many times

Example:
    ```python
    graph = Graph()
    graph.add_node("agent", call_model, kind=NodeKind.AGENT)
    graph.add_node("tools", ToolNode(name="tools", tools={"search": search}))

    graph.add_edge(START, "agent")
    graph.add_conditional_edges("agent", should_continue, {"tools": "tools", "end": END})
    graph.add_edge("tools", "agent")

    app = graph.compile(recursion_limit=25)
    state = await app.invoke({"messages": [human("what is the weather in sf")]})
    ```

A CompiledGraph never changes. A new topology (for instance after plugins
were registered or removed) needs a new `compile()` call.
"""

import asyncio
import logging
from collections import deque
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from routegraph.core.errors import (
    DuplicateNodeError,
    GraphValidationError,
    UnknownNodeError,
)
from routegraph.core.graph.config import GraphConfig
from routegraph.core.graph.executor import CancellationToken, Executor
from routegraph.core.graph.nodes.base import END, START, Node, NodeKind
from routegraph.core.graph.state import ChannelReducer, RunContext, RunState
from routegraph.core.logging import LogComponent, RouteLoggingConfig, get_logger

RouteFn = Callable[[RunState], Hashable]


class ConditionalEdge(BaseModel):
    """State-dependent transition out of `source`.

    Attributes:
        source: Node the edge leaves from
        route_fn: `RunState -> key`, sync or async
        target_map: Route key -> target node name (or END)
        default: Target used for keys missing from target_map
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    source: str
    route_fn: Callable[[RunState], Any]
    target_map: Dict[Any, str] = Field(default_factory=dict)
    default: Optional[str] = None

    @property
    def targets(self) -> List[str]:
        targets = list(self.target_map.values())
        if self.default is not None:
            targets.append(self.default)
        return targets

    def resolve(self, key: Any) -> Optional[str]:
        """Target for a route key, or None when unmapped and no default."""
        try:
            if key in self.target_map:
                return self.target_map[key]
        except TypeError:
            # Unhashable keys never match
            pass
        return self.default


class CompiledGraph(BaseModel):
    """Immutable, validated transition table.

    Attributes:
        entry_point: First node of every run
        nodes: Node table (read-only)
        edges: Unconditional edges, source -> target (read-only)
        conditional_edges: Conditional edges by source (read-only)
        recursion_limit: Maximum node invocations per run
        checkpointer: Optional collaborator persisting state per thread
        reducers: Custom channel reducers (read-only)
    """
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    name: str = "graph"
    entry_point: str
    nodes: Mapping[str, Node]
    edges: Mapping[str, str] = Field(default_factory=dict)
    conditional_edges: Mapping[str, ConditionalEdge] = Field(default_factory=dict)
    recursion_limit: int = Field(..., gt=0)
    checkpointer: Optional[Any] = None
    reducers: Mapping[str, ChannelReducer] = Field(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        for attr in ("nodes", "edges", "conditional_edges", "reducers"):
            object.__setattr__(self, attr, MappingProxyType(dict(getattr(self, attr))))

    def successors(self, node_name: str) -> List[str]:
        """Every node (or END) reachable in one step from `node_name`."""
        if node_name in self.conditional_edges:
            return list(dict.fromkeys(self.conditional_edges[node_name].targets))
        if node_name in self.edges:
            return [self.edges[node_name]]
        return []

    async def run(
        self,
        input: Optional[Any] = None,
        thread_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
        logging_config: Optional[RouteLoggingConfig] = None,
    ) -> RunContext:
        """Run the graph and return the full run context."""
        return await Executor(self, logging_config).run(input, thread_id=thread_id, cancel_token=cancel_token)

    async def invoke(
        self,
        input: Optional[Any] = None,
        thread_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
        logging_config: Optional[RouteLoggingConfig] = None,
    ) -> RunState:
        """Run the graph to completion and return the final state.

        Args:
            input: Initial channels, e.g. `{"messages": [human("hi")]}`
            thread_id: Conversation key for the checkpointer
            cancel_token: Token checked between steps
            logging_config: Transition logging settings for this run

        Returns:
            Final RunState
        """
        return await Executor(self, logging_config).invoke(input, thread_id=thread_id, cancel_token=cancel_token)

    def invoke_sync(
        self,
        input: Optional[Any] = None,
        thread_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
        logging_config: Optional[RouteLoggingConfig] = None,
    ) -> RunState:
        """Blocking variant of `invoke` for code without an event loop."""
        return asyncio.run(
            self.invoke(input, thread_id=thread_id, cancel_token=cancel_token, logging_config=logging_config)
        )

    def get_graph(self) -> "GraphVisualizer":
        from routegraph.core.graph.viz import GraphVisualizer
        return GraphVisualizer(self)


class Graph(BaseModel):
    """Builder for a directed workflow graph.

    The builder manages:
    - Node registration (names are unique)
    - Fixed and conditional edges, checked against known nodes as added
    - Collect-all validation and compilation

    Attributes:
        name: Name carried into the compiled graph
        nodes: Registered nodes by name
        edges: Unconditional targets by source
        conditional_edges: Conditional edges by source
        entry_point: First node of every run
        reducers: Custom channel reducers
        config: Defaults for compilation
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str = "graph"
    nodes: Dict[str, Node] = Field(default_factory=dict)
    edges: Dict[str, List[str]] = Field(default_factory=dict)
    conditional_edges: Dict[str, List[ConditionalEdge]] = Field(default_factory=dict)
    entry_point: Optional[str] = None
    reducers: Dict[str, ChannelReducer] = Field(default_factory=dict)
    config: GraphConfig = Field(default_factory=GraphConfig)
    _logger: logging.Logger = PrivateAttr()

    def __init__(self, **data):
        super().__init__(**data)
        self._logger = get_logger(LogComponent.GRAPH)

    def add_node(
        self,
        node: Union[str, Node],
        fn: Optional[Callable[[RunState], Any]] = None,
        kind: NodeKind = NodeKind.PLAIN,
    ) -> "Graph":
        """Register a node.

        Args:
            node: A Node instance, or the name of a new node
            fn: Node body when `node` is a name
            kind: Diagnostic kind when `node` is a name

        Raises:
            DuplicateNodeError: If the name is already registered
            ValueError: If the name is reserved or the node fails validation
        """
        if isinstance(node, str):
            if fn is None:
                raise ValueError(f"Node {node} needs a function")
            node = Node(name=node, fn=fn, kind=kind)

        if node.name in self.nodes:
            raise DuplicateNodeError(node.name)
        if not node.validate():
            raise ValueError(f"Node {node.name} failed validation")

        self.nodes[node.name] = node
        self._logger.debug(f"Added node: {node.name} ({node.kind.value}, {type(node).__name__})")
        return self

    def _check_target(self, target: str, source: str) -> None:
        if target == END:
            return
        if target == START:
            raise ValueError(f"{START} cannot be an edge target (from {source})")
        if target not in self.nodes:
            raise UnknownNodeError(target, referenced_by=source)

    def _check_source(self, source: str) -> None:
        if source == END:
            raise ValueError(f"{END} cannot have outgoing edges")
        if source not in self.nodes:
            raise UnknownNodeError(source)

    def set_entry_point(self, node_name: str) -> "Graph":
        """Set the node every run starts from.

        Raises:
            UnknownNodeError: If the node is not registered
        """
        if node_name not in self.nodes:
            raise UnknownNodeError(node_name, referenced_by=START)
        if self.entry_point and self.entry_point != node_name:
            self._logger.warning(f"Replacing entry point {self.entry_point} with {node_name}")
        self.entry_point = node_name
        self._logger.debug(f"Set entry point to node: {node_name}")
        return self

    def add_edge(self, source: str, target: str) -> "Graph":
        """Add an unconditional edge. `add_edge(START, x)` sets the entry point.

        Raises:
            UnknownNodeError: If either end is not a registered node (or END)
        """
        if source == START:
            return self.set_entry_point(target)
        self._check_source(source)
        self._check_target(target, source)

        self.edges.setdefault(source, []).append(target)
        self._logger.debug(f"Added edge: {source} --> {target}")
        return self

    def add_conditional_edges(
        self,
        source: str,
        route_fn: RouteFn,
        target_map: Union[Mapping[Any, str], Sequence[str]],
        default: Optional[str] = None,
    ) -> "Graph":
        """Add a state-dependent transition.

        Args:
            source: Node the edge leaves from
            route_fn: `RunState -> key`
            target_map: Key -> target mapping; a list of names maps each name
                to itself
            default: Target for keys missing from the mapping

        Raises:
            UnknownNodeError: If the source or any target is unknown
        """
        self._check_source(source)
        if isinstance(target_map, Mapping):
            mapping = dict(target_map)
        else:
            mapping = {name: name for name in target_map}

        for target in mapping.values():
            self._check_target(target, source)
        if default is not None:
            self._check_target(default, source)

        edge = ConditionalEdge(source=source, route_fn=route_fn, target_map=mapping, default=default)
        self.conditional_edges.setdefault(source, []).append(edge)
        self._logger.debug(
            f"Added conditional edge: {source} --[{', '.join(map(str, mapping))}]--> "
            f"{sorted(set(edge.targets))}"
        )
        return self

    def add_reducer(self, channel: str, reducer: ChannelReducer) -> "Graph":
        """Register a custom merge rule `(old, new) -> value` for a channel."""
        if channel == "messages":
            raise ValueError("The messages channel always appends")
        self.reducers[channel] = reducer
        return self

    def chain(self, nodes: Sequence[Union[str, Node]]) -> "Graph":
        """Connect a sequence of nodes in order, adding any Node instances.

        The first node becomes the entry point if none exists.
        """
        names: List[str] = []
        for node in nodes:
            if isinstance(node, Node):
                self.add_node(node)
                names.append(node.name)
            else:
                names.append(node)

        for source, target in zip(names, names[1:]):
            self.add_edge(source, target)

        if names and not self.entry_point:
            self.set_entry_point(names[0])
        return self

    def _reachable(self) -> set:
        seen = set()
        queue = deque([self.entry_point])
        while queue:
            current = queue.popleft()
            if current in seen or current == END or current not in self.nodes:
                continue
            seen.add(current)
            queue.extend(self.edges.get(current, []))
            for edge in self.conditional_edges.get(current, []):
                queue.extend(edge.targets)
        return seen

    def validate(self) -> List[str]:
        """Validate the graph configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors: List[str] = []

        if not self.nodes:
            errors.append("Graph has no nodes")
            return errors

        if not self.entry_point:
            errors.append("Graph has no entry point")
        elif self.entry_point not in self.nodes:
            errors.append(f"Entry point references unknown node: {self.entry_point}")

        for name, node in self.nodes.items():
            if not node.validate():
                errors.append(f"Node {name} failed validation")

        for source, targets in self.edges.items():
            if source not in self.nodes:
                errors.append(f"Edge source is not a node: {source}")
            if len(targets) > 1:
                errors.append(f"Node {source} has {len(targets)} unconditional edges ({', '.join(targets)})")
            for target in targets:
                if target != END and target not in self.nodes:
                    errors.append(f"Node {source} references unknown node: {target}")

        for source, edges in self.conditional_edges.items():
            if source not in self.nodes:
                errors.append(f"Conditional edge source is not a node: {source}")
            if len(edges) > 1:
                errors.append(f"Node {source} has {len(edges)} conditional edges")
            if source in self.edges:
                errors.append(f"Node {source} has both a conditional and an unconditional edge")
            for edge in edges:
                for target in edge.targets:
                    if target != END and target not in self.nodes:
                        errors.append(f"Conditional edge from {source} references unknown node: {target}")

        if self.entry_point in self.nodes:
            unreachable = [name for name in self.nodes if name not in self._reachable()]
            for name in unreachable:
                errors.append(f"Node {name} is unreachable from entry point {self.entry_point}")

        return errors

    def compile(
        self,
        recursion_limit: Optional[int] = None,
        checkpointer: Optional[Any] = None,
    ) -> CompiledGraph:
        """Validate and freeze the graph.

        Args:
            recursion_limit: Hard step limit (defaults to `config.recursion_limit`)
            checkpointer: Optional collaborator with `load`/`save`

        Raises:
            GraphValidationError: Listing every problem found
        """
        errors = self.validate()
        if errors:
            for error in errors:
                self._logger.error(f"Graph validation: {error}")
            raise GraphValidationError(errors)

        compiled = CompiledGraph(
            name=self.name,
            entry_point=self.entry_point,
            nodes={
                name: node.model_copy(update={"metadata": dict(node.metadata)})
                for name, node in self.nodes.items()
            },
            edges={source: targets[0] for source, targets in self.edges.items()},
            conditional_edges={source: edges[0] for source, edges in self.conditional_edges.items()},
            recursion_limit=recursion_limit if recursion_limit is not None else self.config.recursion_limit,
            checkpointer=checkpointer,
            reducers=dict(self.reducers),
        )
        self._logger.info(
            f"Compiled graph '{self.name}': {len(compiled.nodes)} node(s), "
            f"entry {compiled.entry_point}, recursion limit {compiled.recursion_limit}"
        )
        return compiled
