"""
Plugin agent: a tool-using assistant whose tools can change at runtime.

This module provides an orchestrator around the tool loop. It owns:
 - A PluginRegistry (no process-wide singleton)
 - The model capability
 - The compiled tool loop, rebuilt when plugins change

Message Flow:
    1. User message is appended to the thread's transcript
    2. The agent node calls the model with the system prompt, where
       `{tool_descriptions}` lists the enabled plugins
    3. Tool calls are routed to the matching plugin's tool node and the
       results are fed back to the model
    4. The run ends when the model answers without tool calls, asks for an
       unknown tool, or the turn guard fires

Example:
    ```python
    agent = PluginAgent(model=my_model)
    agent.register_builtin_plugins()
    agent.register_function_plugin(
        "get_weather",
        "Get the current weather for a location",
        lambda location: f"Sunny in {location}",
    )
    state = await agent.run("What's 25 * 4?")
    print(state.last_message.content)
    ```
"""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from routegraph.core.errors import GraphConfigurationError, GraphRunError, RunCancelledError
from routegraph.core.graph.base import CompiledGraph
from routegraph.core.graph.config import ToolLoopConfig
from routegraph.core.graph.executor import CancellationToken
from routegraph.core.graph.messages import assistant, human
from routegraph.core.graph.state import RunState, merge
from routegraph.core.graph.tool_loop import build_tool_loop
from routegraph.core.logging import LogComponent, get_logger
from routegraph.core.tools.calculator import CalculatorTool
from routegraph.core.tools.clock import CurrentTimeTool
from routegraph.core.tools.registry import PluginRegistry

logger = get_logger(LogComponent.AGENT)

RUN_ERROR_MESSAGE = (
    "I encountered an error while processing your request: {error}. "
    "This might be due to a tool misbehaving or a recursion issue."
)


class PluginAgent(BaseModel):
    """Tool-loop agent backed by a runtime-mutable plugin registry.

    Registry changes take effect on the next `rebuild()` (or the next
    `run()` after a change made through this agent).

    Attributes:
        model: Model capability called with the prompt messages
        registry: Plugins available to the model
        system_prompt: Template with a `{tool_descriptions}` placeholder;
            defaults to `config.system_prompt`
        config: Tool loop configuration
        checkpointer: Optional per-thread persistence for multi-turn chats
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    model: Any = Field(..., description="Model capability used for inference")
    registry: PluginRegistry = Field(default_factory=PluginRegistry)
    system_prompt: Optional[str] = None
    config: ToolLoopConfig = Field(default_factory=ToolLoopConfig)
    checkpointer: Optional[Any] = None

    _graph: Optional[CompiledGraph] = PrivateAttr(default=None)

    @property
    def graph(self) -> Optional[CompiledGraph]:
        return self._graph

    def register_builtin_plugins(self) -> "PluginAgent":
        """Register the calculator and current-time tools."""
        self.registry.register_tool(
            CalculatorTool, name="calculator", description="Perform mathematical calculations"
        )
        self.registry.register_tool(
            CurrentTimeTool, name="time", description="Get the current time and date"
        )
        self._graph = None
        return self

    def register_plugin(self, name: str, tool: Any, description: str) -> "PluginAgent":
        """Register a capability, mirascope tool class, or callable."""
        self.registry.register(name, tool, description)
        self._graph = None
        return self

    def register_function_plugin(
        self,
        name: str,
        description: str,
        func: Callable[..., Any],
    ) -> "PluginAgent":
        self.registry.register_function(name, description, func)
        self._graph = None
        return self

    def initialize(self) -> CompiledGraph:
        """Compile the tool loop from the currently enabled plugins."""
        self._graph = build_tool_loop(
            self.model,
            self.registry,
            config=self.config,
            checkpointer=self.checkpointer,
            system_prompt=self.system_prompt,
        )
        logger.info(f"Plugin agent initialized with tools: {self.registry.enabled_names()}")
        return self._graph

    def rebuild(self) -> CompiledGraph:
        """Recompile after registry changes made directly on `registry`."""
        return self.initialize()

    async def run(
        self,
        message: str,
        thread_id: Optional[str] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> RunState:
        """Answer one user message.

        Routing and recursion failures do not raise; the returned state ends
        with an assistant message describing the error. Cancellation still
        raises RunCancelledError.

        Args:
            message: User input
            thread_id: Continue this conversation when a checkpointer is set

        Returns:
            Final RunState of the run
        """
        graph = self._graph or self.initialize()
        initial = {"messages": [human(message)]}

        try:
            return await graph.invoke(initial, thread_id=thread_id, cancel_token=cancel_token)
        except RunCancelledError:
            raise
        except (GraphConfigurationError, GraphRunError) as e:
            logger.error(f"Error running agent: {e}")
            state = getattr(e, "state", None) or RunState.from_input(initial)
            return merge(state, {"messages": [assistant(RUN_ERROR_MESSAGE.format(error=e))]})
