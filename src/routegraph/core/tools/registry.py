"""Plugin registry.

A runtime-mutable, thread-safe table of named tools. Each enabled plugin
maps 1:1 to a ToolNode of the same name; the tool loop is compiled from a
snapshot of the enabled set, so changes only take effect on the next
`compile()`.

Example:
    ```python
    registry = PluginRegistry()
    registry.register_tool(CalculatorTool, name="calculator",
                           description="Perform mathematical calculations")
    registry.register_function("get_weather", "Get the current weather for a location",
                               lambda location: f"Sunny in {location}")

    registry.tool_descriptions()
    # - calculator: Perform mathematical calculations
    # - get_weather: Get the current weather for a location
    ```
"""

import inspect
import threading
from typing import Any, Callable, Dict, List, Optional, Type

from mirascope.core import BaseTool
from pydantic import BaseModel, ConfigDict

from routegraph.core.graph.messages import render_template
from routegraph.core.graph.nodes.tool import ToolNode
from routegraph.core.graph.tool_loop import RESERVED_NAMES
from routegraph.core.logging import LogComponent, get_logger
from routegraph.core.tools.capability import FunctionCapability, ToolClassCapability

logger = get_logger(LogComponent.REGISTRY)


class Plugin(BaseModel):
    """A registered tool.

    Attributes:
        name: Unique plugin name, also the tool and node name
        capability: Handle invoked with the call arguments
        description: Text shown to the model
        enabled: Disabled plugins stay registered but are not compiled in
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    capability: Any
    description: str = ""
    enabled: bool = True


def as_capability(tool: Any, name: str, description: str = "") -> Any:
    """Wrap mirascope tool classes and bare functions; pass capabilities through."""
    if inspect.isclass(tool) and issubclass(tool, BaseTool):
        return ToolClassCapability(tool, name=name, description=description or None)
    if hasattr(tool, "invoke"):
        return tool
    if callable(tool):
        return FunctionCapability(tool, name=name, description=description or None)
    raise TypeError(f"Plugin {name} must be a capability, a BaseTool subclass or a callable")


class PluginRegistry:
    """Registry of named tool plugins.

    All reads and writes serialize on one re-entrant lock, so a registry
    can be shared by concurrent runs and modified while they execute.

    Args:
        retry_attempts: Attempts per tool call for derived ToolNodes
        backoff_multiplier: Retry backoff multiplier for derived ToolNodes
    """

    def __init__(self, retry_attempts: int = 1, backoff_multiplier: float = 1.0):
        self._plugins: Dict[str, Plugin] = {}
        self._lock = threading.RLock()
        self.retry_attempts = retry_attempts
        self.backoff_multiplier = backoff_multiplier

    def __len__(self) -> int:
        with self._lock:
            return len(self._plugins)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._plugins

    def register(self, name: str, capability: Any, description: str = "") -> "PluginRegistry":
        """Register (or replace) a plugin. It starts enabled.

        Replacing keeps the plugin's original position in registration order.

        Raises:
            ValueError: For an empty name or a tool-loop node name
            TypeError: If `capability` is not callable or invocable
        """
        if not name:
            raise ValueError("Plugin name must not be empty")
        if name in RESERVED_NAMES:
            reserved = ", ".join(sorted(RESERVED_NAMES))
            raise ValueError(f"Plugin name {name!r} is reserved by the tool loop ({reserved})")
        plugin = Plugin(
            name=name,
            capability=as_capability(capability, name, description),
            description=description,
            enabled=True,
        )
        with self._lock:
            if name in self._plugins:
                logger.warning(f"Plugin {name} already registered. Overwriting...")
            self._plugins[name] = plugin
        logger.info(f"Plugin registered: {name} - {description}")
        return self

    def register_function(self, name: str, description: str, func: Callable[..., Any]) -> "PluginRegistry":
        """Register a plain function (sync or async) as a tool.

        Dict arguments are passed as keyword arguments.
        """
        return self.register(name, FunctionCapability(func, name=name, description=description), description)

    def register_tool(
        self,
        tool_cls: Type[BaseTool],
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> "PluginRegistry":
        """Register a mirascope BaseTool subclass."""
        capability = ToolClassCapability(tool_cls, name=name, description=description)
        return self.register(capability.name, capability, capability.description)

    def unregister(self, name: str) -> bool:
        with self._lock:
            if name not in self._plugins:
                logger.warning(f"Plugin {name} not found, nothing to unregister.")
                return False
            del self._plugins[name]
        logger.info(f"Plugin unregistered: {name}")
        return True

    def set_enabled(self, name: str, enabled: bool) -> bool:
        with self._lock:
            plugin = self._plugins.get(name)
            if plugin is None:
                logger.warning(f"Plugin {name} not found, can't change status.")
                return False
            plugin.enabled = enabled
        logger.info(f"Plugin {name} {'enabled' if enabled else 'disabled'}")
        return True

    def get(self, name: str) -> Optional[Plugin]:
        with self._lock:
            plugin = self._plugins.get(name)
            return plugin.model_copy() if plugin is not None else None

    def all_plugins(self) -> List[Plugin]:
        """Every plugin, enabled or not, in registration order (copies)."""
        with self._lock:
            return [plugin.model_copy() for plugin in self._plugins.values()]

    def enabled_plugins(self) -> List[Plugin]:
        with self._lock:
            return [plugin.model_copy() for plugin in self._plugins.values() if plugin.enabled]

    def enabled_names(self) -> List[str]:
        return [plugin.name for plugin in self.enabled_plugins()]

    def is_enabled(self, name: str) -> bool:
        with self._lock:
            plugin = self._plugins.get(name)
            return plugin is not None and plugin.enabled

    def enabled_tools(self) -> Dict[str, Any]:
        """Tool name -> capability for every enabled plugin."""
        return {plugin.name: plugin.capability for plugin in self.enabled_plugins()}

    def enabled_tool_nodes(self) -> Dict[str, ToolNode]:
        """A fresh ToolNode per enabled plugin, keyed by plugin name."""
        return {
            plugin.name: ToolNode(
                name=plugin.name,
                tools={plugin.name: plugin.capability},
                retry_attempts=self.retry_attempts,
                backoff_multiplier=self.backoff_multiplier,
                metadata={"description": plugin.description},
            )
            for plugin in self.enabled_plugins()
        }

    def tool_descriptions(self) -> str:
        """`- name: description` per enabled plugin, one per line."""
        return "\n".join(f"- {plugin.name}: {plugin.description}" for plugin in self.enabled_plugins())

    def render_prompt(self, template: str) -> str:
        """Fill the `{tool_descriptions}` placeholder of a prompt template."""
        return render_template(template, tool_descriptions=self.tool_descriptions())
