"""Tests for the plugin registry."""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from routegraph.core.graph.nodes import END, START, ToolNode
from routegraph.core.graph.tool_loop import AGENT_NODE, TURN_LIMIT_NODE, ToolRoute, build_tool_loop
from routegraph.core.logging import LogComponent
from routegraph.core.tools.calculator import CalculatorTool
from routegraph.core.tools.capability import FunctionCapability, ToolClassCapability
from routegraph.core.tools.registry import PluginRegistry
from tests.conftest import ScriptedModel


class TestRegistration:
    """Test plugin registration."""

    def test_enable_toggle_keeps_registration_order(self, registry: PluginRegistry):
        registry.set_enabled("calc", False)
        assert list(registry.enabled_tools()) == ["search"]

        registry.set_enabled("calc", True)
        assert list(registry.enabled_tools()) == ["search", "calc"]

    def test_overwrite_warns_and_keeps_position(self, registry: PluginRegistry, caplog):
        registry.set_enabled("search", False)
        with caplog.at_level(logging.WARNING, logger=LogComponent.REGISTRY.value):
            registry.register("search", lambda query: "new", "Search v2")

        assert "already registered" in caplog.text
        assert [p.name for p in registry.all_plugins()] == ["search", "calc"]
        assert registry.get("search").description == "Search v2"
        assert registry.get("search").enabled

    def test_register_wraps_functions_and_tool_classes(self):
        registry = PluginRegistry()
        registry.register("weather", lambda location: f"Sunny in {location}", "Get the weather")
        registry.register("calculator", CalculatorTool, "Perform mathematical calculations")

        assert isinstance(registry.get("weather").capability, FunctionCapability)
        assert isinstance(registry.get("calculator").capability, ToolClassCapability)

    def test_register_rejects_non_callables(self):
        with pytest.raises(TypeError):
            PluginRegistry().register("broken", 42, "Not a tool")

    def test_register_rejects_empty_name(self):
        with pytest.raises(ValueError):
            PluginRegistry().register("", lambda: None, "Nameless")

    @pytest.mark.parametrize("name", [AGENT_NODE, TURN_LIMIT_NODE, START, END])
    def test_register_rejects_loop_node_names(self, registry: PluginRegistry, name: str):
        with pytest.raises(ValueError, match="reserved"):
            registry.register_function(name, "Shadow a loop node", lambda: "x")
        assert name not in registry
        assert registry.enabled_names() == ["search", "calc"]

    def test_register_tool(self):
        registry = PluginRegistry().register_tool(CalculatorTool, name="calculator")
        plugin = registry.get("calculator")
        assert plugin.description == "Perform mathematical calculations."
        assert "calculator" in registry
        assert len(registry) == 1

    def test_unregister(self, registry: PluginRegistry):
        assert registry.unregister("search") is True
        assert registry.unregister("search") is False
        assert registry.get("search") is None
        assert list(registry.enabled_tools()) == ["calc"]

    def test_set_enabled_unknown(self, registry: PluginRegistry):
        assert registry.set_enabled("missing", True) is False


class TestQueries:
    """Test registry read operations."""

    def test_all_plugins_are_copies(self, registry: PluginRegistry):
        plugins = registry.all_plugins()
        plugins[0].enabled = False
        assert registry.is_enabled("search")

    def test_enabled_plugins(self, registry: PluginRegistry):
        registry.set_enabled("search", False)
        assert [p.name for p in registry.enabled_plugins()] == ["calc"]
        assert registry.enabled_names() == ["calc"]
        assert [p.name for p in registry.all_plugins()] == ["search", "calc"]

    def test_enabled_tool_nodes(self, registry: PluginRegistry):
        nodes = registry.enabled_tool_nodes()
        assert list(nodes) == ["search", "calc"]
        assert isinstance(nodes["calc"], ToolNode)
        assert list(nodes["calc"].tools) == ["calc"]

        again = registry.enabled_tool_nodes()
        assert again["calc"] is not nodes["calc"]

    def test_tool_descriptions(self, registry: PluginRegistry):
        assert registry.tool_descriptions() == (
            "- search: Search the web for current information\n"
            "- calc: Perform mathematical calculations"
        )
        registry.set_enabled("search", False)
        assert registry.tool_descriptions() == "- calc: Perform mathematical calculations"

    def test_render_prompt(self, registry: PluginRegistry):
        registry.unregister("search")
        prompt = registry.render_prompt("You have access to the following tools:\n{tool_descriptions}")
        assert prompt == "You have access to the following tools:\n- calc: Perform mathematical calculations"

    @pytest.mark.asyncio
    async def test_enabled_tools_are_invocable(self, registry: PluginRegistry):
        tools = registry.enabled_tools()
        assert await tools["calc"].invoke({"expression": "6 * 7"}) == "42"


class TestRecompilation:
    """Test that compiled graphs snapshot the registry."""

    def test_unregister_then_recompile(self, registry: PluginRegistry):
        model = ScriptedModel()
        before = build_tool_loop(model, registry)
        registry.unregister("calc")
        after = build_tool_loop(model, registry)

        assert "calc" in before.nodes
        assert "calc" not in after.nodes
        assert ToolRoute("calc") not in after.conditional_edges["agent"].target_map

    def test_disabled_plugins_not_compiled(self, registry: PluginRegistry):
        registry.set_enabled("search", False)
        compiled = build_tool_loop(ScriptedModel(), registry)
        assert "search" not in compiled.nodes
        assert "calc" in compiled.nodes


class TestConcurrency:
    """Test concurrent access."""

    def test_parallel_registration(self):
        registry = PluginRegistry()

        def register(i):
            registry.register_function(f"tool_{i}", f"Tool {i}", lambda: i)
            registry.set_enabled(f"tool_{i}", i % 2 == 0)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(register, range(50)))

        assert len(registry) == 50
        assert len(registry.enabled_plugins()) == 25
