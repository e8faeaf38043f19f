"""Tests for capabilities and the built-in tools."""

from datetime import datetime

import pytest
from pydantic import BaseModel

from routegraph.core.errors import CapabilityError
from routegraph.core.tools.calculator import CalculatorTool
from routegraph.core.tools.capability import (
    Capability,
    FunctionCapability,
    ToolClassCapability,
    capability_name,
    invoke_capability,
)
from routegraph.core.tools.clock import CurrentTimeTool


class EchoCapability:
    name = "echo"

    def invoke(self, payload):
        return payload


class AsyncEchoCapability:
    async def invoke(self, payload):
        return f"async {payload}"


def get_weather(location: str) -> str:
    """Get the current weather for a location.

    Returns a canned report.
    """
    return f"Sunny in {location}"


class TestInvokeCapability:
    """Test capability invocation."""

    @pytest.mark.asyncio
    async def test_sync_invoke(self):
        assert await invoke_capability(EchoCapability(), "hi") == "hi"

    @pytest.mark.asyncio
    async def test_async_invoke(self):
        assert await invoke_capability(AsyncEchoCapability(), "hi") == "async hi"

    @pytest.mark.asyncio
    async def test_plain_callable(self):
        assert await invoke_capability(lambda payload: payload * 2, 21) == 42

    @pytest.mark.asyncio
    async def test_failure_wrapped(self):
        def broken(payload):
            raise ValueError("bad input")

        with pytest.raises(CapabilityError) as exc:
            await invoke_capability(broken, None, name="broken")
        assert exc.value.capability == "broken"
        assert isinstance(exc.value.cause, ValueError)

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        attempts = []

        def flaky(payload):
            attempts.append(payload)
            if len(attempts) < 3:
                raise TimeoutError("slow")
            return "done"

        result = await invoke_capability(flaky, "x", attempts=3, backoff_multiplier=0)
        assert result == "done"
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_not_a_capability(self):
        with pytest.raises(CapabilityError):
            await invoke_capability(object(), "x")

    def test_protocol(self):
        assert isinstance(EchoCapability(), Capability)
        assert not isinstance(object(), Capability)

    def test_capability_name(self):
        assert capability_name(EchoCapability()) == "echo"
        assert capability_name(get_weather) == "get_weather"
        assert capability_name(AsyncEchoCapability()) == "AsyncEchoCapability"


class TestFunctionCapability:
    """Test the function adapter."""

    def test_metadata_from_function(self):
        capability = FunctionCapability(get_weather)
        assert capability.name == "get_weather"
        assert capability.description == "Get the current weather for a location."

    @pytest.mark.asyncio
    async def test_unpacks_dict_arguments(self):
        capability = FunctionCapability(get_weather)
        assert await capability.invoke({"location": "London, UK"}) == "Sunny in London, UK"

    @pytest.mark.asyncio
    async def test_passes_raw_input(self):
        capability = FunctionCapability(get_weather)
        assert await capability.invoke("Paris") == "Sunny in Paris"

    @pytest.mark.asyncio
    async def test_without_unpacking(self):
        capability = FunctionCapability(lambda args: sorted(args), unpack_arguments=False)
        assert await capability.invoke({"b": 1, "a": 2}) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_async_function(self):
        async def current_time():
            return "noon"

        assert await FunctionCapability(current_time).invoke(None) == "noon"


class TestToolClassCapability:
    """Test the mirascope tool adapter."""

    @pytest.mark.asyncio
    async def test_calculator(self):
        capability = ToolClassCapability(CalculatorTool)
        assert await capability.invoke({"expression": "2 + 2"}) == "4"

    def test_name_and_description(self):
        capability = ToolClassCapability(CalculatorTool, name="calculator")
        assert capability.name == "calculator"
        assert capability.description == "Perform mathematical calculations."

    def test_rejects_other_classes(self):
        class NotATool(BaseModel):
            pass

        with pytest.raises(TypeError):
            ToolClassCapability(NotATool)

    @pytest.mark.asyncio
    async def test_invalid_arguments_raise(self):
        with pytest.raises(CapabilityError):
            await invoke_capability(ToolClassCapability(CalculatorTool), {})


class TestBuiltinTools:
    """Test the calculator and clock tools."""

    @pytest.mark.parametrize(
        "expression, expected",
        [
            ("2 + 2", "4"),
            ("25 * 4", "100"),
            ("2 ** 10", "1024"),
            ("sqrt(16)", "4.0"),
            ("(1 + 2) * 3", "9"),
        ],
    )
    def test_calculator(self, expression, expected):
        assert CalculatorTool(expression=expression).call() == expected

    def test_calculator_errors(self):
        assert CalculatorTool(expression="1 / 0").call().startswith("Error:")
        assert CalculatorTool(expression="open('x')").call().startswith("Error:")

    def test_calculator_blocks_dunder_access(self):
        assert CalculatorTool(expression="().__class__").call() == "Error: invalid expression"

    def test_current_time(self):
        result = CurrentTimeTool().call()
        datetime.strptime(result, "%Y-%m-%d %H:%M:%S")

    def test_current_time_format(self):
        assert CurrentTimeTool(time_format="%Y").call() == str(datetime.now().year)
