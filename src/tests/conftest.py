"""Shared test fixtures.

Scripted models stand in for a language model: each call pops the next
scripted response and records the prompt it was given.
"""

import pytest
from typing import Any, List, Sequence

from routegraph.core.graph.messages import Message, ToolCall, assistant, human
from routegraph.core.tools.registry import PluginRegistry


class ScriptedModel:
    """Model capability returning canned responses in order.

    Exceptions in the script are raised instead of returned. Once the
    script runs out, every call answers "done".
    """

    def __init__(self, responses: Sequence[Any] = ()):
        self.responses = list(responses)
        self.prompts: List[List[Message]] = []

    async def invoke(self, messages: List[Message]) -> Any:
        self.prompts.append(list(messages))
        if not self.responses:
            return assistant("done")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self) -> int:
        return len(self.prompts)


class LoopingModel:
    """Model that requests the same tool on every turn."""

    def __init__(self, tool_name: str, arguments: dict = None):
        self.tool_name = tool_name
        self.arguments = arguments or {}
        self.calls = 0

    def invoke(self, messages: List[Message]) -> Message:
        self.calls += 1
        return assistant(
            tool_calls=[ToolCall(id=f"call_{self.calls}", name=self.tool_name, arguments=self.arguments)]
        )


def tool_request(name: str, call_id: str = "call_1", **arguments: Any) -> Message:
    """Assistant message asking for one tool call."""
    return assistant(tool_calls=[ToolCall(id=call_id, name=name, arguments=arguments)])


@pytest.fixture
def scripted_model():
    """Factory fixture: `scripted_model([...responses])`."""
    return ScriptedModel


@pytest.fixture
def hi_input() -> dict:
    """Initial input with a single human message."""
    return {"messages": [human("hi")]}


@pytest.fixture
def registry() -> PluginRegistry:
    """Registry with a search plugin and a calculator function."""
    registry = PluginRegistry()
    registry.register_function(
        "search",
        "Search the web for current information",
        lambda query: f"results for {query}",
    )
    registry.register_function(
        "calc",
        "Perform mathematical calculations",
        lambda expression: str(eval(expression, {"__builtins__": {}})),
    )
    return registry
