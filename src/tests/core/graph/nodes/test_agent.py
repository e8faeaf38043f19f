"""Tests for AgentNode.

This module tests:
- Model invocation and output normalization
- System prompt rendering (static, callable, channel placeholders)
- The fallback message on model failures
- Speaker tagging for debate-style transcripts
"""

import pytest
from pydantic import ValidationError

from routegraph.core.graph.messages import MessageRole, ToolCall, assistant, human, system
from routegraph.core.graph.nodes.agent import FALLBACK_MESSAGE, AgentNode, normalize_model_output
from routegraph.core.graph.state import RunState
from tests.conftest import ScriptedModel


class ProviderResponse:
    """Stand-in for a provider response object with a `.content` attribute."""

    def __init__(self, content):
        self.content = content


@pytest.fixture
def state() -> RunState:
    return RunState(messages=[human("hi! I'm bob")], channels={"language": "Spanish"})


class TestAgentNodeInitialization:
    """Test agent node construction."""

    def test_defaults(self):
        node = AgentNode(model=ScriptedModel())
        assert node.name == "agent"
        assert node.validate()

    def test_requires_model(self):
        with pytest.raises(ValidationError):
            AgentNode()

    def test_rejects_none_model(self):
        with pytest.raises(ValidationError):
            AgentNode(model=None)


class TestAgentNodeProcessing:
    """Test agent node processing."""

    @pytest.mark.asyncio
    async def test_basic_processing(self, state: RunState):
        model = ScriptedModel(["hola bob"])
        node = AgentNode(model=model)

        update = await node.process(state)
        assert update == {"messages": [assistant("hola bob")]}
        assert model.prompts[0] == state.messages

    @pytest.mark.asyncio
    async def test_returns_delta_only(self, state: RunState):
        node = AgentNode(model=ScriptedModel(["first"]))
        update = await node.process(state)
        assert len(update["messages"]) == 1

    @pytest.mark.asyncio
    async def test_system_prompt_sent_not_stored(self, state: RunState):
        model = ScriptedModel(["hola"])
        node = AgentNode(model=model, system_prompt="Answer all questions in {language}.")

        update = await node.process(state)
        prompt = model.prompts[0]
        assert prompt[0] == system("Answer all questions in Spanish.")
        assert prompt[1:] == state.messages
        assert all(m.role != MessageRole.SYSTEM for m in update["messages"])

    @pytest.mark.asyncio
    async def test_existing_system_message_kept(self):
        model = ScriptedModel(["ok"])
        node = AgentNode(model=model, system_prompt="ignored")
        state = RunState(messages=[system("already here"), human("hi")])

        await node.process(state)
        assert model.prompts[0] == state.messages

    @pytest.mark.asyncio
    async def test_callable_system_prompt(self, state: RunState):
        model = ScriptedModel(["ok"])
        node = AgentNode(model=model, system_prompt=lambda: "Tools:\n- search: Search the web")

        await node.process(state)
        assert model.prompts[0][0].content == "Tools:\n- search: Search the web"

    @pytest.mark.asyncio
    async def test_tool_calls_pass_through(self, state: RunState):
        request = assistant(tool_calls=[ToolCall(id="c1", name="search", arguments={"query": "news"})])
        node = AgentNode(model=ScriptedModel([request]))

        update = await node.process(state)
        assert update["messages"][0].tool_calls[0].id == "c1"

    @pytest.mark.asyncio
    async def test_sync_callable_model(self, state: RunState):
        node = AgentNode(model=lambda messages: f"{len(messages)} message(s)")
        update = await node.process(state)
        assert update["messages"][0].content == "1 message(s)"

    @pytest.mark.asyncio
    async def test_model_failure_falls_back(self, state: RunState):
        node = AgentNode(model=ScriptedModel([RuntimeError("rate limited")]))
        update = await node.process(state)

        message = update["messages"][0]
        assert message.role == MessageRole.ASSISTANT
        assert message.content.startswith(FALLBACK_MESSAGE)
        assert "rate limited" in message.content

    @pytest.mark.asyncio
    async def test_retry_before_fallback(self, state: RunState):
        model = ScriptedModel([RuntimeError("flaky"), "recovered"])
        node = AgentNode(model=model, retry_attempts=2, backoff_multiplier=0)

        update = await node.process(state)
        assert update["messages"][0].content == "recovered"
        assert model.calls == 2

    @pytest.mark.asyncio
    async def test_wrong_role_falls_back(self, state: RunState):
        node = AgentNode(model=ScriptedModel([human("not an answer")]))
        update = await node.process(state)
        assert update["messages"][0].content.startswith(FALLBACK_MESSAGE)

    @pytest.mark.asyncio
    async def test_speaker_prefix(self, state: RunState):
        node = AgentNode(
            name="optimist",
            model=ScriptedModel(["AI will help everyone"]),
            speaker="optimist",
            prefix_speaker=True,
        )
        message = (await node.process(state))["messages"][0]
        assert message.content == "OPTIMIST: AI will help everyone"
        assert message.name == "optimist"


class TestNormalizeModelOutput:
    """Test conversion of model outputs."""

    def test_string(self):
        assert normalize_model_output("hi") == assistant("hi")

    def test_dict(self):
        assert normalize_model_output({"role": "assistant", "content": "hi"}) == assistant("hi")

    def test_provider_response(self):
        assert normalize_model_output(ProviderResponse("hi")) == assistant("hi")
        assert normalize_model_output(ProviderResponse(None)) == assistant("")

    def test_speaker_tag(self):
        assert normalize_model_output("hi", speaker="critic").name == "critic"

    def test_unsupported(self):
        with pytest.raises(TypeError):
            normalize_model_output(42)
