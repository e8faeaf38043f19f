"""Tests for graph state management.

This module tests the state management functionality including:
- RunState construction and channel access
- The merge reducer (append-only messages, overwrite channels)
- Custom channel reducers
- RunContext bookkeeping
"""

import pytest

from routegraph.core.graph.messages import assistant, human
from routegraph.core.graph.state import NodeStatus, RunContext, RunState, merge


@pytest.fixture
def state() -> RunState:
    """Fixture providing a state with one message and one channel."""
    return RunState(messages=[human("hi")], channels={"language": "English"})


class TestRunState:
    """Test suite for RunState functionality."""

    def test_state_init(self):
        state = RunState()
        assert state.messages == []
        assert state.channels == {}
        assert state.last_message is None

    def test_channel_access(self, state: RunState):
        assert state["language"] == "English"
        assert state["messages"] == [human("hi")]
        assert state.get("documents") is None
        assert state.get("documents", []) == []
        assert "language" in state
        assert "messages" in state
        assert "documents" not in state

    def test_missing_channel_raises(self, state: RunState):
        with pytest.raises(KeyError):
            _ = state["documents"]

    def test_from_mapping(self):
        state = RunState.from_input({"messages": [{"role": "user", "content": "hi"}], "language": "Spanish"})
        assert state.messages == [human("hi")]
        assert state.channels == {"language": "Spanish"}

    def test_from_state_copies(self, state: RunState):
        copied = RunState.from_input(state)
        assert copied == state
        copied.channels["language"] = "French"
        assert state["language"] == "English"

    def test_from_invalid_input(self):
        with pytest.raises(TypeError):
            RunState.from_input(["hi"])

    def test_to_dict(self, state: RunState):
        assert state.to_dict() == {"messages": [human("hi")], "language": "English"}


class TestMerge:
    """Test suite for the reducer."""

    def test_messages_append(self, state: RunState):
        merged = merge(state, {"messages": [assistant("hello"), assistant("hello")]})
        assert [m.content for m in merged.messages] == ["hi", "hello", "hello"]

    def test_single_message_accepted(self, state: RunState):
        merged = merge(state, {"messages": assistant("hello")})
        assert merged.last_message == assistant("hello")

    def test_channels_overwrite_and_carry_over(self, state: RunState):
        merged = merge(state, {"documents": ["doc1"]})
        assert merged["language"] == "English"
        assert merged["documents"] == ["doc1"]

        merged = merge(merged, {"language": "Spanish"})
        assert merged["language"] == "Spanish"
        assert merged["documents"] == ["doc1"]

    def test_original_state_untouched(self, state: RunState):
        merge(state, {"messages": [assistant("hello")], "language": "Spanish"})
        assert state.messages == [human("hi")]
        assert state["language"] == "English"

    def test_none_is_no_update(self, state: RunState):
        assert merge(state, None) is state

    def test_empty_update(self, state: RunState):
        merged = merge(state, {})
        assert merged == state

    def test_rejects_full_state(self, state: RunState):
        with pytest.raises(TypeError):
            merge(state, RunState())

    def test_rejects_non_mapping(self, state: RunState):
        with pytest.raises(TypeError):
            merge(state, [assistant("hello")])

    def test_sequential_merges_compose(self, state: RunState):
        first = {"messages": [assistant("a")], "topic": "x", "round": 1}
        second = {"messages": [assistant("b")], "round": 2}
        combined = {"messages": [assistant("a"), assistant("b")], "topic": "x", "round": 2}

        assert merge(merge(state, first), second) == merge(state, combined)

    def test_custom_reducer(self):
        reducers = {"count": lambda old, new: (old or 0) + new}
        state = merge(RunState(), {"count": 2}, reducers)
        state = merge(state, {"count": 3}, reducers)
        assert state["count"] == 5


class TestRunContext:
    """Test suite for per-run bookkeeping."""

    def test_defaults(self):
        context = RunContext()
        assert context.steps == 0
        assert context.path == []
        assert context.thread_id is None
        assert context.finished_at is None

    def test_status_and_errors(self):
        context = RunContext()
        context.mark_status("agent", NodeStatus.RUNNING)
        context.mark_status("agent", NodeStatus.ERROR)
        context.add_error("agent", "boom")
        assert context.status == {"agent": NodeStatus.ERROR}
        assert context.errors == {"agent": "boom"}
