"""
Unit Tests for ReACTAgent

Covers in-band tool-call detection on the token stream, prefix
coalescing of streamed answers, parse fallback and the prompt fold that
replaces tool-role messages after each tool step.
"""

import asyncio
import json

import pytest
from fakes import FakeChatModel, collect, make_context

from agent_engine.core.domain.events import QueueEvent
from agent_engine.core.domain.models import ReviewConfig
from agent_engine.core.domain.react_agent import ReACTAgent, parse_tool_call

ECHO_CALL = '```json\n{"name":"echo","args":{"x":"7"}}\n```'


async def run_agent(context, queue_manager) -> list:
    agent = ReACTAgent(context, queue_manager)
    return await asyncio.wait_for(collect(await agent.stream()), timeout=5)


def kinds(events) -> list[QueueEvent]:
    return [event.event for event in events]


class TestParseToolCall:
    """Tests for parse_tool_call()."""

    def test_parses_name_and_args(self):
        assert parse_tool_call(ECHO_CALL) == {"name": "echo", "args": {"x": "7"}}

    def test_missing_args_default_to_empty(self):
        assert parse_tool_call('```json\n{"name": "current_time"}\n```') == {
            "name": "current_time",
            "args": {},
        }

    def test_invalid_json(self):
        assert parse_tool_call("```json\n{not json}\n```") is None

    def test_missing_fence(self):
        assert parse_tool_call('{"name": "echo", "args": {}}') is None

    def test_non_object_args(self):
        assert parse_tool_call('```json\n{"name": "echo", "args": [1]}\n```') is None

    def test_non_string_name(self):
        assert parse_tool_call('```json\n{"name": 3, "args": {}}\n```') is None


class TestScenarios:
    """End-to-end event sequences."""

    @pytest.mark.asyncio
    async def test_tool_call_then_answer(self, queue_manager, echo_tool):
        llm = FakeChatModel(streams=[[ECHO_CALL], ["done 7"]], supports_tool_call=False)

        events = await run_agent(make_context(llm, tools=(echo_tool,)), queue_manager)

        assert kinds(events) == [
            QueueEvent.AGENT_THOUGHT,
            QueueEvent.AGENT_ACTION,
            QueueEvent.AGENT_MESSAGE,
            QueueEvent.AGENT_END,
        ]
        assert events[0].thought == ECHO_CALL
        assert events[1].tool == "echo"
        assert events[1].observation == "E:7"
        assert events[1].tool_input == {"args": '{"x": "7"}'}
        assert events[2].answer == "done 7"

    @pytest.mark.asyncio
    async def test_tool_step_is_folded(self, queue_manager, echo_tool):
        """The second prompt carries no tool-role messages."""
        llm = FakeChatModel(streams=[[ECHO_CALL], ["done 7"]], supports_tool_call=False)

        await run_agent(make_context(llm, tools=(echo_tool,)), queue_manager)

        second_prompt = llm.calls[1]
        assert all(message["role"] != "tool" for message in second_prompt)
        assert second_prompt[-2] == {
            "role": "assistant",
            "content": '```json\n[{"name": "echo", "args": {"x": "7"}}]\n```',
        }
        assert second_prompt[-1] == {
            "role": "user",
            "content": "工具: echo\n执行结果: E:7\n==========\n\n",
        }

    @pytest.mark.asyncio
    async def test_long_observation_is_folded_whole(self, queue_manager, echo_tool):
        payload = "A" * 25000
        call = "```json\n" + json.dumps({"name": "echo", "args": {"x": payload}}) + "\n```"
        llm = FakeChatModel(streams=[[call], ["done"]], supports_tool_call=False)

        events = await run_agent(make_context(llm, tools=(echo_tool,)), queue_manager)

        assert events[1].observation == "E:" + payload
        assert llm.calls[1][-1]["content"] == (
            f"工具: echo\n执行结果: E:{payload}\n==========\n\n"
        )

    @pytest.mark.asyncio
    async def test_trivial_answer(self, queue_manager):
        """A short answer never reaches the mode threshold and is emitted once."""
        llm = FakeChatModel(streams=[["hel", "lo"]], supports_tool_call=False)

        events = await run_agent(make_context(llm), queue_manager)

        assert kinds(events) == [QueueEvent.AGENT_MESSAGE, QueueEvent.AGENT_END]
        assert events[0].answer == "hello"

    @pytest.mark.asyncio
    async def test_system_prompt_lists_tools(self, queue_manager, echo_tool):
        llm = FakeChatModel(streams=[["ok"]], supports_tool_call=False)

        await run_agent(make_context(llm, tools=(echo_tool,)), queue_manager)

        system_prompt = llm.calls[0][0]["content"]
        assert 'echo - Echo the input back, args: {"x":' in system_prompt


class TestStreaming:
    """Coalescing of streamed answers."""

    @pytest.mark.asyncio
    async def test_chunks_share_one_id(self, queue_manager):
        llm = FakeChatModel(streams=[["Hel", "lo wor", "ld!"]], supports_tool_call=False)

        events = await run_agent(make_context(llm), queue_manager)

        messages = [e for e in events if e.event == QueueEvent.AGENT_MESSAGE]
        assert "".join(m.answer for m in messages) == "Hello world!"
        assert len({m.id for m in messages}) == 1
        assert messages[0].answer == "Hello wor"
        # Closing chunk carries the step accounting
        assert messages[-1].answer == ""
        assert messages[-1].total_token_count > 0

    @pytest.mark.asyncio
    async def test_threshold_inside_chunk(self, queue_manager):
        """The prefix is emitted exactly once when the threshold lands mid-chunk."""
        llm = FakeChatModel(streams=[["Hi", " there, friend"]], supports_tool_call=False)

        events = await run_agent(make_context(llm), queue_manager)

        answers = [e.answer for e in events if e.event == QueueEvent.AGENT_MESSAGE]
        assert answers == ["Hi there, friend", ""]

    @pytest.mark.asyncio
    async def test_unparseable_tool_call_falls_back_to_message(self, queue_manager, echo_tool):
        raw = "```json\n{not json}\n```"
        llm = FakeChatModel(streams=[[raw]], supports_tool_call=False)

        events = await run_agent(make_context(llm, tools=(echo_tool,)), queue_manager)

        assert kinds(events) == [QueueEvent.AGENT_MESSAGE, QueueEvent.AGENT_END]
        assert events[0].answer == raw
        assert len(llm.calls) == 1

    @pytest.mark.asyncio
    async def test_stream_error_is_terminal(self, queue_manager):
        llm = FakeChatModel(
            streams=[["Hello world", {"type": "error", "message": "overloaded"}]],
            supports_tool_call=False,
        )

        events = await run_agent(make_context(llm), queue_manager)

        assert kinds(events) == [QueueEvent.AGENT_MESSAGE, QueueEvent.ERROR]
        assert events[-1].observation == "overloaded"

    @pytest.mark.asyncio
    async def test_output_review_per_chunk(self, queue_manager):
        llm = FakeChatModel(streams=[["Nothing ", "SECRET here"]], supports_tool_call=False)
        review = ReviewConfig(enable=True, keywords=("secret",), outputs_enable=True)

        events = await run_agent(make_context(llm, review_config=review), queue_manager)

        answer = "".join(e.answer for e in events if e.event == QueueEvent.AGENT_MESSAGE)
        assert answer == "Nothing ** here"

    @pytest.mark.asyncio
    async def test_invoke_merges_chunks(self, queue_manager):
        llm = FakeChatModel(streams=[["Hel", "lo wor", "ld!"]], supports_tool_call=False)
        agent = ReACTAgent(make_context(llm), queue_manager)

        result = await agent.invoke()

        assert result.answer == "Hello world!"
        messages = [t for t in result.agent_thoughts if t.event == QueueEvent.AGENT_MESSAGE]
        assert len(messages) == 1
        assert messages[0].answer == "Hello world!"
        assert messages[0].total_token_count > 0
