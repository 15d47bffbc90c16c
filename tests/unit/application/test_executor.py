"""
Unit Tests for AgentExecutor and EngineSettings
"""

import asyncio

import pytest
from fakes import EchoTool, FakeChatModel, make_context, text_response

from agent_engine.application.assembler import TurnAssembler
from agent_engine.application.executor import AgentExecutor
from agent_engine.application.settings import EngineSettings
from agent_engine.core.domain.errors import AppNotFoundError, UnauthorizedStopError
from agent_engine.core.domain.events import QueueEvent
from agent_engine.core.domain.function_call_agent import FunctionCallAgent
from agent_engine.core.domain.models import InvokeFrom
from agent_engine.core.domain.react_agent import ReACTAgent
from agent_engine.infrastructure.persistence.file_app_registry import FileAppRegistry
from agent_engine.infrastructure.persistence.memory_conversation_store import (
    InMemoryConversationStore,
)

LLM_CONFIG = """
models:
  main: gpt-4o-mini
model_features:
  gpt-4o-mini: [tool_call]
"""


class FakeModelRegistry:
    def __init__(self, model):
        self.model = model

    def get_model(self, model_config):
        return self.model


@pytest.fixture
def app_registry(tmp_path):
    apps_dir = tmp_path / "apps"
    apps_dir.mkdir()
    (apps_dir / "plain.yaml").write_text("name: plain\n", encoding="utf-8")
    return FileAppRegistry(apps_dir=str(apps_dir))


def make_executor(queue_manager, app_registry, model) -> AgentExecutor:
    store = InMemoryConversationStore()
    assembler = TurnAssembler(
        model_registry=FakeModelRegistry(model),
        app_registry=app_registry,
        conversation_store=store,
    )
    return AgentExecutor(
        queue_manager,
        assembler=assembler,
        app_registry=app_registry,
        conversation_store=store,
    )


class TestVariantSelection:
    def test_native_when_supported_and_tools_bound(self, queue_manager):
        executor = AgentExecutor(queue_manager)
        context = make_context(FakeChatModel(supports_tool_call=True), tools=(EchoTool(),))

        assert isinstance(executor.create_agent(context), FunctionCallAgent)

    def test_react_without_tools(self, queue_manager):
        executor = AgentExecutor(queue_manager)
        context = make_context(FakeChatModel(supports_tool_call=True))

        assert isinstance(executor.create_agent(context), ReACTAgent)

    def test_react_without_native_support(self, queue_manager):
        executor = AgentExecutor(queue_manager)
        context = make_context(FakeChatModel(supports_tool_call=False), tools=(EchoTool(),))

        assert isinstance(executor.create_agent(context), ReACTAgent)


class TestTurns:
    @pytest.mark.asyncio
    async def test_invoke_turn(self, queue_manager):
        executor = AgentExecutor(queue_manager)
        llm = FakeChatModel(streams=[["hello"]])

        result = await executor.invoke_turn(make_context(llm))

        assert result.answer == "hello"
        assert result.status == QueueEvent.AGENT_MESSAGE

    @pytest.mark.asyncio
    async def test_stream_app_records_turn(self, queue_manager, app_registry):
        llm = FakeChatModel(streams=[["Hello there!"]])
        executor = make_executor(queue_manager, app_registry, llm)

        events = await executor.stream_app("plain", "u1", "hi", conversation_id="c1")
        received = [event async for event in events]

        assert received[-1].event == QueueEvent.AGENT_END
        stored = await executor.conversation_store.list_messages("c1", 10)
        assert stored[0]["query"] == "hi"
        assert stored[0]["answer"] == "Hello there!"
        assert stored[0]["status"] == "normal"

    @pytest.mark.asyncio
    async def test_history_flows_into_next_turn(self, queue_manager, app_registry):
        llm = FakeChatModel(streams=[["first answer"], ["second answer"]])
        executor = make_executor(queue_manager, app_registry, llm)

        await executor.invoke_app("plain", "u1", "first", conversation_id="c1")
        result = await executor.invoke_app("plain", "u1", "second", conversation_id="c1")

        assert result.answer == "second answer"
        second_prompt = llm.calls[1]
        assert [m["content"] for m in second_prompt[1:]] == ["first", "first answer", "second"]

    @pytest.mark.asyncio
    async def test_error_turn_is_recorded_with_status(self, queue_manager, app_registry):
        llm = FakeChatModel(streams=[[{"type": "error", "message": "down"}]])
        executor = make_executor(queue_manager, app_registry, llm)

        result = await executor.invoke_app("plain", "u1", "hi", conversation_id="c1")

        assert result.status == QueueEvent.ERROR
        stored = await executor.conversation_store.list_messages("c1", 10)
        assert stored[0]["status"] == "error"

    @pytest.mark.asyncio
    async def test_unknown_app(self, queue_manager, app_registry):
        executor = make_executor(queue_manager, app_registry, FakeChatModel())

        with pytest.raises(AppNotFoundError):
            await executor.stream_app("ghost", "u1", "hi")

    @pytest.mark.asyncio
    async def test_app_methods_need_assembler(self, queue_manager):
        with pytest.raises(RuntimeError):
            await AgentExecutor(queue_manager).invoke_app("plain", "u1", "hi")

    @pytest.mark.asyncio
    async def test_stop_task_checks_ownership(self, queue_manager):
        executor = AgentExecutor(queue_manager)
        llm = FakeChatModel(responses=[text_response("late")], delay=5.0)
        context = make_context(llm, tools=(EchoTool(),))

        stream = await executor.stream_turn(context, task_id="t1")
        with pytest.raises(UnauthorizedStopError):
            await executor.stop_task("t1", "intruder", InvokeFrom.DEBUGGER)
        await executor.stop_task("t1", "u1", InvokeFrom.DEBUGGER)

        events = await asyncio.wait_for(_drain(stream), timeout=2)
        assert [event.event for event in events] == [QueueEvent.STOP]
        for task in asyncio.all_tasks():
            if task.get_name() == "agent-run-t1":
                task.cancel()


async def _drain(stream) -> list:
    return [event async for event in stream]


class TestSettings:
    def test_defaults(self):
        settings = EngineSettings()

        assert settings.queue_capacity == 1000
        assert settings.ping_interval == 10.0
        assert settings.listen_timeout == 600.0

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("AGENT_ENGINE_QUEUE_CAPACITY", "5")
        monkeypatch.setenv("AGENT_ENGINE_PING_INTERVAL", "0.5")

        settings = EngineSettings()

        assert settings.queue_capacity == 5
        assert settings.ping_interval == 0.5

    def test_load_from_file(self, tmp_path):
        config = tmp_path / "engine.yaml"
        config.write_text("listen_timeout: 30\nlog_level: DEBUG\n", encoding="utf-8")

        settings = EngineSettings.load_from_file(config)

        assert settings.listen_timeout == 30.0
        assert settings.log_level == "DEBUG"
        assert EngineSettings.load_from_file(tmp_path / "missing.yaml").listen_timeout == 600.0

    def test_from_settings_wires_stack(self, tmp_path):
        llm_config = tmp_path / "llm_config.yaml"
        llm_config.write_text(LLM_CONFIG, encoding="utf-8")
        settings = EngineSettings(
            llm_config_path=str(llm_config),
            apps_dir=str(tmp_path / "apps"),
            queue_capacity=7,
            stop_poll_interval=0.25,
        )

        executor = AgentExecutor.from_settings(settings)

        assert executor.queue_manager.capacity == 7
        assert executor.queue_manager.stop_poll_interval == 0.25
        assert executor.app_registry.apps_dir == tmp_path / "apps"
        assert executor.assembler.model_registry.models == {"main": "gpt-4o-mini"}

    def test_from_settings_applies_app_defaults(self, tmp_path):
        llm_config = tmp_path / "llm_config.yaml"
        llm_config.write_text(LLM_CONFIG, encoding="utf-8")
        settings = EngineSettings(
            llm_config_path=str(llm_config),
            apps_dir=str(tmp_path / "apps"),
            default_max_iteration_count=2,
        )

        executor = AgentExecutor.from_settings(settings)

        assert executor.app_registry.defaults["max_iteration_count"] == 2
