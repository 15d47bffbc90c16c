"""
Unit Tests for the API layer: event serialization, routes and CLI.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fakes import FakeChatModel
from fastapi.testclient import TestClient
from typer.testing import CliRunner

from agent_engine import __version__
from agent_engine.api.cli.main import app as cli_app
from agent_engine.api.serialization import event_to_dict, result_to_dict, sse_frame
from agent_engine.api.server import create_app
from agent_engine.application.assembler import TurnAssembler
from agent_engine.application.executor import AgentExecutor
from agent_engine.core.domain.agent_queue_manager import AgentQueueManager
from agent_engine.core.domain.errors import UnauthorizedStopError
from agent_engine.core.domain.events import AgentResult, AgentThought, QueueEvent
from agent_engine.infrastructure.cache.memory_cache import InMemoryTaskCache
from agent_engine.infrastructure.persistence.file_app_registry import FileAppRegistry
from agent_engine.infrastructure.persistence.memory_conversation_store import (
    InMemoryConversationStore,
)


class FakeModelRegistry:
    def __init__(self, model):
        self.model = model

    def get_model(self, model_config):
        return self.model


def parse_sse(body: str) -> list[tuple[str, dict]]:
    frames = []
    for block in body.strip().split("\n\n"):
        lines = dict(line.split(": ", 1) for line in block.split("\n"))
        frames.append((lines["event"], json.loads(lines["data"])))
    return frames


@pytest.fixture
def executor(tmp_path):
    apps_dir = tmp_path / "apps"
    apps_dir.mkdir()
    (apps_dir / "plain.yaml").write_text("name: plain\n", encoding="utf-8")
    app_registry = FileAppRegistry(apps_dir=str(apps_dir))
    store = InMemoryConversationStore()
    llm = FakeChatModel(streams=[["Hello there!"]])
    return AgentExecutor(
        AgentQueueManager(InMemoryTaskCache(), ping_interval=60.0, stop_poll_interval=0.01),
        assembler=TurnAssembler(FakeModelRegistry(llm), app_registry, store),
        app_registry=app_registry,
        conversation_store=store,
    )


class TestSerialization:
    def test_event_keys(self):
        event = AgentThought(
            id="e1",
            task_id="t1",
            event=QueueEvent.AGENT_ACTION,
            tool="echo",
            tool_input={"args": "{}"},
            observation="E:",
        )

        data = event_to_dict(event, "c1", "m1")

        assert set(data) == {
            "id", "conversation_id", "message_id", "task_id", "event", "thought",
            "answer", "observation", "tool", "tool_input", "latency",
        }
        assert data["event"] == "agent_action"
        assert data["conversation_id"] == "c1"

    def test_totals_only_when_accounted(self):
        event = AgentThought(
            id="e1", task_id="t1", event=QueueEvent.AGENT_MESSAGE,
            total_token_count=12, total_price=0.5,
        )

        data = event_to_dict(event)

        assert data["total_token_count"] == 12
        assert data["total_price"] == 0.5

    def test_sse_frames(self):
        ping = AgentThought(id="p", task_id="t1", event=QueueEvent.PING)
        message = AgentThought(id="m", task_id="t1", event=QueueEvent.AGENT_MESSAGE, answer="你好")

        assert sse_frame(ping) == "event: ping\ndata: {}\n\n"
        frame = sse_frame(message)
        assert frame.startswith("event: agent_message\ndata: ")
        assert frame.endswith("\n\n")
        assert "你好" in frame

    def test_result_totals(self):
        result = AgentResult(
            query="q",
            answer="a",
            agent_thoughts=[
                AgentThought(id="1", task_id="t", event=QueueEvent.AGENT_THOUGHT, total_token_count=3),
                AgentThought(id="2", task_id="t", event=QueueEvent.AGENT_MESSAGE, total_token_count=4),
            ],
        )

        data = result_to_dict(result, "c1")

        assert data["status"] == "agent_message"
        assert data["total_token_count"] == 7
        assert len(data["agent_thoughts"]) == 2


class TestRoutes:
    def test_health(self, executor):
        with TestClient(create_app(executor)) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": __version__}

    def test_chat_stream(self, executor):
        with TestClient(create_app(executor)) as client:
            response = client.post(
                "/api/v1/apps/plain/chat",
                json={"query": "hi", "user_id": "u1", "conversation_id": "c1"},
            )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = parse_sse(response.text)
        assert [kind for kind, _ in frames] == ["agent_message", "agent_message", "agent_end"]
        assert "".join(data["answer"] for _, data in frames) == "Hello there!"
        assert all(data["conversation_id"] == "c1" for _, data in frames)

    def test_chat_block(self, executor):
        with TestClient(create_app(executor)) as client:
            response = client.post(
                "/api/v1/apps/plain/chat",
                json={"query": "hi", "user_id": "u1", "stream": False},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["answer"] == "Hello there!"
        assert body["status"] == "agent_message"

    def test_chat_unknown_app(self, executor):
        with TestClient(create_app(executor)) as client:
            response = client.post(
                "/api/v1/apps/ghost/chat", json={"query": "hi", "user_id": "u1"}
            )

        assert response.status_code == 404

    def test_stop_unknown_task(self, executor):
        with TestClient(create_app(executor)) as client:
            response = client.post("/api/v1/tasks/t-404/stop", json={"user_id": "u1"})

        assert response.status_code == 200
        assert response.json() == {"task_id": "t-404", "status": "stopping"}

    def test_stop_unauthorized(self):
        executor = MagicMock()
        executor.stop_task = AsyncMock(side_effect=UnauthorizedStopError("t1"))
        executor.queue_manager.close = AsyncMock()

        with TestClient(create_app(executor)) as client:
            response = client.post(
                "/api/v1/tasks/t1/stop", json={"user_id": "u2", "invoke_from": "web_app"}
            )

        assert response.status_code == 403
        executor.queue_manager.close.assert_awaited_once()


class TestCli:
    def test_version(self):
        result = CliRunner().invoke(cli_app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output
