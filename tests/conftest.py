"""Shared test fixtures."""

import pytest
from fakes import EchoTool

from agent_engine.core.domain.agent_queue_manager import AgentQueueManager
from agent_engine.infrastructure.cache.memory_cache import InMemoryTaskCache


@pytest.fixture
def task_cache():
    return InMemoryTaskCache()


@pytest.fixture
def queue_manager(task_cache):
    """Queue manager with fast stop polling and no pings during short tests."""
    return AgentQueueManager(
        task_cache,
        ping_interval=60.0,
        stop_poll_interval=0.01,
        listen_timeout=10.0,
    )


@pytest.fixture
def echo_tool():
    return EchoTool()
