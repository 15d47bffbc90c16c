"""
Application Layer - Agent Executor Service

This module provides the service layer orchestrating agent runs.
Both CLI and API entrypoints use this unified execution logic.

The AgentExecutor:
- Picks the agent variant for a TurnContext (native function calling or ReACT)
- Streams a turn (events) or invokes it (aggregated AgentResult)
- Assembles application turns by app id and records finished turns
- Forwards out-of-band stop requests to the queue manager
"""

from collections.abc import AsyncIterator

import structlog

from agent_engine.application.assembler import TurnAssembler
from agent_engine.application.settings import EngineSettings
from agent_engine.core.domain.agent_queue_manager import AgentQueueManager, TaskStream
from agent_engine.core.domain.base_agent import BaseAgent
from agent_engine.core.domain.events import AgentResult, AgentThought, QueueEvent, new_event_id
from agent_engine.core.domain.function_call_agent import FunctionCallAgent
from agent_engine.core.domain.models import InvokeFrom, TurnContext
from agent_engine.core.domain.react_agent import ReACTAgent
from agent_engine.core.interfaces.conversation import ConversationStoreProtocol
from agent_engine.infrastructure.cache.memory_cache import InMemoryTaskCache
from agent_engine.infrastructure.llm.model_registry import ModelRegistry
from agent_engine.infrastructure.persistence.file_app_registry import FileAppRegistry
from agent_engine.infrastructure.persistence.memory_conversation_store import (
    InMemoryConversationStore,
)

logger = structlog.get_logger()

# Conversation status recorded for each terminal event
_TURN_STATUS = {
    QueueEvent.AGENT_END: "normal",
    QueueEvent.STOP: "stop",
    QueueEvent.TIMEOUT: "timeout",
    QueueEvent.ERROR: "error",
}


class AgentExecutor:
    """
    Service layer orchestrating agent runs.

    Args:
        queue_manager: Process-wide task queue manager
        assembler: Builds TurnContexts for application turns (required for *_app methods)
        app_registry: Application config lookup (required for *_app methods)
        conversation_store: Where finished application turns are recorded
    """

    def __init__(
        self,
        queue_manager: AgentQueueManager,
        assembler: TurnAssembler | None = None,
        app_registry: FileAppRegistry | None = None,
        conversation_store: ConversationStoreProtocol | None = None,
    ):
        self.queue_manager = queue_manager
        self.assembler = assembler
        self.app_registry = app_registry
        self.conversation_store = conversation_store
        self.logger = logger.bind(component="agent_executor")

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "AgentExecutor":
        """Wire the default in-process stack from settings."""
        queue_manager = AgentQueueManager(
            InMemoryTaskCache(),
            capacity=settings.queue_capacity,
            ping_interval=settings.ping_interval,
            stop_poll_interval=settings.stop_poll_interval,
            listen_timeout=settings.listen_timeout,
            task_belong_ttl=settings.task_belong_ttl,
            task_stop_ttl=settings.task_stop_ttl,
        )
        app_registry = FileAppRegistry(
            apps_dir=settings.apps_dir,
            api_tools_dir=settings.api_tools_dir,
            workflows_dir=settings.workflows_dir,
            defaults={
                "dialog_round": settings.default_dialog_round,
                "max_iteration_count": settings.default_max_iteration_count,
            },
        )
        conversation_store = InMemoryConversationStore()
        assembler = TurnAssembler(
            model_registry=ModelRegistry(settings.llm_config_path),
            app_registry=app_registry,
            conversation_store=conversation_store,
            history_max_token_limit=settings.history_max_token_limit,
        )
        return cls(
            queue_manager,
            assembler=assembler,
            app_registry=app_registry,
            conversation_store=conversation_store,
        )

    def create_agent(self, context: TurnContext) -> BaseAgent:
        """Native function calling when supported and tools are bound, else ReACT."""
        if context.supports_tool_call and context.tools:
            return FunctionCallAgent(context, self.queue_manager)
        return ReACTAgent(context, self.queue_manager)

    async def stream_turn(self, context: TurnContext, task_id: str | None = None) -> TaskStream:
        """Start a turn and return its event stream."""
        agent = self.create_agent(context)
        self.logger.info(
            "turn.stream.started",
            agent=type(agent).__name__,
            user_id=context.user_id,
            invoke_from=context.invoke_from.value,
        )
        return await agent.stream(task_id)

    async def invoke_turn(self, context: TurnContext, task_id: str | None = None) -> AgentResult:
        """Run a turn to completion (block mode)."""
        agent = self.create_agent(context)
        self.logger.info("turn.invoke.started", agent=type(agent).__name__, user_id=context.user_id)
        result = await agent.invoke(task_id)
        self.logger.info(
            "turn.invoke.completed",
            status=result.status.value,
            latency=round(result.latency, 3),
            thoughts=len(result.agent_thoughts),
        )
        return result

    async def stop_task(self, task_id: str, user_id: str, invoke_from: InvokeFrom) -> None:
        """
        Request a running task to stop.

        Raises:
            UnauthorizedStopError: The caller does not own the task
        """
        await self.queue_manager.request_stop(task_id, user_id, invoke_from)

    async def stream_app(
        self,
        app_id: str,
        user_id: str,
        query: str,
        image_urls: list[str] | None = None,
        invoke_from: InvokeFrom = InvokeFrom.DEBUGGER,
        conversation_id: str | None = None,
        task_id: str | None = None,
    ) -> AsyncIterator[AgentThought]:
        """
        Assemble an application turn and stream its events.

        The finished turn is recorded in the conversation store once the
        terminal event has been delivered.

        Raises:
            AppNotFoundError: No application with app_id exists
        """
        context = await self._assemble(
            app_id, user_id, query, image_urls, invoke_from, conversation_id
        )
        task_id = task_id or new_event_id()
        events = await self.stream_turn(context, task_id)
        return self._record_stream(events, query, image_urls, conversation_id)

    async def invoke_app(
        self,
        app_id: str,
        user_id: str,
        query: str,
        image_urls: list[str] | None = None,
        invoke_from: InvokeFrom = InvokeFrom.DEBUGGER,
        conversation_id: str | None = None,
        task_id: str | None = None,
    ) -> AgentResult:
        """
        Assemble an application turn and run it to completion.

        Raises:
            AppNotFoundError: No application with app_id exists
        """
        context = await self._assemble(
            app_id, user_id, query, image_urls, invoke_from, conversation_id
        )
        result = await self.invoke_turn(context, task_id)
        status = _TURN_STATUS.get(result.status, "normal")
        await self._record_turn(conversation_id, query, image_urls, result.answer, status)
        return result

    async def _assemble(
        self,
        app_id: str,
        user_id: str,
        query: str,
        image_urls: list[str] | None,
        invoke_from: InvokeFrom,
        conversation_id: str | None,
    ) -> TurnContext:
        if self.assembler is None or self.app_registry is None:
            raise RuntimeError("AgentExecutor was created without an assembler")
        app = self.app_registry.get_app(app_id)
        return await self.assembler.assemble(
            app,
            user_id,
            query,
            image_urls=image_urls,
            invoke_from=invoke_from,
            conversation_id=conversation_id,
        )

    async def _record_stream(
        self,
        events: TaskStream,
        query: str,
        image_urls: list[str] | None,
        conversation_id: str | None,
    ) -> AsyncIterator[AgentThought]:
        answer = ""
        status = "normal"
        async for event in events:
            if event.event == QueueEvent.AGENT_MESSAGE:
                answer += event.answer
            elif event.event.is_terminal:
                status = _TURN_STATUS[event.event]
            yield event
        await self._record_turn(conversation_id, query, image_urls, answer, status)

    async def _record_turn(
        self,
        conversation_id: str | None,
        query: str,
        image_urls: list[str] | None,
        answer: str,
        status: str,
    ) -> None:
        if not conversation_id or self.conversation_store is None:
            return
        await self.conversation_store.add_message(
            conversation_id,
            {
                "query": query,
                "image_urls": list(image_urls or []),
                "answer": answer,
                "status": status,
            },
        )
