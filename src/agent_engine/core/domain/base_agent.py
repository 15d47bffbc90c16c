"""
Base Agent - shared control flow of the agent drivers

One agent instance drives one user turn:

    ENTER -> PRESET_REVIEW -> MEMORY_INJECT -> LOOP_HEAD -> LLM_STEP -> TOOL_STEP -> LOOP_HEAD ...

- PRESET_REVIEW: a query containing a review keyword is answered with the
  preset response; no model or tool is called
- MEMORY_INJECT: emits the long-term memory recall and builds the prompt
- LOOP_HEAD: once the iteration budget is spent, answers with the
  max-iteration response
- LLM_STEP: variant specific (native function calling or ReACT)
- TOOL_STEP: executes every tool call of the last assistant message

Every exception raised while running is turned into one terminal error
event; a normal run ends with agent_end. The run stops emitting as soon as
the queue manager reports the task inactive (stop or timeout).
"""

import asyncio
import dataclasses
import time
from abc import ABC, abstractmethod
from typing import Any

import structlog

from agent_engine.core.domain.agent_queue_manager import AgentQueueManager, TaskStream
from agent_engine.core.domain.errors import AgentValidationError
from agent_engine.core.domain.events import (
    AgentResult,
    AgentThought,
    QueueEvent,
    new_event_id,
)
from agent_engine.core.domain.messages import (
    assistant_message,
    estimate_tokens,
    estimate_text_tokens,
    system_message,
    user_message,
)
from agent_engine.core.domain.models import (
    DATASET_RETRIEVAL_TOOL_NAME,
    AgentState,
    TurnContext,
)
from agent_engine.core.domain.review import contains_keyword, review_output
from agent_engine.core.interfaces.tools import ToolProtocol
from agent_engine.core.prompts.agent_prompts import MAX_ITERATION_RESPONSE
from agent_engine.infrastructure.tools.tool_converter import tool_result_to_message


class BaseAgent(ABC):
    """
    Shared driver logic for both agent variants.

    Subclasses implement the system prompt and the LLM step, and may
    post-process the prompt after a tool step.
    """

    component_name = "agent"

    def __init__(self, context: TurnContext, queue_manager: AgentQueueManager):
        """
        Args:
            context: Immutable inputs of the turn
            queue_manager: Queue manager the events are published to
        """
        self.context = context
        self.queue_manager = queue_manager
        # Last declaration wins on name collision
        self.tools: dict[str, ToolProtocol] = {tool.name: tool for tool in context.tools}
        self.logger = structlog.get_logger().bind(component=self.component_name)
        self._run_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def stream(self, task_id: str | None = None) -> TaskStream:
        """
        Start the run and return its event stream.

        Args:
            task_id: Routing key of the run (generated when omitted)

        Returns:
            TaskStream yielding the events of the run up to the terminal one
        """
        task_id = task_id or new_event_id()
        events = await self.queue_manager.listen(
            task_id, self.context.user_id, self.context.invoke_from
        )

        state = AgentState(
            task_id=task_id,
            history=list(self.context.history),
            long_term_memory=(
                self.context.long_term_memory if self.context.enable_long_term_memory else ""
            ),
        )
        self._run_task = asyncio.create_task(self._run(state), name=f"agent-run-{task_id}")
        return events

    async def invoke(self, task_id: str | None = None) -> AgentResult:
        """
        Run to completion and aggregate the events into an AgentResult.

        agent_message events sharing an id are merged, every other event
        kind overwrites by id, pings are skipped.
        """
        result = AgentResult(query=self.context.query, image_urls=list(self.context.image_urls))
        thoughts: dict[str, AgentThought] = {}

        async for event in await self.stream(task_id):
            if event.event == QueueEvent.PING:
                continue

            if event.event == QueueEvent.AGENT_MESSAGE:
                existing = thoughts.get(event.id)
                if existing is None:
                    thoughts[event.id] = dataclasses.replace(event)
                else:
                    existing.thought += event.thought
                    existing.answer += event.answer
                    existing.latency = event.latency
                    if event.total_token_count:
                        _copy_accounting(event, existing)
                result.answer += event.answer
                continue

            thoughts[event.id] = event
            if event.event in (QueueEvent.STOP, QueueEvent.TIMEOUT, QueueEvent.ERROR):
                result.status = event.event
                result.error = event.observation if event.event == QueueEvent.ERROR else ""

        result.agent_thoughts = list(thoughts.values())
        for thought in result.agent_thoughts:
            if thought.event == QueueEvent.AGENT_MESSAGE and thought.message:
                result.message = thought.message
                break
        result.latency = sum(thought.latency for thought in result.agent_thoughts)
        return result

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def _run(self, state: AgentState) -> None:
        self.logger.info("agent.run.started", task_id=state.task_id)
        try:
            await self._process(state)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(
                "agent.run.failed",
                task_id=state.task_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.queue_manager.publish_error(state.task_id, e)
            return

        self.queue_manager.publish(
            state.task_id,
            AgentThought(id=new_event_id(), task_id=state.task_id, event=QueueEvent.AGENT_END),
        )
        self.logger.info(
            "agent.run.completed", task_id=state.task_id, iterations=state.iteration_count
        )

    async def _process(self, state: AgentState) -> None:
        if self._preset_review(state):
            return

        self._recall_memory(state)
        state.messages = self._build_prompt(state)

        while self._is_active(state):
            if state.iteration_count >= self.context.max_iteration_count:
                self._answer_max_iteration(state)
                return

            needs_tool = await self._llm_step(state)
            if not needs_tool or not self._is_active(state):
                return

            await self._tool_step(state)
            self._after_tools(state)

    def _is_active(self, state: AgentState) -> bool:
        return self.queue_manager.is_active(state.task_id)

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def _preset_review(self, state: AgentState) -> bool:
        """Answer with the preset response when the query hits a keyword."""
        review = self.context.review_config
        if not review.reviews_inputs or not contains_keyword(self.context.query, review.keywords):
            return False

        self.logger.info("review.input_blocked", task_id=state.task_id)
        self.queue_manager.publish(
            state.task_id,
            AgentThought(
                id=new_event_id(),
                task_id=state.task_id,
                event=QueueEvent.AGENT_MESSAGE,
                thought=review.preset_response,
                answer=review.preset_response,
                message=[user_message(self.context.query)],
            ),
        )
        return True

    def _recall_memory(self, state: AgentState) -> None:
        if not state.long_term_memory:
            return
        self.queue_manager.publish(
            state.task_id,
            AgentThought(
                id=new_event_id(),
                task_id=state.task_id,
                event=QueueEvent.LONG_TERM_MEMORY_RECALL,
                observation=state.long_term_memory,
            ),
        )

    def _build_prompt(self, state: AgentState) -> list[dict[str, Any]]:
        """
        Build the initial prompt: system, history, then the user query.

        Raises:
            AgentValidationError: History is not made of user/assistant pairs
        """
        if len(state.history) % 2 != 0:
            raise AgentValidationError("history must consist of user/assistant message pairs")

        image_urls = self.context.image_urls if self.context.llm.supports_image_input else ()
        return [
            system_message(self._system_prompt(state)),
            *state.history,
            user_message(self.context.query, image_urls),
        ]

    def _answer_max_iteration(self, state: AgentState) -> None:
        self.logger.warning(
            "agent.max_iterations",
            task_id=state.task_id,
            max_iteration_count=self.context.max_iteration_count,
        )
        answer = self._review(MAX_ITERATION_RESPONSE)
        self.queue_manager.publish(
            state.task_id,
            AgentThought(
                id=new_event_id(),
                task_id=state.task_id,
                event=QueueEvent.AGENT_MESSAGE,
                thought=answer,
                answer=answer,
            ),
        )
        state.messages.append(assistant_message(answer))

    async def _tool_step(self, state: AgentState) -> None:
        """Execute every tool call of the last assistant message, in order."""
        tool_calls = state.messages[-1].get("tool_calls") or []
        for tool_call in tool_calls:
            function = tool_call.get("function", {})
            name = function.get("name", "")
            arguments = function.get("arguments") or "{}"

            start = time.perf_counter()
            observation = await self._invoke_tool(name, arguments)
            latency = time.perf_counter() - start

            event = (
                QueueEvent.DATASET_RETRIEVAL
                if name == DATASET_RETRIEVAL_TOOL_NAME
                else QueueEvent.AGENT_ACTION
            )
            self.queue_manager.publish(
                state.task_id,
                AgentThought(
                    id=new_event_id(),
                    task_id=state.task_id,
                    event=event,
                    tool=name,
                    tool_input={"args": arguments},
                    observation=observation,
                    latency=latency,
                ),
            )
            state.messages.append(tool_result_to_message(tool_call.get("id", ""), name, observation))

    async def _invoke_tool(self, name: str, arguments: str) -> str:
        tool = self.tools.get(name)
        if tool is None:
            self.logger.warning("tool_not_found", tool=name)
            return f"tool not found: {name}"

        self.logger.info("tool_execute", tool=name)
        try:
            observation = await tool.invoke(arguments)
        except Exception as e:
            self.logger.error("tool_exception", tool=name, error=str(e))
            return f"tool error: {e}"

        self.logger.info("tool_complete", tool=name)
        return observation

    def _after_tools(self, state: AgentState) -> None:
        """Hook run after the tool step; the native variant keeps tool messages."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _review(self, text: str) -> str:
        return review_output(text, self.context.review_config)

    def _accounting(
        self,
        prompt: list[dict[str, Any]],
        answer: str,
        usage: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Token counts and price of one LLM step as AgentThought fields."""
        usage = usage or {}
        input_tokens = usage.get("prompt_tokens") or estimate_tokens(prompt)
        output_tokens = usage.get("completion_tokens") or estimate_text_tokens(answer)
        input_price, output_price, unit = self.context.llm.pricing
        return {
            "message": list(prompt),
            "message_token_count": input_tokens,
            "message_unit_price": input_price,
            "message_price_unit": unit,
            "answer_token_count": output_tokens,
            "answer_unit_price": output_price,
            "answer_price_unit": unit,
            "total_token_count": input_tokens + output_tokens,
            "total_price": (input_tokens * input_price + output_tokens * output_price) * unit,
        }

    @abstractmethod
    def _system_prompt(self, state: AgentState) -> str:
        """Render the system prompt of the variant."""

    @abstractmethod
    async def _llm_step(self, state: AgentState) -> bool:
        """
        Run one LLM step.

        Appends the produced assistant message to state.messages and
        increments state.iteration_count.

        Returns:
            True if the step produced tool calls
        """


def _copy_accounting(source: AgentThought, target: AgentThought) -> None:
    for name in (
        "message",
        "message_token_count",
        "message_unit_price",
        "message_price_unit",
        "answer_token_count",
        "answer_unit_price",
        "answer_price_unit",
        "total_token_count",
        "total_price",
    ):
        setattr(target, name, getattr(source, name))
