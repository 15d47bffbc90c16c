"""
Function Call Agent - native tool calling variant

Used when the chat model supports native function calling and at least
one tool is bound. The model is bound to the tool schemas once per run;
every LLM step is a single non-streaming completion.
"""

import time

from agent_engine.core.domain.agent_queue_manager import AgentQueueManager
from agent_engine.core.domain.base_agent import BaseAgent
from agent_engine.core.domain.errors import LLMCallError
from agent_engine.core.domain.events import AgentThought, QueueEvent, new_event_id
from agent_engine.core.domain.messages import assistant_message, tool_calls_to_text
from agent_engine.core.domain.models import AgentState, TurnContext
from agent_engine.core.prompts.agent_prompts import (
    AGENT_SYSTEM_PROMPT_TEMPLATE,
    render_system_prompt,
)
from agent_engine.infrastructure.tools.tool_converter import (
    assistant_tool_calls_to_message,
    tools_to_openai_format,
)


class FunctionCallAgent(BaseAgent):
    """
    Agent driver using native function calling.

    Tool results are appended as tool-role messages right after the
    assistant message that requested them.
    """

    component_name = "function_call_agent"

    def __init__(self, context: TurnContext, queue_manager: AgentQueueManager):
        super().__init__(context, queue_manager)
        if self.tools:
            self.llm = context.llm.bind_tools(tools_to_openai_format(self.tools.values()))
        else:
            self.llm = context.llm

    def _system_prompt(self, state: AgentState) -> str:
        return render_system_prompt(
            AGENT_SYSTEM_PROMPT_TEMPLATE,
            preset_prompt=self.context.preset_prompt,
            long_term_memory=state.long_term_memory,
        )

    async def _llm_step(self, state: AgentState) -> bool:
        start = time.perf_counter()
        prompt = list(state.messages)

        self.logger.info(
            "agent.llm_step", task_id=state.task_id, iteration=state.iteration_count
        )
        result = await self.llm.complete(prompt)
        if not result.get("success"):
            raise LLMCallError(result.get("error", "LLM call failed"), result.get("error_type"))

        latency = time.perf_counter() - start
        content = result.get("content") or ""
        tool_calls = result.get("tool_calls") or []
        state.iteration_count += 1

        if tool_calls:
            thought = tool_calls_to_text(tool_calls)
            state.messages.append(assistant_tool_calls_to_message(tool_calls, content or None))
            self.queue_manager.publish(
                state.task_id,
                AgentThought(
                    id=new_event_id(),
                    task_id=state.task_id,
                    event=QueueEvent.AGENT_THOUGHT,
                    thought=thought,
                    latency=latency,
                    **self._accounting(prompt, thought, result.get("usage")),
                ),
            )
            return True

        answer = self._review(content)
        state.messages.append(assistant_message(answer))
        self.queue_manager.publish(
            state.task_id,
            AgentThought(
                id=new_event_id(),
                task_id=state.task_id,
                event=QueueEvent.AGENT_MESSAGE,
                thought=answer,
                answer=answer,
                latency=latency,
                **self._accounting(prompt, content, result.get("usage")),
            ),
        )
        return False
