"""
ReACT Agent - prompt based tool calling variant

Used when the chat model has no native function calling or no tool is
bound. The system prompt lists the tools and teaches the model to answer
with exactly one fenced block when it wants a tool:

    ```json
    {"name": "<tool>", "args": {...}}
    ```

The model output is streamed. Once 7 bytes have arrived the agent decides
whether a tool call is forming (content starts with ```json) or a normal
answer is being written, which is then forwarded chunk by chunk.
"""

import json
import re
import time
from typing import Any

from agent_engine.core.domain.base_agent import BaseAgent
from agent_engine.core.domain.errors import LLMCallError
from agent_engine.core.domain.events import AgentThought, QueueEvent, new_event_id
from agent_engine.core.domain.messages import assistant_message, user_message
from agent_engine.core.domain.models import AgentState
from agent_engine.core.prompts.agent_prompts import (
    REACT_AGENT_SYSTEM_PROMPT_TEMPLATE,
    REACT_OBSERVATION_TEMPLATE,
    render_system_prompt,
)
from agent_engine.infrastructure.tools.tool_converter import (
    assistant_tool_calls_to_message,
    new_tool_call,
    tools_to_description,
)

TOOL_CALL_PREFIX = "```json"
_TOOL_CALL_PATTERN = re.compile(r"```json\s*\n([\s\S]+?)```", re.MULTILINE)

_MODE_THOUGHT = "thought"
_MODE_MESSAGE = "message"


def parse_tool_call(content: str) -> dict[str, Any] | None:
    """
    Extract {"name", "args"} from the first fenced json block.

    Returns:
        The parsed tool call, or None when there is no parseable call
    """
    match = _TOOL_CALL_PATTERN.search(content)
    if match is None:
        return None
    try:
        data = json.loads(match.group(1).strip())
    except json.JSONDecodeError:
        return None

    if not isinstance(data, dict) or not isinstance(data.get("name"), str):
        return None
    args = data.get("args", {})
    if not isinstance(args, dict):
        return None
    return {"name": data["name"], "args": args}


class ReACTAgent(BaseAgent):
    """
    Agent driver using in-band JSON tool calls.

    After each tool step the assistant/tool message group is folded into an
    assistant message with the called tools and a user message with their
    results, so the final prompt never contains tool-role messages.
    """

    component_name = "react_agent"

    def _system_prompt(self, state: AgentState) -> str:
        return render_system_prompt(
            REACT_AGENT_SYSTEM_PROMPT_TEMPLATE,
            preset_prompt=self.context.preset_prompt,
            long_term_memory=state.long_term_memory,
            tool_description=tools_to_description(self.tools.values()),
        )

    async def _llm_step(self, state: AgentState) -> bool:
        start = time.perf_counter()
        prompt = list(state.messages)
        event_id = new_event_id()
        gathered = ""
        mode: str | None = None
        usage: dict[str, Any] = {}

        self.logger.info(
            "agent.llm_step", task_id=state.task_id, iteration=state.iteration_count
        )
        async for chunk in self.context.llm.complete_stream(prompt):
            chunk_type = chunk.get("type")
            if chunk_type == "error":
                raise LLMCallError(chunk.get("message", "LLM stream failed"))
            if chunk_type == "done":
                usage = chunk.get("usage") or {}
                continue
            if chunk_type != "token":
                continue

            content = chunk.get("content") or ""
            gathered += content

            if mode is None:
                stripped = gathered.strip()
                if len(stripped.encode()) < len(TOOL_CALL_PREFIX):
                    continue
                if stripped.startswith(TOOL_CALL_PREFIX):
                    mode = _MODE_THOUGHT
                else:
                    mode = _MODE_MESSAGE
                    # Prefix up to and including this chunk, emitted once
                    self._publish_message(state, event_id, gathered, time.perf_counter() - start)
                continue

            if mode == _MODE_MESSAGE and content:
                self._publish_message(state, event_id, content, time.perf_counter() - start)

        state.iteration_count += 1
        latency = time.perf_counter() - start

        if mode == _MODE_THOUGHT:
            tool_call = parse_tool_call(gathered)
            if tool_call is not None:
                state.messages.append(
                    assistant_tool_calls_to_message(
                        [
                            new_tool_call(
                                tool_call["name"],
                                json.dumps(tool_call["args"], ensure_ascii=False),
                            )
                        ],
                        gathered,
                    )
                )
                self.queue_manager.publish(
                    state.task_id,
                    AgentThought(
                        id=event_id,
                        task_id=state.task_id,
                        event=QueueEvent.AGENT_THOUGHT,
                        thought=gathered,
                        latency=latency,
                        **self._accounting(prompt, gathered, usage),
                    ),
                )
                return True

            self.logger.warning("react.parse_failed", task_id=state.task_id)

        if mode == _MODE_MESSAGE:
            # Closing chunk of the coalesced answer carries the final figures
            self._publish_message(
                state, event_id, "", latency, **self._accounting(prompt, gathered, usage)
            )
        else:
            # Undecided (short answer) or unparseable tool call
            self._publish_message(
                state, event_id, gathered, latency, **self._accounting(prompt, gathered, usage)
            )

        state.messages.append(assistant_message(self._review(gathered)))
        return False

    def _publish_message(
        self,
        state: AgentState,
        event_id: str,
        content: str,
        latency: float,
        **accounting: Any,
    ) -> None:
        text = self._review(content)
        self.queue_manager.publish(
            state.task_id,
            AgentThought(
                id=event_id,
                task_id=state.task_id,
                event=QueueEvent.AGENT_MESSAGE,
                thought=text,
                answer=text,
                latency=latency,
                **accounting,
            ),
        )

    def _after_tools(self, state: AgentState) -> None:
        """Fold the trailing assistant + tool messages into assistant + user."""
        index = len(state.messages) - 1
        while index >= 0 and state.messages[index].get("role") == "tool":
            index -= 1
        assistant = state.messages[index]
        tool_messages = state.messages[index + 1 :]
        del state.messages[index:]

        calls = []
        for tool_call in assistant.get("tool_calls") or []:
            function = tool_call.get("function", {})
            try:
                args = json.loads(function.get("arguments") or "{}")
            except json.JSONDecodeError:
                args = {}
            calls.append({"name": function.get("name", ""), "args": args})

        observations = "".join(
            REACT_OBSERVATION_TEMPLATE.format(
                tool=message.get("name", ""), observation=message.get("content", "")
            )
            for message in tool_messages
        )
        state.messages.append(
            assistant_message(f"```json\n{json.dumps(calls, ensure_ascii=False)}\n```")
        )
        state.messages.append(user_message(observations))
