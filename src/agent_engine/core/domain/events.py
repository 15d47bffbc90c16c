"""
Domain Events for Agent Execution

This module defines the events an agent run produces while it executes.
Every event is an AgentThought tagged with a QueueEvent kind:
- ping: liveness heartbeat from the queue supervisor
- long_term_memory_recall: injected memory snapshot
- agent_thought: the model decided to call a tool
- agent_action / dataset_retrieval: a tool was executed
- agent_message: a (partial) piece of the final answer
- agent_end / stop / timeout / error: terminal events

Events are ephemeral. Only the aggregated AgentResult is handed to the
persistence collaborators.
"""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class QueueEvent(str, Enum):
    """Kind of event published on a task queue."""

    PING = "ping"
    AGENT_MESSAGE = "agent_message"
    AGENT_THOUGHT = "agent_thought"
    AGENT_ACTION = "agent_action"
    DATASET_RETRIEVAL = "dataset_retrieval"
    LONG_TERM_MEMORY_RECALL = "long_term_memory_recall"
    AGENT_END = "agent_end"
    STOP = "stop"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_EVENTS


TERMINAL_EVENTS = frozenset(
    {QueueEvent.AGENT_END, QueueEvent.STOP, QueueEvent.TIMEOUT, QueueEvent.ERROR}
)


def new_event_id() -> str:
    """Generate a unique event identifier."""
    return str(uuid.uuid4())


@dataclass
class AgentThought:
    """
    A single event observed during an agent run.

    Several agent_message events may share one id; consumers assemble the
    full answer by appending their thought/answer fields in emission order.

    Attributes:
        id: Event identifier (shared across coalesced agent_message chunks)
        task_id: Task that produced the event
        event: Event kind
        thought: Model rationale, raw tool-call record or answer chunk
        answer: Answer chunk (agent_message only)
        observation: Tool result, memory snapshot or error message
        tool: Executed tool name
        tool_input: Tool input, always {"args": <arguments JSON string>}
        message: Prompt messages that produced this step
        latency: Seconds spent producing this event
        created_at: Wall-clock timestamp, set again when published
    """

    id: str
    task_id: str
    event: QueueEvent
    thought: str = ""
    answer: str = ""
    observation: str = ""
    tool: str = ""
    tool_input: dict[str, Any] | None = None

    message: list[dict[str, Any]] = field(default_factory=list)
    message_token_count: int = 0
    message_unit_price: float = 0.0
    message_price_unit: float = 0.0

    answer_token_count: int = 0
    answer_unit_price: float = 0.0
    answer_price_unit: float = 0.0

    total_token_count: int = 0
    total_price: float = 0.0
    latency: float = 0.0

    created_at: float = field(default_factory=time.time)


@dataclass
class AgentResult:
    """
    Aggregated outcome of a finished agent run (block mode).

    Attributes:
        query: The user query of the turn
        answer: Concatenation of all agent_message answers
        image_urls: Images attached to the query
        message: Prompt messages of the final answer step (if recorded)
        agent_thoughts: One entry per distinct event id, pings excluded
        status: agent_message on normal completion, else stop/timeout/error
        error: Error message when status is error
        latency: Sum of event latencies
        created_at: When aggregation started
    """

    query: str
    answer: str = ""
    image_urls: list[str] = field(default_factory=list)
    message: list[dict[str, Any]] = field(default_factory=list)
    agent_thoughts: list[AgentThought] = field(default_factory=list)
    status: QueueEvent = QueueEvent.AGENT_MESSAGE
    error: str = ""
    latency: float = 0.0
    created_at: float = field(default_factory=time.time)
