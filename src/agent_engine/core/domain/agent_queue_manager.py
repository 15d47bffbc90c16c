"""
Agent Queue Manager

Owns one bounded in-memory event queue per task and the supervisor that
keeps it alive. The manager is the single process-wide registry of
task_id -> channel; a subscriber only ever gets a read handle (TaskStream).

Cross-process coordination goes through the task cache:
- task_belong:<task_id> -> "<user_class>-<user_id>" (ownership, set on listen)
- task_stop:<task_id>   -> "1" (written by request_stop, polled by the supervisor)

Supervisor duties per task:
1. Publish a ping every ping_interval seconds
2. Publish a terminal timeout once listen_timeout is exceeded
3. Poll the stop key every stop_poll_interval seconds and publish stop

At most one terminal event is delivered per task: the first terminal
publish closes the channel and removes it, later publishes are rejected.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field

import structlog

from agent_engine.core.domain.errors import UnauthorizedStopError
from agent_engine.core.domain.events import AgentThought, QueueEvent, new_event_id
from agent_engine.core.domain.models import InvokeFrom
from agent_engine.core.interfaces.cache import TaskCacheProtocol

TASK_BELONG_KEY = "task_belong:{task_id}"
TASK_STOP_KEY = "task_stop:{task_id}"

# Marks the end of a task stream
_CLOSED = object()


class TaskStream:
    """
    Read-only async iterator over the events of one task.

    Iteration ends after the terminal event has been delivered.
    """

    def __init__(self, task_id: str, queue: asyncio.Queue):
        self.task_id = task_id
        self._queue = queue
        self._finished = False

    def __aiter__(self) -> AsyncIterator[AgentThought]:
        return self

    async def __anext__(self) -> AgentThought:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            self._finished = True
            raise StopAsyncIteration
        return item


@dataclass
class _TaskChannel:
    queue: asyncio.Queue
    stream: TaskStream
    started_at: float = field(default_factory=time.monotonic)
    supervisor: asyncio.Task | None = None
    closed: bool = False


class AgentQueueManager:
    """
    Per-task event queues with liveness and cancellation.

    Args:
        cache: Shared key-value store for the ownership and stop keys
        capacity: Maximum number of undelivered non-terminal events per task
        ping_interval: Seconds between ping events
        stop_poll_interval: Seconds between stop-key polls
        listen_timeout: Wall-clock budget of a task in seconds
        task_belong_ttl: TTL of the ownership key in seconds
        task_stop_ttl: TTL of the stop key in seconds
    """

    def __init__(
        self,
        cache: TaskCacheProtocol,
        capacity: int = 1000,
        ping_interval: float = 10.0,
        stop_poll_interval: float = 1.0,
        listen_timeout: float = 600.0,
        task_belong_ttl: float = 1800.0,
        task_stop_ttl: float = 600.0,
    ):
        self.cache = cache
        self.capacity = capacity
        self.ping_interval = ping_interval
        self.stop_poll_interval = stop_poll_interval
        self.listen_timeout = listen_timeout
        self.task_belong_ttl = task_belong_ttl
        self.task_stop_ttl = task_stop_ttl
        self._channels: dict[str, _TaskChannel] = {}
        self._lock = asyncio.Lock()
        self.logger = structlog.get_logger().bind(component="queue_manager")

    @staticmethod
    def owner_value(user_id: str, invoke_from: InvokeFrom) -> str:
        return f"{invoke_from.user_class}-{user_id}"

    async def listen(
        self, task_id: str, user_id: str, invoke_from: InvokeFrom
    ) -> TaskStream:
        """
        Return the event stream of a task, creating it on first call.

        The first call also publishes task ownership and starts the
        supervisor. Later calls for a live task return the same stream.
        """
        async with self._lock:
            channel = self._channels.get(task_id)
            if channel is not None:
                return channel.stream

            # Terminal events bypass the capacity check, so the queue itself
            # is unbounded and capacity is enforced in publish().
            queue: asyncio.Queue = asyncio.Queue()
            channel = _TaskChannel(queue=queue, stream=TaskStream(task_id, queue))
            self._channels[task_id] = channel

            await self._publish_ownership(task_id, user_id, invoke_from)
            channel.supervisor = asyncio.create_task(
                self._supervise(task_id, channel), name=f"queue-supervisor-{task_id}"
            )

        self.logger.info("queue.listen", task_id=task_id, invoke_from=invoke_from.value)
        return channel.stream

    def is_active(self, task_id: str) -> bool:
        """Whether the task still accepts events."""
        channel = self._channels.get(task_id)
        return channel is not None and not channel.closed

    def publish(self, task_id: str, event: AgentThought) -> bool:
        """
        Append an event to the task queue.

        Returns:
            True if the event was enqueued. False when the task is closed or
            unknown, or when a non-terminal event was dropped because the
            queue is full.
        """
        channel = self._channels.get(task_id)
        if channel is None or channel.closed:
            self.logger.debug("queue.closed_drop", task_id=task_id, event=event.event.value)
            return False

        event.created_at = time.time()

        if event.event.is_terminal:
            channel.queue.put_nowait(event)
            self.stop_listen(task_id)
            return True

        if channel.queue.qsize() >= self.capacity:
            self.logger.debug("queue.full_drop", task_id=task_id, event=event.event.value)
            return False

        channel.queue.put_nowait(event)
        return True

    def publish_error(self, task_id: str, error: BaseException | str) -> bool:
        """Publish a terminal error event carrying the error message."""
        return self.publish(
            task_id,
            AgentThought(
                id=new_event_id(),
                task_id=task_id,
                event=QueueEvent.ERROR,
                observation=str(error),
            ),
        )

    def stop_listen(self, task_id: str) -> None:
        """Close the task channel and remove it. Safe to call repeatedly."""
        channel = self._channels.pop(task_id, None)
        if channel is None or channel.closed:
            return

        channel.closed = True
        channel.queue.put_nowait(_CLOSED)

        supervisor = channel.supervisor
        if supervisor is not None and supervisor is not asyncio.current_task():
            supervisor.cancel()

        self.logger.info("queue.stop_listen", task_id=task_id)

    async def request_stop(
        self, task_id: str, user_id: str, invoke_from: InvokeFrom
    ) -> None:
        """
        Ask a running task to stop.

        A task without an ownership key has already ended, so the request is
        a no-op. When the cache is unavailable the request is logged and
        dropped.

        Raises:
            UnauthorizedStopError: The caller does not own the task
        """
        try:
            owner = await self.cache.get(TASK_BELONG_KEY.format(task_id=task_id))
        except Exception as e:
            self.logger.warning("kv_unavailable", task_id=task_id, op="get_owner", error=str(e))
            return

        if owner is None:
            self.logger.info("queue.stop_unknown_task", task_id=task_id)
            return

        if owner != self.owner_value(user_id, invoke_from):
            self.logger.warning("queue.stop_unauthorized", task_id=task_id, user_id=user_id)
            raise UnauthorizedStopError(task_id)

        try:
            await self.cache.set(
                TASK_STOP_KEY.format(task_id=task_id), "1", ttl=self.task_stop_ttl
            )
        except Exception as e:
            self.logger.warning("kv_unavailable", task_id=task_id, op="set_stop", error=str(e))
            return

        self.logger.info("queue.stop_requested", task_id=task_id, user_id=user_id)

    async def close(self) -> None:
        """Stop every live task (used on shutdown)."""
        for task_id in list(self._channels):
            self.publish(
                task_id,
                AgentThought(id=new_event_id(), task_id=task_id, event=QueueEvent.STOP),
            )

    async def _publish_ownership(
        self, task_id: str, user_id: str, invoke_from: InvokeFrom
    ) -> None:
        try:
            await self.cache.set_if_absent(
                TASK_BELONG_KEY.format(task_id=task_id),
                self.owner_value(user_id, invoke_from),
                ttl=self.task_belong_ttl,
            )
        except Exception as e:
            self.logger.warning("kv_unavailable", task_id=task_id, op="set_owner", error=str(e))

    async def _is_stop_requested(self, task_id: str) -> bool:
        # Bounded so a hung cache cannot stall pings or the timeout
        try:
            value = await asyncio.wait_for(
                self.cache.get(TASK_STOP_KEY.format(task_id=task_id)),
                timeout=self.stop_poll_interval,
            )
        except asyncio.TimeoutError:
            self.logger.warning("kv_unavailable", task_id=task_id, op="get_stop", error="timeout")
            return False
        except Exception as e:
            self.logger.warning("kv_unavailable", task_id=task_id, op="get_stop", error=str(e))
            return False
        return value is not None

    async def _supervise(self, task_id: str, channel: _TaskChannel) -> None:
        last_ping = 0
        while not channel.closed:
            await asyncio.sleep(self.stop_poll_interval)
            if channel.closed:
                return

            elapsed = time.monotonic() - channel.started_at
            if elapsed >= self.listen_timeout:
                self.logger.info("queue.timeout", task_id=task_id, elapsed=round(elapsed, 2))
                self.publish(
                    task_id,
                    AgentThought(id=new_event_id(), task_id=task_id, event=QueueEvent.TIMEOUT),
                )
                return

            ticks = int(elapsed // self.ping_interval)
            if ticks > last_ping:
                last_ping = ticks
                self.publish(
                    task_id,
                    AgentThought(id=new_event_id(), task_id=task_id, event=QueueEvent.PING),
                )

            if await self._is_stop_requested(task_id):
                self.logger.info("queue.stop", task_id=task_id)
                self.publish(
                    task_id,
                    AgentThought(id=new_event_id(), task_id=task_id, event=QueueEvent.STOP),
                )
                return
