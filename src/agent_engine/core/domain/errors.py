"""
Engine Exceptions

The agent drivers never let these escape a run; they are mapped to a
terminal error event. Transports map them to HTTP status codes.
"""


class AgentError(Exception):
    """Base class for engine errors."""


class AgentValidationError(AgentError):
    """Pre-flight validation failed (e.g. odd-length history)."""


class LLMCallError(AgentError):
    """The chat model failed to produce a completion."""

    def __init__(self, message: str, error_type: str | None = None):
        super().__init__(message)
        self.error_type = error_type


class UnauthorizedStopError(AgentError):
    """A stop was requested by someone who does not own the task."""

    def __init__(self, task_id: str):
        super().__init__(f"not authorized to stop task {task_id}")
        self.task_id = task_id


class AppNotFoundError(AgentError):
    """No application config with the given id exists."""

    def __init__(self, app_id: str):
        super().__init__(f"application not found: {app_id}")
        self.app_id = app_id
