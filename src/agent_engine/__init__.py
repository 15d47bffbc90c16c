"""Agent execution engine: task queues and LLM + tool agent drivers."""

__version__ = "0.1.0"
