"""
LiteLLM Chat Model

Implements ChatModelProtocol on top of LiteLLM so any provider LiteLLM
supports can back an agent. Completions are retried according to the
configured RetryPolicy and failures are returned as result dicts rather
than raised; stream failures are yielded as error chunks.
"""

import asyncio
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import litellm
import structlog

FEATURE_TOOL_CALL = "tool_call"
FEATURE_IMAGE_INPUT = "image_input"

# Parameters forwarded to LiteLLM, everything else in a model config is ignored
ALLOWED_PARAMS = (
    "temperature",
    "top_p",
    "max_tokens",
    "frequency_penalty",
    "presence_penalty",
)


@dataclass
class RetryPolicy:
    """Retry policy configuration."""

    max_attempts: int = 3
    backoff_multiplier: float = 2.0
    timeout: int = 30
    retry_on_errors: list[str] = field(default_factory=list)


def _usage_to_dict(usage: Any) -> dict[str, int]:
    # Handle both dict and object forms
    if not usage:
        return {}
    if isinstance(usage, dict):
        return usage
    return {
        "total_tokens": getattr(usage, "total_tokens", 0) or 0,
        "prompt_tokens": getattr(usage, "prompt_tokens", 0) or 0,
        "completion_tokens": getattr(usage, "completion_tokens", 0) or 0,
    }


def _tool_calls_to_dicts(tool_calls: Any) -> list[dict[str, Any]]:
    result = []
    for tool_call in tool_calls or []:
        if isinstance(tool_call, dict):
            result.append(tool_call)
            continue
        result.append(
            {
                "id": tool_call.id,
                "type": "function",
                "function": {
                    "name": tool_call.function.name,
                    "arguments": tool_call.function.arguments or "{}",
                },
            }
        )
    return result


class LiteLLMChatModel:
    """
    Chat model handle for one provider model.

    Args:
        model: LiteLLM model name (e.g. "gpt-4o-mini", "deepseek/deepseek-chat")
        parameters: Sampling parameters (temperature, top_p, max_tokens, ...)
        features: Capability flags (tool_call, agent_thought, image_input)
        pricing: (input_price, output_price, unit)
        retry_policy: Retry behaviour for completions
        tools: OpenAI-format tool schemas sent with every call
    """

    def __init__(
        self,
        model: str,
        parameters: dict[str, Any] | None = None,
        features: list[str] | None = None,
        pricing: tuple[float, float, float] = (0.0, 0.0, 0.0),
        retry_policy: RetryPolicy | None = None,
        tools: list[dict[str, Any]] | None = None,
    ):
        self.model = model
        self.parameters = {
            key: value
            for key, value in (parameters or {}).items()
            if key in ALLOWED_PARAMS
        }
        self.features = list(features or [])
        self._pricing = pricing
        self.retry_policy = retry_policy or RetryPolicy()
        self.tools = tools
        self.logger = structlog.get_logger().bind(component="litellm_chat_model")

    @property
    def supports_tool_call(self) -> bool:
        return FEATURE_TOOL_CALL in self.features

    @property
    def supports_image_input(self) -> bool:
        return FEATURE_IMAGE_INPUT in self.features

    @property
    def pricing(self) -> tuple[float, float, float]:
        return self._pricing

    def bind_tools(self, tools: list[dict[str, Any]]) -> "LiteLLMChatModel":
        """Return a copy of this model that sends the tool schemas on every call."""
        return LiteLLMChatModel(
            model=self.model,
            parameters=self.parameters,
            features=self.features,
            pricing=self._pricing,
            retry_policy=self.retry_policy,
            tools=tools or None,
        )

    def _request_params(self) -> dict[str, Any]:
        params = dict(self.parameters)
        if self.tools:
            params["tools"] = self.tools
            params["tool_choice"] = "auto"
        return params

    async def complete(self, messages: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Perform a completion with retry logic.

        Returns:
            Dict with:
            - success: bool
            - content: str | None (if successful)
            - tool_calls: list of OpenAI-format tool calls (if any)
            - usage: Dict with token counts
            - error / error_type: str (if failed)
        """
        params = self._request_params()

        for attempt in range(self.retry_policy.max_attempts):
            try:
                start_time = time.time()

                self.logger.info(
                    "llm_completion_started",
                    model=self.model,
                    attempt=attempt + 1,
                    message_count=len(messages),
                    tools=len(self.tools or []),
                )

                response = await litellm.acompletion(
                    model=self.model,
                    messages=messages,
                    timeout=self.retry_policy.timeout,
                    **params,
                )

                message = response.choices[0].message
                token_stats = _usage_to_dict(getattr(response, "usage", None))
                latency_ms = int((time.time() - start_time) * 1000)

                self.logger.info(
                    "llm_completion_success",
                    model=self.model,
                    tokens=token_stats.get("total_tokens", 0),
                    latency_ms=latency_ms,
                )

                return {
                    "success": True,
                    "content": message.content,
                    "tool_calls": _tool_calls_to_dicts(getattr(message, "tool_calls", None)),
                    "usage": token_stats,
                    "model": self.model,
                    "latency_ms": latency_ms,
                }

            except Exception as e:
                error_type = type(e).__name__
                error_msg = str(e)

                should_retry = attempt < self.retry_policy.max_attempts - 1 and any(
                    err_type in error_type or err_type in error_msg
                    for err_type in self.retry_policy.retry_on_errors
                )

                if should_retry:
                    backoff_time = self.retry_policy.backoff_multiplier**attempt
                    self.logger.warning(
                        "llm_completion_retry",
                        model=self.model,
                        error_type=error_type,
                        attempt=attempt + 1,
                        backoff_seconds=backoff_time,
                    )
                    await asyncio.sleep(backoff_time)
                else:
                    self.logger.error(
                        "llm_completion_failed",
                        model=self.model,
                        error_type=error_type,
                        error=error_msg[:200],
                        attempts=attempt + 1,
                    )
                    return {
                        "success": False,
                        "error": error_msg,
                        "error_type": error_type,
                        "model": self.model,
                    }

        return {"success": False, "error": "Max retries exceeded", "model": self.model}

    async def complete_stream(
        self, messages: list[dict[str, Any]]
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Stream a completion.

        Yields:
            {"type": "token", "content": str} for each content delta
            {"type": "done", "usage": dict} when the stream ends
            {"type": "error", "message": str} on failure (last chunk)
        """
        self.logger.info(
            "llm_stream_started", model=self.model, message_count=len(messages)
        )
        usage: dict[str, int] = {}
        try:
            response = await litellm.acompletion(
                model=self.model,
                messages=messages,
                timeout=self.retry_policy.timeout,
                stream=True,
                stream_options={"include_usage": True},
                **self._request_params(),
            )
            async for chunk in response:
                chunk_usage = getattr(chunk, "usage", None)
                if chunk_usage:
                    usage = _usage_to_dict(chunk_usage)
                if not chunk.choices:
                    continue
                content = getattr(chunk.choices[0].delta, "content", None)
                if content:
                    yield {"type": "token", "content": content}
        except Exception as e:
            self.logger.error(
                "llm_stream_failed",
                model=self.model,
                error_type=type(e).__name__,
                error=str(e)[:200],
            )
            yield {"type": "error", "message": str(e)}
            return

        self.logger.info("llm_stream_completed", model=self.model, tokens=usage.get("total_tokens", 0))
        yield {"type": "done", "usage": usage}
