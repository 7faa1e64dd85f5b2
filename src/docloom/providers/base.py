"""Base provider with shared retry logic, reply collection and tool schema conversion."""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import Any

from docloom.errors import DocloomError, TransportError
from docloom.types.providers import ChatMessage, ModelReply, ProviderAdapter, StreamEvent, ToolCall
from docloom.types.tools import ToolDef, ToolParam

logger = logging.getLogger(__name__)

# Rate limits, gateway failures and overload are worth retrying.
_RETRYABLE_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504, 529})
_RETRYABLE_NAMES: frozenset[str] = frozenset({
    "RateLimitError",
    "InternalServerError",
    "OverloadedError",
    "APITimeoutError",
    "APIConnectionError",
})
_MAX_RETRIES: int = 3
_BACKOFF_BASE: float = 1.0  # seconds; doubled each retry


def _is_retryable(exc: BaseException) -> bool:
    """Return True when *exc* represents a transient error worth retrying."""
    if type(exc).__name__ in _RETRYABLE_NAMES:
        return True
    # OpenAI / Anthropic / httpx style errors carry a status_code.
    status_code: int | None = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, (TimeoutError, ConnectionError))


class BaseProvider(ABC):
    """Abstract base class for all provider adapters.

    Concrete sub-classes implement :meth:`chat_completion_stream`, opening
    their request through :meth:`_retry_with_backoff`.

    Parameters
    ----------
    model:
        The model identifier string (e.g. ``"gpt-4o"``).
    max_retries:
        Additional attempts made after a transient failure.
    backoff_base:
        Delay before the first retry, in seconds; doubled after each failure.
    """

    def __init__(self, model: str, *, max_retries: int = _MAX_RETRIES, backoff_base: float = _BACKOFF_BASE) -> None:
        self._model = model
        self._max_retries = max(0, max_retries)
        self._backoff_base = backoff_base

    @property
    def model_id(self) -> str:
        """The model identifier being used by this provider instance."""
        return self._model

    def estimate_tokens(self, text: str) -> int:
        """Rough token count estimate, approximately 4 characters per token."""
        return max(0, len(text) // 4)

    @abstractmethod
    def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int,
        *,
        json_mode: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion, yielding :class:`StreamEvent` objects.

        Parameters
        ----------
        messages:
            Ordered conversation.  System-role messages may appear; adapters
            merge them with *system* as their API requires.
        tools:
            Tool definitions the model may call (may be empty).
        system:
            System prompt string.
        max_tokens:
            Hard upper bound on generated tokens.
        json_mode:
            Ask the API to constrain output to a JSON object when it supports
            that and no tools are offered.

        Yields
        ------
        StreamEvent
            Individual stream events as they arrive from the provider.
        """
        ...

    async def _retry_with_backoff(
        self,
        coro_fn: Any,
        /,
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Call *coro_fn* with exponential back-off on transient errors.

        Cancellation is never retried: ``asyncio.CancelledError`` propagates
        from the call or from the back-off sleep.

        Raises
        ------
        TransportError
            Immediately for a non-retryable failure, or once the retry budget
            is spent.  The original exception is chained.
        """
        delay = self._backoff_base
        attempts = self._max_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                return await coro_fn(*args, **kwargs)
            except Exception as exc:
                if not _is_retryable(exc):
                    raise TransportError(
                        f"{type(exc).__name__}: {exc}", retryable=False, attempts=attempt,
                    ) from exc
                if attempt == attempts:
                    raise TransportError(
                        f"Giving up after {attempt} attempt(s): {type(exc).__name__}: {exc}",
                        retryable=True,
                        attempts=attempt,
                    ) from exc
                logger.warning(
                    "Transient error on attempt %d/%d (%s). Retrying in %.1fs.",
                    attempt,
                    attempts,
                    type(exc).__name__,
                    delay,
                )
                await asyncio.sleep(delay)
                delay *= 2.0

        raise RuntimeError("Unexpected state in _retry_with_backoff")  # pragma: no cover

    def _make_tool_defs(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Convert :class:`ToolDef` objects into JSON-Schema-style dicts.

        The output is provider-neutral (``name``, ``description``,
        ``input_schema``); adapters wrap it in their wire format.
        """
        result: list[dict[str, Any]] = []
        for tool in tools:
            properties: dict[str, Any] = {}
            required_params: list[str] = []

            for param in tool.parameters:
                properties[param.name] = self._param_to_schema(param)
                if param.required:
                    required_params.append(param.name)

            schema: dict[str, Any] = {
                "type": "object",
                "properties": properties,
            }
            if required_params:
                schema["required"] = required_params

            result.append(
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": schema,
                }
            )
        return result

    @staticmethod
    def _param_to_schema(param: ToolParam) -> dict[str, Any]:
        """Render a single :class:`ToolParam` as a JSON Schema property dict."""
        prop: dict[str, Any] = {"type": param.type}
        if param.description:
            prop["description"] = param.description
        if param.enum is not None:
            prop["enum"] = list(param.enum)
        if param.default is not None:
            prop["default"] = param.default
        # Array types require an items schema (OpenAI enforces this).
        if param.type == "array":
            prop["items"] = param.items if param.items is not None else {"type": "string"}
        return prop


async def collect_reply(
    provider: ProviderAdapter,
    messages: list[ChatMessage],
    tools: list[ToolDef],
    system: str,
    max_tokens: int,
    *,
    json_mode: bool = False,
) -> ModelReply:
    """Drain one streamed completion into a :class:`ModelReply`.

    Any failure other than cancellation is surfaced as :class:`TransportError`.
    Tool arguments that are not a JSON object are recorded on
    ``ToolCall.args_error`` so the caller can answer the call with an error.
    """
    text_parts: list[str] = []
    tool_calls: list[ToolCall] = []
    current: dict[str, Any] | None = None
    stop_reason = "end_turn"
    usage: dict[str, int] = {}

    try:
        async for event in provider.chat_completion_stream(
            messages, tools, system, max_tokens, json_mode=json_mode,
        ):
            if event.type == "text_delta" and event.text:
                text_parts.append(event.text)

            elif event.type == "tool_use_start":
                current = {"id": event.tool_use_id or "", "name": event.tool_name or "", "args_json": ""}

            elif event.type == "tool_use_delta" and current is not None:
                current["args_json"] += event.tool_args_json or ""

            elif event.type == "tool_use_end" and current is not None:
                args, args_error = _parse_args(current["args_json"])
                tool_calls.append(ToolCall(
                    id=current["id"], name=current["name"], args=args, args_error=args_error,
                ))
                current = None

            elif event.type == "message_end":
                stop_reason = event.stop_reason or "end_turn"
                usage = dict(event.usage or {})
    except DocloomError:
        raise
    except Exception as exc:
        raise TransportError(f"{type(exc).__name__}: {exc}", retryable=_is_retryable(exc)) from exc

    return ModelReply(
        text="".join(text_parts),
        tool_calls=tuple(tool_calls),
        stop_reason=stop_reason,
        usage=usage,
    )


def _parse_args(raw: str) -> tuple[dict[str, Any], str | None]:
    if not raw:
        return {}, None
    try:
        args = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Malformed tool arguments: %.200s", raw)
        return {}, f"arguments are not valid JSON ({exc.msg})"
    if not isinstance(args, dict):
        return {}, "arguments must be a JSON object"
    return args, None
