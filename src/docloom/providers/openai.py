"""OpenAI provider adapter.

Supports OpenAI models and any OpenAI-compatible endpoint (Ollama, Groq,
OpenRouter, Azure proxies) by passing a custom ``base_url``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from docloom.providers.base import BaseProvider
from docloom.types.providers import ChatMessage, StreamEvent
from docloom.types.tools import ToolDef

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    """Provider adapter for OpenAI-compatible chat completion APIs.

    Uses the official ``openai`` SDK's async streaming interface and
    translates chunks into provider-agnostic :class:`StreamEvent` objects.

    Parameters
    ----------
    api_key:
        OpenAI API key.  When *None* the SDK falls back to ``OPENAI_API_KEY``.
    model:
        Model ID to use for completions.
    base_url:
        Optional custom base URL for OpenAI-compatible endpoints.
    temperature, seed:
        Passed through to the API when set.
    max_retries:
        Retry budget for transient errors (see :class:`BaseProvider`).
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
        base_url: str | None = None,
        *,
        temperature: float | None = None,
        seed: int | None = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
    ) -> None:
        super().__init__(model, max_retries=max_retries, backoff_base=backoff_base)
        from openai import AsyncOpenAI

        kwargs: dict[str, Any] = {"max_retries": 0}  # retries are handled here
        if api_key is not None:
            kwargs["api_key"] = api_key
        if base_url is not None:
            kwargs["base_url"] = base_url

        self._client = AsyncOpenAI(**kwargs)
        self._temperature = temperature
        self._seed = seed

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int = 4096,
        *,
        json_mode: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion from an OpenAI-compatible API."""
        request: dict[str, Any] = {
            "model": self._model,
            "messages": self._to_openai_messages(messages, system),
            "stream": True,
            "stream_options": {"include_usage": True},
        }
        # GPT-5+ and reasoning models (o1/o3/o4) use max_completion_tokens.
        if any(self._model.lower().startswith(p) for p in ("gpt-5", "o1", "o3", "o4")):
            request["max_completion_tokens"] = max_tokens
        else:
            request["max_tokens"] = max_tokens
        if tools:
            request["tools"] = self._to_openai_tools(tools)
        elif json_mode and self._supports_json_mode():
            request["response_format"] = {"type": "json_object"}
        if self._temperature is not None:
            request["temperature"] = self._temperature
        if self._seed is not None:
            request["seed"] = self._seed

        stream = await self._retry_with_backoff(self._client.chat.completions.create, **request)

        # OpenAI streams several tool calls interleaved by index; a chunk with
        # a non-None id starts a new call at that index.
        open_calls: list[int] = []
        final_usage: dict[str, int] | None = None
        stop_reason: str | None = None

        async for chunk in stream:
            raw_usage = getattr(chunk, "usage", None)
            if raw_usage is not None:
                final_usage = {
                    "input_tokens": getattr(raw_usage, "prompt_tokens", 0) or 0,
                    "output_tokens": getattr(raw_usage, "completion_tokens", 0) or 0,
                }

            choice = chunk.choices[0] if chunk.choices else None
            if choice is None:
                continue

            delta = choice.delta
            if delta.content:
                yield StreamEvent(type="text_delta", text=delta.content)

            for tc in delta.tool_calls or []:
                if tc.id is not None:
                    if open_calls:
                        yield StreamEvent(type="tool_use_end")
                    open_calls.append(tc.index)
                    yield StreamEvent(
                        type="tool_use_start",
                        tool_use_id=tc.id,
                        tool_name=tc.function.name if tc.function else "",
                    )
                if tc.function and tc.function.arguments:
                    yield StreamEvent(type="tool_use_delta", tool_args_json=tc.function.arguments)

            if choice.finish_reason:
                stop_reason = "tool_use" if choice.finish_reason == "tool_calls" else choice.finish_reason

        if open_calls:
            yield StreamEvent(type="tool_use_end")
        yield StreamEvent(type="message_end", stop_reason=stop_reason or "end_turn", usage=final_usage)

    def _supports_json_mode(self) -> bool:
        """Catalogued models declare support; unknown models are assumed to have it."""
        from docloom.providers.registry import resolve_model

        try:
            return resolve_model(self._model).supports_json_mode
        except KeyError:
            return True

    def _to_openai_messages(self, messages: list[ChatMessage], system: str) -> list[dict[str, Any]]:
        """Convert the conversation to the OpenAI messages array.

        The system prompt goes first; tool calls ride on the assistant message
        and each tool result becomes its own ``role="tool"`` message.
        """
        result: list[dict[str, Any]] = []
        if system:
            result.append({"role": "system", "content": system})

        for msg in messages:
            if msg.role == "tool":
                result.append({
                    "role": "tool",
                    "tool_call_id": msg.tool_call_id or "",
                    "content": msg.content,
                })
            elif msg.role == "assistant" and msg.tool_calls:
                result.append({
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.name, "arguments": json.dumps(call.args)},
                        }
                        for call in msg.tool_calls
                    ],
                })
            else:
                result.append({"role": msg.role, "content": msg.content})
        return result

    def _to_openai_tools(self, tools: list[ToolDef]) -> list[dict[str, Any]]:
        """Wrap the generic tool schema in OpenAI's ``function`` envelope."""
        return [
            {
                "type": "function",
                "function": {
                    "name": t["name"],
                    "description": t["description"],
                    "parameters": t["input_schema"],
                },
            }
            for t in self._make_tool_defs(tools)
        ]
