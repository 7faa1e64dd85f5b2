"""Anthropic/Claude provider adapter."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

from docloom.providers.base import BaseProvider
from docloom.types.providers import ChatMessage, StreamEvent
from docloom.types.tools import ToolDef

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):
    """Provider adapter for Anthropic's Claude models.

    Uses the official ``anthropic`` SDK (``messages.create(stream=True)``) and
    translates raw stream events into :class:`StreamEvent` objects.  The
    messages API has no JSON response mode, so ``json_mode`` is satisfied by
    the prompt alone.

    Parameters
    ----------
    api_key:
        Anthropic API key.  When *None* the SDK falls back to
        ``ANTHROPIC_API_KEY``.
    model:
        Model ID to use for completions.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-6",
        base_url: str | None = None,
        *,
        temperature: float | None = None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
    ) -> None:
        super().__init__(model, max_retries=max_retries, backoff_base=backoff_base)
        from anthropic import AsyncAnthropic

        kwargs: dict[str, Any] = {"max_retries": 0}
        if api_key is not None:
            kwargs["api_key"] = api_key
        if base_url is not None:
            kwargs["base_url"] = base_url
        self._client = AsyncAnthropic(**kwargs)
        self._temperature = temperature

    async def chat_completion_stream(
        self,
        messages: list[ChatMessage],
        tools: list[ToolDef],
        system: str,
        max_tokens: int = 4096,
        *,
        json_mode: bool = False,
    ) -> AsyncIterator[StreamEvent]:
        """Stream a chat completion from the Anthropic messages API."""
        system_parts = [system] if system else []
        system_parts.extend(m.content for m in messages if m.role == "system" and m.content)

        request: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "messages": self._to_anthropic_messages(messages),
            "stream": True,
        }
        if system_parts:
            request["system"] = "\n\n".join(system_parts)
        if tools:
            request["tools"] = self._make_tool_defs(tools)
        if self._temperature is not None:
            request["temperature"] = self._temperature

        stream = await self._retry_with_backoff(self._client.messages.create, **request)

        current_block_type: str | None = None
        usage: dict[str, int] = {}
        stop_reason: str | None = None

        async for event in stream:
            event_type: str = event.type

            if event_type == "message_start":
                usage["input_tokens"] = event.message.usage.input_tokens

            elif event_type == "content_block_start":
                current_block_type = event.content_block.type
                if current_block_type == "tool_use":
                    yield StreamEvent(
                        type="tool_use_start",
                        tool_use_id=event.content_block.id,
                        tool_name=event.content_block.name,
                    )

            elif event_type == "content_block_delta":
                if event.delta.type == "text_delta":
                    yield StreamEvent(type="text_delta", text=event.delta.text)
                elif event.delta.type == "input_json_delta":
                    yield StreamEvent(type="tool_use_delta", tool_args_json=event.delta.partial_json)

            elif event_type == "content_block_stop":
                if current_block_type == "tool_use":
                    yield StreamEvent(type="tool_use_end")
                current_block_type = None

            elif event_type == "message_delta":
                stop_reason = event.delta.stop_reason
                if event.usage is not None:
                    usage["output_tokens"] = event.usage.output_tokens

            elif event_type == "message_stop":
                yield StreamEvent(type="message_end", stop_reason=stop_reason or "end_turn", usage=usage)

    def _to_anthropic_messages(self, messages: list[ChatMessage]) -> list[dict[str, Any]]:
        """Convert the conversation to Anthropic's alternating messages format.

        System messages are lifted into the ``system`` parameter by the
        caller.  Consecutive tool results are merged into a single user
        message of ``tool_result`` blocks, and a user note that directly
        follows them joins the same message.
        """
        result: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == "system":
                continue

            if msg.role == "assistant":
                blocks: list[dict[str, Any]] = []
                if msg.content:
                    blocks.append({"type": "text", "text": msg.content})
                for call in msg.tool_calls:
                    blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.args})
                result.append({"role": "assistant", "content": blocks or msg.content})
                continue

            if msg.role == "tool":
                block: dict[str, Any] = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id or "",
                    "content": msg.content,
                }
                if msg.is_error:
                    block["is_error"] = True
            else:
                block = {"type": "text", "text": msg.content}

            if result and result[-1]["role"] == "user" and isinstance(result[-1]["content"], list):
                result[-1]["content"].append(block)
            else:
                result.append({"role": "user", "content": [block]})
        return result
