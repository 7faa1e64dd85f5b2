"""Tests for docloom.providers: retry, reply collection and wire conversion."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

from docloom.errors import TransportError
from docloom.providers.anthropic import AnthropicProvider
from docloom.providers.base import BaseProvider, collect_reply
from docloom.providers.openai import OpenAIProvider
from docloom.providers.registry import create_provider, infer_provider, resolve_model
from docloom.types.providers import ChatMessage, ToolCall
from docloom.types.tools import ToolDef, ToolParam
from tests.conftest import FailingMockProvider, MockProvider, MockTurn


class _Provider(BaseProvider):
    async def chat_completion_stream(self, messages, tools, system, max_tokens, *, json_mode=False):
        yield  # pragma: no cover


class _StatusError(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class _Flaky:
    """Fails with the given exceptions, then returns "ok"."""

    def __init__(self, *errors: BaseException) -> None:
        self._errors = list(errors)
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self._errors:
            raise self._errors.pop(0)
        return "ok"


TOOLS = [
    ToolDef(
        name="read_file",
        description="Read one file",
        parameters=(
            ToolParam(name="path", type="string", required=True, description="Relative path"),
            ToolParam(name="globs", type="array"),
        ),
    ),
]


class TestRetryWithBackoff:
    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self):
        fn = _Flaky(ConnectionError("reset"), _StatusError(503))

        result = await _Provider("m", max_retries=3, backoff_base=0)._retry_with_backoff(fn)

        assert result == "ok"
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_exhaustion_raises_retryable_transport_error(self):
        fn = _Flaky(*[_StatusError(429)] * 5)

        with pytest.raises(TransportError) as exc_info:
            await _Provider("m", max_retries=2, backoff_base=0)._retry_with_backoff(fn)

        assert exc_info.value.retryable
        assert exc_info.value.attempts == 3
        assert fn.calls == 3

    @pytest.mark.asyncio
    async def test_permanent_error_is_not_retried(self):
        fn = _Flaky(_StatusError(401))

        with pytest.raises(TransportError) as exc_info:
            await _Provider("m", max_retries=3, backoff_base=0)._retry_with_backoff(fn)

        assert not exc_info.value.retryable
        assert fn.calls == 1

    @pytest.mark.asyncio
    async def test_cancellation_is_not_caught(self):
        fn = _Flaky(asyncio.CancelledError())

        with pytest.raises(asyncio.CancelledError):
            await _Provider("m", max_retries=3, backoff_base=0)._retry_with_backoff(fn)
        assert fn.calls == 1


class TestCollectReply:
    @pytest.mark.asyncio
    async def test_text_and_tool_calls(self):
        provider = MockProvider(turns=[MockTurn(
            text="Looking.",
            tool_uses=[
                {"id": "a", "name": "read_file", "args": {"path": "x"}},
                {"id": "b", "name": "read_file", "raw_args": "[1]"},
            ],
        )])

        reply = await collect_reply(provider, [], TOOLS, "", 100)

        assert reply.text == "Looking."
        assert reply.wants_tools
        assert reply.stop_reason == "tool_use"
        assert reply.tool_calls[0] == ToolCall(id="a", name="read_file", args={"path": "x"})
        assert reply.tool_calls[1].args == {}
        assert reply.tool_calls[1].args_error == "arguments must be a JSON object"

    @pytest.mark.asyncio
    async def test_stream_failure_becomes_transport_error(self):
        provider = FailingMockProvider(turns=[MockTurn(text="hi")], fail_count=1)

        with pytest.raises(TransportError) as exc_info:
            await collect_reply(provider, [], [], "", 100)

        assert exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_json_mode_is_forwarded(self):
        provider = MockProvider(turns=[MockTurn(text="{}")])
        await collect_reply(provider, [], [], "", 100, json_mode=True)
        assert provider.calls[0]["json_mode"] is True


class TestToolSchemas:
    def test_generic_schema(self):
        schema = _Provider("m")._make_tool_defs(TOOLS)[0]

        assert schema["name"] == "read_file"
        assert schema["input_schema"]["required"] == ["path"]
        assert schema["input_schema"]["properties"]["path"]["description"] == "Relative path"
        assert schema["input_schema"]["properties"]["globs"]["items"] == {"type": "string"}

    def test_openai_function_envelope(self):
        tools = OpenAIProvider(api_key="test")._to_openai_tools(TOOLS)
        assert tools[0]["type"] == "function"
        assert tools[0]["function"]["parameters"]["required"] == ["path"]


CONVERSATION = [
    ChatMessage(role="system", content="You analyze."),
    ChatMessage(role="user", content="Go."),
    ChatMessage(role="assistant", content="", tool_calls=(
        ToolCall(id="a", name="read_file", args={"path": "x"}),
        ToolCall(id="b", name="read_file", args={"path": "y"}),
    )),
    ChatMessage(role="tool", content="X", tool_call_id="a"),
    ChatMessage(role="tool", content="boom", tool_call_id="b", is_error=True),
    ChatMessage(role="user", content="Please format your response as valid JSON."),
]


class TestOpenAIConversion:
    def test_messages(self):
        msgs = OpenAIProvider(api_key="test")._to_openai_messages(CONVERSATION, "")

        assert [m["role"] for m in msgs] == ["system", "user", "assistant", "tool", "tool", "user"]
        assert msgs[2]["content"] is None
        assert msgs[2]["tool_calls"][1]["function"] == {"name": "read_file", "arguments": '{"path": "y"}'}
        assert msgs[4]["tool_call_id"] == "b"

    @pytest.mark.asyncio
    async def test_stream_translation(self):
        provider = OpenAIProvider(api_key="test", model="gpt-4o")
        captured: dict[str, Any] = {}

        def chunk(content=None, tool_calls=None, finish_reason=None, usage=None):
            choice = SimpleNamespace(
                delta=SimpleNamespace(content=content, tool_calls=tool_calls),
                finish_reason=finish_reason,
            )
            return SimpleNamespace(choices=[choice] if usage is None else [], usage=usage)

        def call(index, id=None, name=None, args=None):
            return SimpleNamespace(index=index, id=id, function=SimpleNamespace(name=name, arguments=args))

        async def fake_create(**kwargs):
            captured.update(kwargs)

            async def stream():
                yield chunk(content="Hi")
                yield chunk(tool_calls=[call(0, id="c1", name="read_file", args='{"pa')])
                yield chunk(tool_calls=[call(0, args='th": "x"}')])
                yield chunk(tool_calls=[call(1, id="c2", name="read_file", args="{}")])
                yield chunk(finish_reason="tool_calls")
                yield chunk(usage=SimpleNamespace(prompt_tokens=7, completion_tokens=3))

            return stream()

        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=fake_create)))

        reply = await collect_reply(provider, [ChatMessage(role="user", content="Go")], TOOLS, "sys", 50)

        assert reply.text == "Hi"
        assert [(c.id, c.args) for c in reply.tool_calls] == [("c1", {"path": "x"}), ("c2", {})]
        assert reply.stop_reason == "tool_use"
        assert reply.usage == {"input_tokens": 7, "output_tokens": 3}
        assert captured["max_tokens"] == 50
        assert "response_format" not in captured

    @pytest.mark.asyncio
    async def test_json_mode_sets_response_format(self):
        provider = OpenAIProvider(api_key="test", model="gpt-4o")
        captured: dict[str, Any] = {}

        async def fake_create(**kwargs):
            captured.update(kwargs)

            async def stream():
                return
                yield

            return stream()

        provider._client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=fake_create)))

        await collect_reply(provider, [ChatMessage(role="user", content="Go")], [], "", 50, json_mode=True)

        assert captured["response_format"] == {"type": "json_object"}


class TestAnthropicConversion:
    def test_tool_results_and_note_share_one_user_message(self):
        msgs = AnthropicProvider(api_key="test")._to_anthropic_messages(CONVERSATION)

        assert [m["role"] for m in msgs] == ["user", "assistant", "user"]
        assert [b["type"] for b in msgs[1]["content"]] == ["tool_use", "tool_use"]
        blocks = msgs[2]["content"]
        assert [b["type"] for b in blocks] == ["tool_result", "tool_result", "text"]
        assert blocks[1]["is_error"] is True
        assert "is_error" not in blocks[0]


class TestRegistry:
    def test_aliases_and_inference(self):
        assert resolve_model("sonnet").id == "claude-sonnet-4-6"
        assert infer_provider("haiku") == "anthropic"
        assert infer_provider("claude-opus-x") == "anthropic"
        assert infer_provider("llama3") == "openai"
        with pytest.raises(KeyError):
            resolve_model("unknown-model")

    def test_create_provider(self):
        provider = create_provider("4o", api_key="test")
        assert isinstance(provider, OpenAIProvider)
        assert provider.model_id == "gpt-4o"

        provider = create_provider("sonnet", api_key="test")
        assert isinstance(provider, AnthropicProvider)

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            create_provider("gpt-4o", provider="acme", api_key="test")
