"""Tests for the OpenAI-compatible completion client."""

import httpx
import pytest

from conftest import FakeCompletion

from motionbridge.chat.completion import CompletionClient
from motionbridge.core.config import CompletionConfig
from motionbridge.core.errors import CompletionServiceError


def _client(handler, **overrides) -> CompletionClient:
    config = CompletionConfig(base_url="http://llm.local/v1/", **overrides)
    return CompletionClient(config, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.mark.asyncio
async def test_request_shape_with_tools():
    seen = []

    def handler(request):
        seen.append(request)
        return FakeCompletion([{"role": "assistant", "content": "hi"}])(request)

    client = _client(handler, api_key="secret", model="local-model")
    tools = [{"type": "function", "function": {"name": "ping", "parameters": {}}}]

    message = await client.complete([{"role": "user", "content": "hello"}], tools)

    assert message == {"role": "assistant", "content": "hi"}
    request = seen[0]
    assert str(request.url) == "http://llm.local/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_tools_are_omitted_when_not_given():
    fake = FakeCompletion([{"role": "assistant", "content": "ok"}])
    client = _client(fake)

    await client.complete([{"role": "user", "content": "hello"}])

    assert "tools" not in fake.bodies[0]
    assert "tool_choice" not in fake.bodies[0]
    assert fake.bodies[0]["model"] == client.model


@pytest.mark.asyncio
async def test_upstream_status_is_preserved():
    client = _client(FakeCompletion(status_code=503))

    with pytest.raises(CompletionServiceError) as exc_info:
        await client.complete([{"role": "user", "content": "hello"}])

    assert exc_info.value.status_code == 503
    assert "model not loaded" in exc_info.value.detail


@pytest.mark.asyncio
async def test_unreachable_service_is_502():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(CompletionServiceError) as exc_info:
        await _client(handler).complete([])
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_timeout_is_504():
    def handler(request):
        raise httpx.ReadTimeout("slow model", request=request)

    with pytest.raises(CompletionServiceError) as exc_info:
        await _client(handler, timeout_seconds=3.0).complete([])
    assert exc_info.value.status_code == 504
    assert "3.0s" in exc_info.value.detail


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"choices": []}, {"unexpected": True}, {"choices": [{"message": "text"}]}])
async def test_malformed_body_is_502(payload):
    client = _client(lambda request: httpx.Response(200, json=payload))

    with pytest.raises(CompletionServiceError) as exc_info:
        await client.complete([])
    assert exc_info.value.status_code == 502
