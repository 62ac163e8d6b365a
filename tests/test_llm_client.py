import asyncio
import json

import httpx
import pytest

from app.settings import settings
from domain.errors import GatewayExhaustedError, GatewayResponseError
from infra.llm.client import LLMClient


def make_client(handler, sleeps, provider="ollama"):
    async def fake_sleep(seconds):
        sleeps.append(seconds)
    return LLMClient(
        provider,
        max_attempts=3,
        backoff_seconds=2,
        transport=httpx.MockTransport(handler),
        sleep=fake_sleep,
    )


def test_retries_with_linear_backoff_then_returns_text_verbatim():
    calls, sleeps = [], []

    def handler(request):
        calls.append(request)
        if len(calls) == 1:
            raise httpx.ConnectError("connection refused", request=request)
        if len(calls) == 2:
            return httpx.Response(503, text="model loading")
        return httpx.Response(200, json={"response": "  {\"match_rate\": 0.8}\n"})

    client = make_client(handler, sleeps)
    out = asyncio.run(client.generate("evaluate this", 0.3))

    assert out == "  {\"match_rate\": 0.8}\n"
    assert len(calls) == 3
    assert sleeps == [2, 4]


def test_always_failing_transport_exhausts_attempts():
    calls, sleeps = [], []

    def handler(request):
        calls.append(request)
        return httpx.Response(500, text="boom")

    client = make_client(handler, sleeps)
    with pytest.raises(GatewayExhaustedError) as excinfo:
        asyncio.run(client.generate("evaluate this", 0.3))

    assert len(calls) == 3
    assert sleeps == [2, 4]
    assert excinfo.value.attempts == 3
    assert "500" in str(excinfo.value)


def test_timeout_counts_as_failed_attempt():
    calls, sleeps = [], []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ReadTimeout("timed out", request=request)
        return httpx.Response(200, json={"response": "done"})

    client = make_client(handler, sleeps)
    assert asyncio.run(client.generate("p", 0.4)) == "done"
    assert len(calls) == 3


def test_ollama_request_payload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"response": "ok"})

    client = make_client(handler, [])
    asyncio.run(client.generate("hello", 0.3))

    request = seen[0]
    assert request.url.path == "/api/generate"
    body = json.loads(request.content)
    assert body["prompt"] == "hello"
    assert body["stream"] is False
    assert body["options"] == {"temperature": 0.3}
    assert body["model"] == settings.OLLAMA_MODEL


def test_openai_provider_reads_message_content(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", "sk-test")
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"choices": [{"message": {"content": "hi there"}}]})

    client = make_client(handler, [], provider="openai")
    assert asyncio.run(client.generate("hello", 0.4)) == "hi there"
    assert seen[0].headers["Authorization"] == "Bearer sk-test"
    assert json.loads(seen[0].content)["temperature"] == 0.4


def test_malformed_success_body_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, json={"unexpected": True})

    client = make_client(handler, [])
    with pytest.raises(GatewayResponseError):
        asyncio.run(client.generate("p", 0.3))
    assert len(calls) == 1


def test_unknown_provider_rejected():
    with pytest.raises(ValueError):
        LLMClient("carrier-pigeon")
