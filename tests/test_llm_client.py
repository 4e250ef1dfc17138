import json

import httpx
import pytest

from apps.api.services.llm_client import (
    CLAUDE_API_URL,
    ClaudeClient,
    GeminiClient,
    ProviderConfig,
    build_clients,
)


class _Upstream:
    """MockTransport que registra requests y responde con un handler configurable."""

    def __init__(self, handler):
        self._handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def _claude(upstream: _Upstream, api_key: str = "ck") -> ClaudeClient:
    return ClaudeClient(api_key=api_key, model="claude-test", transport=upstream.transport)


def _gemini(upstream: _Upstream, api_key: str = "gk") -> GeminiClient:
    return GeminiClient(api_key=api_key, model="gemini-test", transport=upstream.transport)


def _connect_error(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.mark.asyncio
async def test_claude_unconfigured_does_not_call_network():
    upstream = _Upstream(lambda r: httpx.Response(200, json={}))

    res = await _claude(upstream, api_key="").generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Claude API key not configured"
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_claude_success_sends_headers_and_trims_text():
    upstream = _Upstream(lambda r: httpx.Response(200, json={"content": [{"type": "text", "text": "  Mrkgnao \n"}]}))

    res = await _claude(upstream).generate(system="S", user="cat")

    assert res.success is True
    assert res.message == "Mrkgnao"

    req = upstream.requests[0]
    assert str(req.url) == CLAUDE_API_URL
    assert req.headers["x-api-key"] == "ck"
    assert req.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(req.content)
    assert body == {
        "model": "claude-test",
        "max_tokens": 100,
        "system": "S",
        "messages": [{"role": "user", "content": "cat"}],
    }


@pytest.mark.asyncio
async def test_claude_non_2xx_reports_status():
    upstream = _Upstream(lambda r: httpx.Response(529, text="overloaded"))

    res = await _claude(upstream).generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Claude API error: 529"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"content": []}),
        httpx.Response(200, json={"content": [{"type": "text", "text": ""}]}),
        httpx.Response(200, json={"content": [{"type": "text", "text": "  \n\t "}]}),
        httpx.Response(200, json={"id": "msg_1"}),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
async def test_claude_2xx_without_text_is_invalid_response(response):
    upstream = _Upstream(lambda r: response)

    res = await _claude(upstream).generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Invalid response from Claude API"


@pytest.mark.asyncio
async def test_claude_transport_failure():
    upstream = _Upstream(_connect_error)

    res = await _claude(upstream).generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Failed to connect to Claude API"


@pytest.mark.asyncio
async def test_claude_unsendable_key_is_connection_failure():
    # Cabecera no ASCII: httpx falla al construir el request, antes del transporte.
    upstream = _Upstream(lambda r: httpx.Response(200, json={}))
    client = _claude(upstream, api_key="clé-ü")

    res = await client.generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Failed to connect to Claude API"
    assert await client.probe() is False
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_claude_malformed_url_is_connection_failure():
    upstream = _Upstream(lambda r: httpx.Response(200, json={}))
    client = ClaudeClient(
        api_key="ck", model="claude-test", api_url="https://api.example.com:notaport/v1", transport=upstream.transport
    )

    res = await client.generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Failed to connect to Claude API"
    assert await client.probe() is False
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_gemini_success_passes_key_as_param_and_inlines_system_prompt():
    upstream = _Upstream(
        lambda r: httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": " Sllt. "}]}}]})
    )

    res = await _gemini(upstream).generate(system="S", user="printing press")

    assert res.success is True
    assert res.message == "Sllt."

    req = upstream.requests[0]
    assert req.url.path.endswith("/models/gemini-test:generateContent")
    assert req.url.params["key"] == "gk"
    body = json.loads(req.content)
    assert body["contents"][0]["parts"][0]["text"] == "S\n\nUser: printing press"
    assert body["generationConfig"] == {"maxOutputTokens": 100, "temperature": 0.9}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"candidates": []},
        {"candidates": [{"content": {"parts": []}}]},
        {"candidates": [{"content": {"parts": [{"text": "   "}]}}]},
        {"candidates": [{"finishReason": "SAFETY"}]},
    ],
)
async def test_gemini_2xx_without_text_is_invalid_response(payload):
    upstream = _Upstream(lambda r: httpx.Response(200, json=payload))

    res = await _gemini(upstream).generate(system="S", user="cat")

    assert res.success is False
    assert res.message == "Invalid response from Gemini API"


@pytest.mark.asyncio
async def test_gemini_failures_and_unconfigured():
    assert (await _gemini(_Upstream(lambda r: httpx.Response(400))).generate(system="S", user="x")).message == (
        "Gemini API error: 400"
    )
    assert (await _gemini(_Upstream(_connect_error)).generate(system="S", user="x")).message == (
        "Failed to connect to Gemini API"
    )

    upstream = _Upstream(lambda r: httpx.Response(200))
    res = await _gemini(upstream, api_key="").generate(system="S", user="x")
    assert res.message == "Gemini API key not configured"
    assert upstream.requests == []


@pytest.mark.asyncio
async def test_probe_requires_exactly_200():
    ok = _Upstream(lambda r: httpx.Response(200, json={}))
    created = _Upstream(lambda r: httpx.Response(201, json={}))

    assert await _claude(ok).probe() is True
    assert await _claude(created).probe() is False
    assert await _gemini(_Upstream(lambda r: httpx.Response(500))).probe() is False
    assert await _gemini(_Upstream(_connect_error)).probe() is False

    # Prompt mínimo y tope de salida bajo
    body = json.loads(ok.requests[0].content)
    assert body["max_tokens"] == 10
    assert body["messages"] == [{"role": "user", "content": "Hi"}]
    assert "system" not in body


@pytest.mark.asyncio
async def test_probe_unconfigured_is_false_without_network():
    upstream = _Upstream(lambda r: httpx.Response(200))

    assert await _claude(upstream, api_key="").probe() is False
    assert await _gemini(upstream, api_key="").probe() is False
    assert upstream.requests == []


def test_provider_config_from_env(monkeypatch):
    monkeypatch.setenv("CLAUDE_API_KEY", "a")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("PROVIDER_TIMEOUT_S", "12.5")

    cfg = ProviderConfig.from_env()
    claude, gemini = build_clients(cfg)

    assert cfg.timeout_s == 12.5
    assert claude.configured is True
    assert gemini.configured is False
