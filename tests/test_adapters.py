import json
from types import SimpleNamespace

import httpx
import pytest
from fastapi.testclient import TestClient

from conftest import make_settings
from makeitsimple.adapters.factory import build_adapter
from makeitsimple.adapters.gemini import GeminiAdapter
from makeitsimple.adapters.groq import GroqAdapter
from makeitsimple.errors import PermanentProviderError, classify_error
from makeitsimple.main import create_app

BASE_URL = "https://gemini.test/v1beta"


def _gemini_payload(*texts, tokens=12):
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": t} for t in texts]}}],
        "usageMetadata": {"totalTokenCount": tokens},
    }


def _gemini(handler, model="gemini-2.5-flash-lite") -> GeminiAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiAdapter(api_key="k-123", default_model=model, base_url=BASE_URL, client=client)


# ─── Gemini ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_gemini_request_shape_and_parsing():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_gemini_payload("A. ", "B. C."))

    adapter = _gemini(handler)
    result = await adapter.generate(prompt="hello", system_prompt="be brief")
    await adapter.aclose()

    assert result == {
        "response": "A. B. C.",
        "model": "gemini-2.5-flash-lite",
        "provider": "gemini",
        "tokens_used": 12,
    }
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == f"{BASE_URL}/models/gemini-2.5-flash-lite:generateContent"
    assert request.headers["x-goog-api-key"] == "k-123"
    body = json.loads(request.content)
    assert body["contents"] == [{"role": "user", "parts": [{"text": "hello"}]}]
    assert body["systemInstruction"] == {"parts": [{"text": "be brief"}]}


@pytest.mark.asyncio
async def test_gemini_model_override():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=_gemini_payload("ok"))

    adapter = _gemini(handler)
    result = await adapter.generate(prompt="hello", model="gemini-2.5-pro")

    assert result["model"] == "gemini-2.5-pro"
    assert seen[0].url.path.endswith("/models/gemini-2.5-pro:generateContent")


@pytest.mark.asyncio
async def test_gemini_http_error_classifies_by_status():
    adapter = _gemini(lambda request: httpx.Response(429, json={"error": {"code": 429}}))

    with pytest.raises(httpx.HTTPStatusError) as excinfo:
        await adapter.generate(prompt="hello")

    error = classify_error(excinfo.value)
    assert error.transient
    assert error.status == 429


@pytest.mark.asyncio
async def test_gemini_response_without_candidates_is_permanent_failure():
    adapter = _gemini(lambda request: httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}}))

    with pytest.raises(PermanentProviderError):
        await adapter.generate(prompt="hello")


@pytest.mark.asyncio
async def test_gemini_candidate_without_parts_yields_empty_text():
    adapter = _gemini(lambda request: httpx.Response(200, json={"candidates": [{"finishReason": "SAFETY"}]}))

    result = await adapter.generate(prompt="hello")

    assert result["response"] == ""
    assert result["tokens_used"] == 0


def test_gemini_end_to_end_retries_on_rate_limit():
    statuses = [429, 503]

    def handler(request):
        if statuses:
            return httpx.Response(statuses.pop(0))
        return httpx.Response(200, json=_gemini_payload("A. B. C."))

    app = create_app(make_settings(MAX_RETRIES=3), adapter=_gemini(handler))
    resp = TestClient(app).post("/api/summarize", json={"text": "hello"})

    assert resp.status_code == 200
    assert resp.json() == {"summary": "A. B. C."}
    assert statuses == []


def test_gemini_end_to_end_network_failure_is_502():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    app = create_app(make_settings(), adapter=_gemini(handler))
    resp = TestClient(app).post("/api/chat", json={"question": "Q", "context": "C"})

    assert resp.status_code == 502
    assert resp.json() == {"error": "Failed to generate answer"}


# ─── Groq ────────────────────────────────────────────────

class FakeCompletions:
    def __init__(self, completion):
        self.completion = completion
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.completion


def _groq_client(completion):
    completions = FakeCompletions(completion)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.mark.asyncio
async def test_groq_adapter_builds_messages_and_reads_usage():
    completion = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="Short answer."))],
        usage=SimpleNamespace(total_tokens=42),
    )
    client, completions = _groq_client(completion)
    adapter = GroqAdapter(api_key="g-1", default_model="llama-test", client=client)

    result = await adapter.generate(prompt="hello", system_prompt="be brief")

    assert result == {
        "response": "Short answer.",
        "model": "llama-test",
        "provider": "groq",
        "tokens_used": 42,
    }
    assert completions.calls[0]["messages"] == [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
    ]


@pytest.mark.asyncio
async def test_groq_adapter_without_choices_is_permanent_failure():
    client, _ = _groq_client(SimpleNamespace(choices=[], usage=None))
    adapter = GroqAdapter(api_key="g-1", client=client)

    with pytest.raises(PermanentProviderError):
        await adapter.generate(prompt="hello")


# ─── Factory ─────────────────────────────────────────────

def test_factory_returns_none_without_credential(caplog):
    with caplog.at_level("WARNING", logger="adapter_factory"):
        assert build_adapter(make_settings(GEMINI_API_KEY=None)) is None

    assert "GEMINI_API_KEY is not set" in caplog.text


@pytest.mark.asyncio
async def test_factory_builds_gemini_from_settings():
    adapter = build_adapter(make_settings(GEMINI_MODEL="gemini-x", GEMINI_BASE_URL="https://g.test/v1/"))

    assert isinstance(adapter, GeminiAdapter)
    assert adapter.default_model == "gemini-x"
    assert adapter.base_url == "https://g.test/v1"
    await adapter.aclose()


@pytest.mark.asyncio
async def test_factory_builds_groq_from_settings():
    adapter = build_adapter(make_settings(AI_PROVIDER="groq", GROQ_API_KEY="g-1", DEFAULT_MODEL_GROQ="llama-x"))

    assert isinstance(adapter, GroqAdapter)
    assert adapter.default_model == "llama-x"
    await adapter.aclose()
