# OpenRouterClient against a fake proxy (httpx.MockTransport).

import json

import httpx
import pytest

from src.generate import ErrorKind, GenerationError, Provider, ProviderConfig
from src.generate.clients.openrouter_client import OpenRouterClient

CONFIG = ProviderConfig(
    provider=Provider.OPENROUTER,
    model="google/gemini-2.0-flash-exp:free",
    proxy_base_url="http://proxy.test/api/proxy",
    timeout=5.0,
)

LETTER_JSON = '{"subject": "Objection to Rule 288-A", "body": "Sir,\\nI object.\\n[Your Name]"}'


def _completion(content, model=CONFIG.model):
    return {
        "id": "gen-1",
        "object": "chat.completion",
        "created": 1735000000,
        "model": model,
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}],
    }


def _sse(*deltas):
    events = []
    for d in deltas:
        chunk = {"id": "gen-1", "object": "chat.completion.chunk", "created": 1, "model": CONFIG.model,
                 "choices": [{"index": 0, "delta": {"content": d}, "finish_reason": None}]}
        events.append(f"data: {json.dumps(chunk)}\n\n")
    events.append("data: [DONE]\n\n")
    return "".join(events).encode("utf-8")


def _client(handler, config=CONFIG):
    return OpenRouterClient(config, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_generate_posts_openai_payload_to_proxy():
    seen = {}

    def handler(request: httpx.Request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion(f"Here you go:\n```json\n{LETTER_JSON}\n```"))

    letter = _client(handler).generate("write it")

    assert seen["url"] == "http://proxy.test/api/proxy/chat/completions"
    body = seen["body"]
    assert body["model"] == CONFIG.model
    assert body["stream"] is False
    assert body["temperature"] == 0.7
    assert body["max_tokens"] == 2048
    assert "top_p" not in body
    assert [m["role"] for m in body["messages"]] == ["system", "user"]
    assert body["messages"][1]["content"] == "write it"

    assert letter.subject == "Objection to Rule 288-A"
    assert letter.body.startswith("Sir,\nI object.")
    assert letter.provider is Provider.OPENROUTER


def test_top_p_is_sent_when_configured():
    seen = {}

    def handler(request):
        seen.update(json.loads(request.content))
        return httpx.Response(200, json=_completion(LETTER_JSON))

    from dataclasses import replace
    _client(handler, replace(CONFIG, top_p=0.9)).generate("p")
    assert seen["top_p"] == 0.9


def test_stream_concatenates_deltas():
    pieces = ['{"subject": "S', 'ubj", "bo', 'dy": "Body"}']

    def handler(request):
        assert json.loads(request.content)["stream"] is True
        return httpx.Response(200, headers={"content-type": "text/event-stream"}, content=_sse(*pieces))

    out = list(_client(handler).generate_stream("p"))
    assert out == pieces
    assert json.loads("".join(out)) == {"subject": "Subj", "body": "Body"}


def test_upstream_status_becomes_upstream_error():
    def handler(request):
        return httpx.Response(429, json={"error": {"message": "Rate limit exceeded", "type": "rate_limit"}},
                              headers={"X-Model-Used": CONFIG.model})

    with pytest.raises(GenerationError) as ei:
        _client(handler).generate("p")
    assert ei.value.kind is ErrorKind.UPSTREAM
    assert ei.value.status_code == 429


def test_timeout_becomes_network_error():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    with pytest.raises(GenerationError) as ei:
        _client(handler).generate("p")
    assert ei.value.kind is ErrorKind.NETWORK


def test_connection_failure_becomes_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(GenerationError) as ei:
        list(_client(handler).generate_stream("p"))
    assert ei.value.kind is ErrorKind.NETWORK


def test_missing_fields_are_parsing_errors():
    def handler(request):
        return httpx.Response(200, json=_completion('{"subject": "only a subject"}'))

    with pytest.raises(GenerationError) as ei:
        _client(handler).generate("p")
    assert ei.value.kind is ErrorKind.PARSING
    assert "malformed AI output" in ei.value.message


def test_empty_choices_are_parsing_errors():
    def handler(request):
        return httpx.Response(200, json={"id": "x", "object": "chat.completion", "created": 1,
                                         "model": CONFIG.model, "choices": []})

    with pytest.raises(GenerationError) as ei:
        _client(handler).generate("p")
    assert ei.value.kind is ErrorKind.PARSING


def test_check_connection():
    def handler(request):
        assert json.loads(request.content)["max_tokens"] == 10
        return httpx.Response(200, json=_completion("OK", model="google/gemini-2.0-flash-001"))

    result = _client(handler).check_connection()
    assert result == {"success": True, "message": "Connection successful",
                      "model_used": "google/gemini-2.0-flash-001"}


def test_check_connection_reports_failure_instead_of_raising():
    def handler(request):
        return httpx.Response(500, json={"error": "OPENROUTER_API_KEY not configured"})

    result = _client(handler).check_connection()
    assert result["success"] is False
