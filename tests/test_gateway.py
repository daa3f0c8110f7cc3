# ===============================================
# tests/test_gateway.py
# Proxy gateway: routing table, validation, header
# handling and upstream relay (httpx MockTransport
# stands in for OpenRouter).
# ===============================================

import json

import httpx
from fastapi.testclient import TestClient

from src.app import app
from src.proxy.gateway import OPENROUTER_API_URL, get_upstream_transport
from src.settings import get_settings, settings

client = TestClient(app)

VALID_BODY = {
    "model": "google/gemini-2.0-flash-exp:free",
    "messages": [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hi"},
    ],
}


class ChunkedBody(httpx.AsyncByteStream):
    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


def _with_key(key="test-key"):
    app.dependency_overrides[get_settings] = lambda: settings.model_copy(update={"OPENROUTER_API_KEY": key})


def _upstream(handler):
    """Route the OpenRouter hop to `handler`; returns the list of requests it saw."""
    seen = []

    def record(request):
        seen.append(request)
        return handler(request)

    app.dependency_overrides[get_upstream_transport] = lambda: httpx.MockTransport(record)
    return seen


def _reply(status=200, json_body=None):
    return _upstream(lambda request: httpx.Response(status, json=json_body))


def setup_function():
    _with_key()


def teardown_function():
    app.dependency_overrides.clear()


# --- routing ---------------------------------------------------------------

def test_info_endpoint():
    r = client.get("/api/proxy")
    assert r.status_code == 200
    assert r.json()["endpoints"]["chat"] == "/api/proxy/chat/completions"


def test_info_endpoint_works_without_credential():
    _with_key(None)
    r = client.get("/api/proxy")
    assert r.status_code == 200
    assert r.json()["status"] == "operational"


def test_get_on_completions_is_405():
    r = client.get("/api/proxy/chat/completions")
    assert r.status_code == 405
    assert r.headers["allow"] == "POST, OPTIONS"


def test_options_preflight_anywhere():
    for path in ("/api/proxy/chat/completions", "/api/proxy", "/somewhere/else"):
        r = client.options(path)
        assert r.status_code == 204
        assert r.content == b""
        assert r.headers["access-control-allow-origin"] == "*"
        assert "POST" in r.headers["access-control-allow-methods"]


def test_unknown_paths_and_methods():
    assert client.get("/api/proxy/models").status_code == 404
    assert client.post("/api/proxy/embeddings", json={}).status_code == 404

    r = client.delete("/api/proxy/models")
    assert r.status_code == 405
    assert r.headers["allow"] == "GET, POST, OPTIONS"

    r = client.put("/api/proxy/chat/completions", json=VALID_BODY)
    assert r.status_code == 405
    assert r.headers["allow"] == "POST, OPTIONS"


# --- POST validation ------------------------------------------------------

def test_missing_credential_is_500():
    _with_key(None)
    seen = _reply(200, {})
    r = client.post("/api/proxy/chat/completions", json=VALID_BODY)
    assert r.status_code == 500
    assert r.json() == {"error": "OPENROUTER_API_KEY not configured"}
    assert r.headers["access-control-allow-origin"] == "*"
    assert seen == []


def test_bogus_role_is_400_and_names_index_and_field():
    seen = _reply(200, {})
    r = client.post("/api/proxy/chat/completions", json={
        "model": "m",
        "messages": [{"role": "bogus", "content": "hi"}],
    })
    assert r.status_code == 400
    err = r.json()["error"]
    assert "index 0" in err
    assert "role" in err
    assert seen == []


def test_validation_messages():
    cases = [
        ({"messages": [{"role": "user", "content": "x"}]}, "model"),
        ({"model": "m", "messages": []}, "messages"),
        ({"model": "m", "messages": [{"role": "user", "content": "ok"}, {"role": "user", "content": ""}]}, "index 1"),
        ({"model": "m", "messages": [{"content": "x"}]}, "role"),
        ({"model": "m", "messages": [{"role": "user", "content": "x"}], "stream": "yes"}, "stream"),
        ({"model": "m", "messages": [{"role": "user", "content": "x"}], "max_tokens": 0}, "max_tokens"),
    ]
    for body, needle in cases:
        r = client.post("/api/proxy/chat/completions", json=body)
        assert r.status_code == 400, body
        assert needle in r.json()["error"], body


def test_invalid_json_body_is_400():
    r = client.post(
        "/api/proxy/chat/completions",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )
    assert r.status_code == 400


# --- forwarding -----------------------------------------------------------

def test_upstream_request_gets_defaults_and_server_credential():
    completion = {
        "id": "gen-1",
        "object": "chat.completion",
        "created": 1,
        "model": VALID_BODY["model"],
        "choices": [{"index": 0, "message": {"role": "assistant", "content": "hello"}, "finish_reason": "stop"}],
    }
    seen = _reply(200, completion)
    r = client.post(
        "/api/proxy/chat/completions",
        json=VALID_BODY,
        headers={"Authorization": "Bearer client-supplied", "X-Custom": "kept"},
    )

    assert r.status_code == 200
    assert r.json() == completion
    assert r.headers["x-model-used"] == VALID_BODY["model"]

    [sent] = seen
    assert str(sent.url) == OPENROUTER_API_URL
    assert sent.headers["authorization"] == "Bearer test-key"
    assert sent.headers["x-custom"] == "kept"
    assert sent.headers["http-referer"] == settings.OPENROUTER_SITE_URL
    assert sent.headers["x-title"] == settings.OPENROUTER_APP_NAME
    assert sent.headers["content-type"].startswith("application/json")
    assert sent.headers["host"] == "openrouter.ai"

    payload = json.loads(sent.content)
    assert payload["temperature"] == 0.7
    assert payload["max_tokens"] == 2048
    assert payload["stream"] is False
    assert sent.extensions["timeout"]["read"] == settings.UPSTREAM_TIMEOUT


def test_upstream_429_is_relayed_with_model_header():
    _reply(429, {"error": {"message": "Rate limit exceeded", "code": 429}})
    r = client.post("/api/proxy/chat/completions", json=VALID_BODY)
    assert r.status_code == 429
    assert r.headers["x-model-used"] == VALID_BODY["model"]
    assert r.json()["error"]["message"] == "Rate limit exceeded"


def test_upstream_error_without_json_gets_generic_body():
    _upstream(lambda request: httpx.Response(503, text="<html>down</html>"))
    r = client.post("/api/proxy/chat/completions", json=VALID_BODY)
    assert r.status_code == 503
    assert r.json()["error"]["type"] == "upstream_error"
    assert "Service Unavailable" in r.json()["error"]["message"]
    assert r.headers["x-model-used"] == VALID_BODY["model"]


def test_upstream_timeout_is_504():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    _upstream(handler)
    r = client.post("/api/proxy/chat/completions", json=VALID_BODY)
    assert r.status_code == 504
    assert r.json()["error"]["type"] == "proxy_error"


def test_upstream_unreachable_is_502():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    _upstream(handler)
    r = client.post("/api/proxy/chat/completions", json=VALID_BODY)
    assert r.status_code == 502
    assert r.json()["error"]["type"] == "proxy_error"


def test_streaming_is_relayed_as_sse():
    body = ChunkedBody([
        b'data: {"choices": [{"index": 0, "delta": {"content": "Hel"}}]}\n',
        b'\n: keep-alive\n\ndata: {"choices": [{"index": 0, ',
        b'"delta": {"content": "lo"}}]}\n\ndata: not-json\n\ndata: [DONE]\n\n',
    ])
    seen = _upstream(lambda request: httpx.Response(
        200, headers={"Content-Type": "text/event-stream"}, stream=body,
    ))
    r = client.post("/api/proxy/chat/completions", json={**VALID_BODY, "stream": True})

    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")
    assert r.headers["cache-control"] == "no-cache"
    assert r.headers["x-accel-buffering"] == "no"
    assert r.headers["x-model-used"] == VALID_BODY["model"]
    assert r.text == (
        'data: {"choices":[{"index":0,"delta":{"content":"Hel"}}]}\n\n'
        'data: {"choices":[{"index":0,"delta":{"content":"lo"}}]}\n\n'
        "data: not-json\n\n"
        "data: [DONE]\n\n"
    )
    assert json.loads(seen[0].content)["stream"] is True
    assert body.closed
