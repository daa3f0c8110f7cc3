# ============================================================
# OpenRouter proxy gateway
# ------------------------------------------------------------
# Stateless forwarder between the letter client and OpenRouter:
#   - holds the OpenRouter key server-side and injects it
#   - validates the OpenAI-style chat payload before forwarding
#   - relays upstream errors, JSON bodies and SSE streams
# ============================================================

import json
import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse

from src.settings import Settings, get_settings
from .sse import relay_sse

logger = logging.getLogger(__name__)

OPENROUTER_API_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
VALID_ROLES = ("system", "user", "assistant")

# never copied from the client request
DROPPED_HEADERS = {
    "authorization",
    "host",
    "content-length",
    "connection",
    "keep-alive",
    "proxy-authorization",
    "proxy-connection",
    "te",
    "trailer",
    "transfer-encoding",
    "upgrade",
}

SERVICE_INFO = {
    "name": "OpenRouter Proxy",
    "version": "1.0.0",
    "status": "operational",
    "provider": "openrouter",
    "endpoints": {"chat": "/api/proxy/chat/completions"},
    "documentation": "https://openrouter.ai/docs",
}

router = APIRouter(prefix="/api/proxy", tags=["proxy"])


# ------------------------------------------------------------
# Helpers
# ------------------------------------------------------------
def _error(status: int, error: Any, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status, content={"error": error}, headers=headers)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_chat_request(body: Any) -> Optional[str]:
    """Return a message naming the offending field, or None if the payload is usable."""
    if not isinstance(body, dict):
        return "Request body must be a JSON object"
    model = body.get("model")
    if not isinstance(model, str) or not model.strip():
        return "Field 'model' is required and must be a non-empty string"

    messages = body.get("messages")
    if not isinstance(messages, list) or not messages:
        return "Field 'messages' is required and must be a non-empty array"
    for i, msg in enumerate(messages):
        if not isinstance(msg, dict):
            return f"Message at index {i} must be an object"
        role = msg.get("role")
        if not isinstance(role, str) or not role:
            return f"Message at index {i} is missing required field 'role'"
        if role not in VALID_ROLES:
            return f"Message at index {i} has invalid 'role': {role!r} (expected one of {', '.join(VALID_ROLES)})"
        content = msg.get("content")
        if not isinstance(content, str) or not content:
            return f"Message at index {i} is missing required field 'content'"

    for key in ("temperature", "top_p"):
        if body.get(key) is not None and not _is_number(body[key]):
            return f"Field '{key}' must be a number"
    max_tokens = body.get("max_tokens")
    if max_tokens is not None and (not isinstance(max_tokens, int) or isinstance(max_tokens, bool) or max_tokens <= 0):
        return "Field 'max_tokens' must be a positive integer"
    if body.get("stream") is not None and not isinstance(body["stream"], bool):
        return "Field 'stream' must be a boolean"
    stop = body.get("stop")
    if stop is not None and (not isinstance(stop, list) or not all(isinstance(s, str) for s in stop)):
        return "Field 'stop' must be an array of strings"
    return None


def build_upstream_payload(body: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "model": body["model"],
        "messages": [{"role": m["role"], "content": m["content"]} for m in body["messages"]],
        "temperature": body["temperature"] if body.get("temperature") is not None else DEFAULT_TEMPERATURE,
        "max_tokens": body.get("max_tokens") or DEFAULT_MAX_TOKENS,
        "stream": bool(body.get("stream", False)),
    }
    if body.get("top_p") is not None:
        payload["top_p"] = body["top_p"]
    if body.get("stop") is not None:
        payload["stop"] = body["stop"]
    return payload


def build_upstream_headers(incoming: Any, settings: Settings) -> httpx.Headers:
    headers = httpx.Headers()
    for key, value in incoming.items():
        if key.lower() not in DROPPED_HEADERS:
            headers[key] = value
    headers["Authorization"] = f"Bearer {settings.OPENROUTER_API_KEY}"
    headers["HTTP-Referer"] = settings.OPENROUTER_SITE_URL
    headers["X-Title"] = settings.OPENROUTER_APP_NAME
    if "Content-Type" not in headers:
        headers["Content-Type"] = "application/json"
    return headers


def _upstream_error_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {
            "error": {
                "message": f"OpenRouter API error: {resp.reason_phrase or resp.status_code}",
                "type": "upstream_error",
            }
        }


async def _stream_and_close(resp: httpx.Response, client: httpx.AsyncClient):
    # generator close (client gone) or end of body both release the upstream connection
    try:
        async for event in relay_sse(resp.aiter_bytes()):
            yield event
    finally:
        await resp.aclose()
        await client.aclose()


def _transport_error(exc: httpx.HTTPError, model: str, timeout: float) -> JSONResponse:
    if isinstance(exc, httpx.TimeoutException):
        logger.warning("OpenRouter timed out after %ss (model=%s)", timeout, model)
        return _error(
            504,
            {"message": f"Proxy error: upstream timed out after {timeout}s", "type": "proxy_error"},
            headers={"X-Model-Used": model},
        )
    logger.warning("OpenRouter unreachable (model=%s): %s", model, exc)
    return _error(
        502,
        {"message": f"Proxy error: {exc}", "type": "proxy_error"},
        headers={"X-Model-Used": model},
    )


async def get_upstream_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Transport for the OpenRouter hop; None means the real network."""
    return None


# ------------------------------------------------------------
# Routes
# ------------------------------------------------------------
# Every handler here is async and never touches the worker-thread pool.
@router.get("")
async def service_info():
    return SERVICE_INFO


@router.api_route("", methods=["POST", "PUT", "PATCH", "DELETE"])
async def proxy_root_other(request: Request):
    if request.method == "POST":
        return _error(404, "Endpoint not found")
    return _error(405, "Method not allowed", headers={"Allow": "GET, POST, OPTIONS"})


@router.api_route("/chat/completions", methods=["GET", "PUT", "PATCH", "DELETE"])
async def chat_completions_wrong_method():
    return _error(405, "Use POST method for chat completions", headers={"Allow": "POST, OPTIONS"})


@router.post("/chat/completions")
async def chat_completions(
    request: Request,
    settings: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_upstream_transport),
):
    # 1) credential
    if not settings.OPENROUTER_API_KEY:
        logger.error("OPENROUTER_API_KEY is not configured; rejecting proxy request")
        return _error(500, "OPENROUTER_API_KEY not configured")

    # 2) payload
    try:
        body = json.loads(await request.body() or b"null")
    except ValueError:
        return _error(400, "Request body must be valid JSON")
    problem = validate_chat_request(body)
    if problem:
        return _error(400, problem)

    # 3) defaults + 4) headers
    payload = build_upstream_payload(body)
    model = payload["model"]
    headers = build_upstream_headers(request.headers, settings)

    # 5) forward
    client = httpx.AsyncClient(transport=transport, timeout=settings.UPSTREAM_TIMEOUT)
    upstream_request = client.build_request(
        "POST",
        OPENROUTER_API_URL,
        content=json.dumps(payload).encode("utf-8"),
        headers=headers,
    )
    try:
        resp = await client.send(upstream_request, stream=True)
    except httpx.HTTPError as e:
        await client.aclose()
        return _transport_error(e, model, settings.UPSTREAM_TIMEOUT)

    # 8) stream; the relay owns resp and client from here on
    if resp.is_success and payload["stream"]:
        return StreamingResponse(
            _stream_and_close(resp, client),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
                "X-Model-Used": model,
            },
        )

    try:
        await resp.aread()
    except httpx.HTTPError as e:
        return _transport_error(e, model, settings.UPSTREAM_TIMEOUT)
    finally:
        await resp.aclose()
        await client.aclose()

    # 6) upstream error
    if not resp.is_success:
        logger.warning("OpenRouter returned %s for model=%s", resp.status_code, model)
        return JSONResponse(
            status_code=resp.status_code,
            content=_upstream_error_body(resp),
            headers={"X-Model-Used": model},
        )

    # 7) plain JSON
    try:
        data = resp.json()
    except ValueError:
        return _error(
            502,
            {"message": "OpenRouter returned a non-JSON body", "type": "upstream_error"},
            headers={"X-Model-Used": model},
        )
    return JSONResponse(status_code=resp.status_code, content=data, headers={"X-Model-Used": model})


@router.api_route("/{rest:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def unknown_proxy_path(request: Request, rest: str):
    if request.method in ("GET", "POST"):
        return _error(404, "Endpoint not found")
    return _error(405, "Method not allowed", headers={"Allow": "GET, POST, OPTIONS"})


# ------------------------------------------------------------
# CORS (public proxy, no cookies)
# ------------------------------------------------------------
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


async def cors_middleware(request: Request, call_next):
    """Answer every preflight with 204 and stamp CORS headers on everything else."""
    if request.method == "OPTIONS":
        return Response(status_code=204, headers={**CORS_HEADERS, "Access-Control-Max-Age": "86400"})
    response = await call_next(request)
    for key, value in CORS_HEADERS.items():
        response.headers.setdefault(key, value)
    return response
