# Client for OpenRouter, routed through our own /api/proxy gateway.
# The gateway speaks the OpenAI Chat Completions protocol, so we use the
# OpenAI SDK pointed at it. The real OpenRouter key lives only on the
# gateway; the key sent from here is a placeholder it strips.

import logging
from typing import Any, Dict, Iterator, List, Optional

import httpx
import openai
from openai import OpenAI

from ..errors import ErrorKind, GenerationError
from ..parsing import parse_letter
from ..prompts import build_messages_for_prompt
from ..types import GeneratedLetter, Message, ModelParams, Provider, ProviderConfig

logger = logging.getLogger(__name__)

PROXY_PLACEHOLDER_KEY = "proxy-managed"


class OpenRouterClient:
    def __init__(self, config: ProviderConfig, http_client: Optional[httpx.Client] = None):
        self.config = config
        self.model = config.model
        # no retries here: one failure goes straight back to the generator
        self.client = OpenAI(
            api_key=config.api_key or PROXY_PLACEHOLDER_KEY,
            base_url=config.proxy_base_url.rstrip("/"),
            timeout=config.timeout,
            max_retries=0,
            http_client=http_client,
        )

    def _request_kwargs(self, messages: List[Message], params: Optional[ModelParams]) -> Dict[str, Any]:
        cfg = self.config.with_overrides(params)
        kwargs: Dict[str, Any] = {
            "model": cfg.model,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
            "temperature": cfg.temperature,
            "max_tokens": cfg.max_output_tokens,
        }
        if cfg.top_p is not None:
            kwargs["top_p"] = cfg.top_p
        return kwargs

    def _translate(self, exc: Exception) -> GenerationError:
        if isinstance(exc, openai.APITimeoutError):
            return GenerationError(ErrorKind.NETWORK, f"request to proxy timed out after {self.config.timeout}s")
        if isinstance(exc, openai.APIConnectionError):
            return GenerationError(ErrorKind.NETWORK, f"unable to reach proxy: {exc}")
        if isinstance(exc, openai.APIStatusError):
            return GenerationError(ErrorKind.UPSTREAM, exc.message, status_code=exc.status_code)
        if isinstance(exc, openai.APIError):
            return GenerationError(ErrorKind.UPSTREAM, exc.message)
        return GenerationError(ErrorKind.PARSING, f"unreadable completion: {exc}")

    def complete(self, messages: List[Message], params: Optional[ModelParams] = None) -> str:
        """Non-streaming chat completion; returns choices[0].message.content."""
        try:
            resp = self.client.chat.completions.create(stream=False, **self._request_kwargs(messages, params))
        except (openai.APIError, ValueError) as e:
            raise self._translate(e) from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise GenerationError(ErrorKind.PARSING, "completion has no choices")
        message = getattr(choices[0], "message", None)
        content = getattr(message, "content", None)
        if not isinstance(content, str):
            raise GenerationError(ErrorKind.PARSING, "completion has no message content")
        return content

    def complete_stream(self, messages: List[Message], params: Optional[ModelParams] = None) -> Iterator[str]:
        """Yield choices[0].delta.content pieces until the proxy sends [DONE]."""
        try:
            stream = self.client.chat.completions.create(stream=True, **self._request_kwargs(messages, params))
        except (openai.APIError, ValueError) as e:
            raise self._translate(e) from e

        try:
            for chunk in stream:
                choices = getattr(chunk, "choices", None) or []
                if not choices:
                    continue
                delta = getattr(choices[0], "delta", None)
                content = getattr(delta, "content", None)
                if content:
                    yield content
        except (openai.APIError, httpx.HTTPError, ValueError) as e:
            if isinstance(e, httpx.TimeoutException):
                raise GenerationError(ErrorKind.NETWORK, "stream from proxy timed out") from e
            if isinstance(e, httpx.HTTPError):
                raise GenerationError(ErrorKind.NETWORK, f"stream from proxy broke off: {e}") from e
            raise self._translate(e) from e
        finally:
            stream.close()

    def generate(self, prompt: str, params: Optional[ModelParams] = None) -> GeneratedLetter:
        text = self.complete(build_messages_for_prompt(prompt), params)
        return parse_letter(text, Provider.OPENROUTER)

    def generate_stream(self, prompt: str, params: Optional[ModelParams] = None) -> Iterator[str]:
        return self.complete_stream(build_messages_for_prompt(prompt), params)

    def check_connection(self) -> Dict[str, Any]:
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": 'Respond with "OK"'}],
                max_tokens=10,
            )
        except openai.APIError as e:
            err = self._translate(e)
            logger.warning("OpenRouter connection check failed: %s", err)
            return {"success": False, "message": err.message}

        model_used = getattr(resp, "model", None)
        choices = getattr(resp, "choices", None) or []
        content = ""
        if choices:
            content = getattr(getattr(choices[0], "message", None), "content", None) or ""
        if "OK" in content:
            return {"success": True, "message": "Connection successful", "model_used": model_used}
        return {"success": False, "message": "Unexpected response from API", "model_used": model_used}
