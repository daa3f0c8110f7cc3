# Client for Google Gemini, called directly through the google-genai SDK.
# Gemini supports structured output, so the JSON shape is enforced with a
# response schema instead of prompt wording alone.

from typing import Iterator, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from ..errors import ErrorKind, GenerationError
from ..parsing import parse_letter
from ..prompts import SYSTEM_INSTRUCTION
from ..types import GeneratedLetter, ModelParams, Provider, ProviderConfig

LETTER_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "subject": types.Schema(type=types.Type.STRING),
        "body": types.Schema(type=types.Type.STRING),
    },
    required=["subject", "body"],
)


class GeminiClient:
    def __init__(self, config: ProviderConfig, client: Optional[genai.Client] = None):
        self.config = config
        self.model = config.model
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.config.api_key:
                raise GenerationError(ErrorKind.CONFIGURATION, "GEMINI_API_KEY not configured")
            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options=types.HttpOptions(timeout=int(self.config.timeout * 1000)),
            )
        return self._client

    def _content_config(self, params: Optional[ModelParams]) -> types.GenerateContentConfig:
        cfg = self.config.with_overrides(params)
        return types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            response_mime_type="application/json",
            response_schema=LETTER_SCHEMA,
            temperature=cfg.temperature,
            max_output_tokens=cfg.max_output_tokens,
            top_p=cfg.top_p,
        )

    @staticmethod
    def _translate(exc: Exception) -> GenerationError:
        if isinstance(exc, genai_errors.APIError):
            return GenerationError(ErrorKind.UPSTREAM, exc.message or str(exc), status_code=exc.code)
        if isinstance(exc, httpx.TimeoutException):
            return GenerationError(ErrorKind.NETWORK, "Gemini request timed out")
        return GenerationError(ErrorKind.NETWORK, f"unable to reach Gemini: {exc}")

    def generate(self, prompt: str, params: Optional[ModelParams] = None) -> GeneratedLetter:
        try:
            resp = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self._content_config(params),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise self._translate(e) from e
        return parse_letter(resp.text, Provider.GEMINI)

    def generate_stream(self, prompt: str, params: Optional[ModelParams] = None) -> Iterator[str]:
        try:
            for chunk in self.client.models.generate_content_stream(
                model=self.model,
                contents=prompt,
                config=self._content_config(params),
            ):
                if chunk.text:
                    yield chunk.text
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise self._translate(e) from e
