# ObjectionGenerator:
# - picks the provider client from the startup ProviderConfig
# - builds the prompt from the user's form input
# - returns a GeneratedLetter, falling back to the static templates
#   whenever the model call or its output fails

from __future__ import annotations
import logging
import re
from dataclasses import replace
from typing import Optional

from .errors import GenerationError
from .parsing import parse_letter
from .prompts import build_prompt
from .templates import DEFAULT_TOPIC, get_template
from .types import (
    GeneratedLetter,
    GenerationMode,
    Language,
    ModelParams,
    ObjectionRequest,
    Provider,
    ProviderConfig,
)

logger = logging.getLogger(__name__)

_NAME_TOKEN = re.compile(r"\[Your Name\]", re.IGNORECASE)
_LOCATION_TOKEN = re.compile(r"\[Your Location\]", re.IGNORECASE)

# Manual-mode fallback wraps the user's text in a salutation and sign-off in
# the letter's own language, so a Tamil letter is not framed in English.
MANUAL_FALLBACK_FRAME = {
    Language.EN: ("Dear Sir/Madam,", "Sincerely,"),
    Language.TA: ("ஐயா/அம்மா,", "இப்படிக்கு,"),
}


def make_client(config: ProviderConfig):
    if config.provider is Provider.GEMINI:
        from .clients.gemini_client import GeminiClient
        return GeminiClient(config)
    if config.provider is Provider.OPENROUTER:
        from .clients.openrouter_client import OpenRouterClient
        return OpenRouterClient(config)
    raise ValueError(f"No client for provider '{config.provider.value}'")


def substitute_placeholders(body: str, name: str, location: str) -> str:
    # callables so backslashes in user input are not read as group references
    body = _NAME_TOKEN.sub(lambda _: name, body)
    return _LOCATION_TOKEN.sub(lambda _: location, body)


class ObjectionGenerator:
    def __init__(self, config: ProviderConfig, model_client=None):
        self.config = config
        self.model_client = model_client if model_client is not None else make_client(config)

    def _call_model(self, prompt: str, params: Optional[ModelParams]) -> GeneratedLetter:
        if self.config.streaming:
            text = "".join(self.model_client.generate_stream(prompt, params))
            return parse_letter(text, self.config.provider)
        return self.model_client.generate(prompt, params)

    def fallback_letter(self, request: ObjectionRequest) -> GeneratedLetter:
        """Network-free letter from the `general` template of the request language."""
        template = get_template(request.language, DEFAULT_TOPIC)
        body = substitute_placeholders(template.body, request.name, request.location)

        if request.mode is GenerationMode.MANUAL and request.has_custom_text:
            salutation, sign_off = MANUAL_FALLBACK_FRAME[request.language]
            body = (
                f"{salutation}\n\n{request.custom_text.strip()}\n\n"
                f"{sign_off}\n{request.name}\n{request.location}"
            )

        return GeneratedLetter(
            subject=template.subject,
            body=body,
            is_optimized=False,
            provider=Provider.FALLBACK,
        )

    def generate_objection_email(
        self,
        request: ObjectionRequest,
        params: Optional[ModelParams] = None,
    ) -> GeneratedLetter:
        """Main entry point. Only a VALIDATION error escapes; everything else falls back."""
        request.validate()
        prompt = build_prompt(request)

        try:
            letter = self._call_model(prompt, params)
        except GenerationError as e:
            if not e.recoverable:
                raise
            logger.warning("AI generation failed (%s), falling back to templates: %s", e.kind.value, e.message)
            return self.fallback_letter(request)
        except Exception as e:  # noqa: BLE001 - any client failure must still yield a letter
            logger.exception("Unexpected error from %s client, falling back to templates: %s",
                             self.config.provider.value, e)
            return self.fallback_letter(request)

        return replace(
            letter,
            body=substitute_placeholders(letter.body, request.name, request.location),
            is_optimized=request.mode is GenerationMode.MANUAL,
            provider=self.config.provider,
        )
