# Typed dataclasses shared across the generator layer:
# what the user asks for, what the model is called with, what comes back.

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional

from .errors import ErrorKind, GenerationError


class Language(str, Enum):
    EN = "en"
    TA = "ta"

    @property
    def language_name(self) -> str:
        return "Tamil" if self is Language.TA else "English"


class ObjectionTone(str, Enum):
    FIRM = "Firm & Formal"
    POLITE = "Polite & Concerned"
    EXPERT = "Policy-Focused"
    CITIZEN = "Daily Commuter Perspective"


class GenerationMode(str, Enum):
    AUTO = "Auto-Draft"
    MANUAL = "Write My Own"


class Provider(str, Enum):
    GEMINI = "gemini"
    OPENROUTER = "openrouter"
    FALLBACK = "fallback"


@dataclass
class Message:
    """Single chat turn: system, user, or assistant."""
    role: str
    content: str


@dataclass
class ModelParams:
    """Per-call overrides of the process-wide provider config."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None


@dataclass(frozen=True)
class ProviderConfig:
    """Provider settings resolved once at startup."""
    provider: Provider
    model: str
    temperature: float = 0.7
    max_output_tokens: int = 2048
    top_p: Optional[float] = None
    streaming: bool = False
    timeout: float = 30.0
    proxy_base_url: str = "http://localhost:8000/api/proxy"
    api_key: Optional[str] = field(default=None, repr=False)

    def with_overrides(self, params: Optional[ModelParams]) -> "ProviderConfig":
        if params is None:
            return self
        return replace(
            self,
            temperature=self.temperature if params.temperature is None else params.temperature,
            max_output_tokens=self.max_output_tokens if params.max_tokens is None else params.max_tokens,
            top_p=self.top_p if params.top_p is None else params.top_p,
        )


@dataclass
class ObjectionRequest:
    """What the user filled in on the form."""
    name: str
    location: str
    tone: ObjectionTone
    concerns: List[str]
    language: Language = Language.EN
    mode: GenerationMode = GenerationMode.AUTO
    custom_text: Optional[str] = None

    @property
    def has_custom_text(self) -> bool:
        return bool(self.custom_text and self.custom_text.strip())

    def validate(self) -> None:
        if not self.name.strip() or not self.location.strip():
            raise GenerationError(ErrorKind.VALIDATION, "name and location are required")
        if self.mode is GenerationMode.AUTO and not any(c.strip() for c in self.concerns):
            raise GenerationError(ErrorKind.VALIDATION, "select at least one concern")
        if self.mode is GenerationMode.MANUAL and not self.has_custom_text:
            raise GenerationError(ErrorKind.VALIDATION, "custom text is required in manual mode")


@dataclass
class GeneratedLetter:
    subject: str
    body: str
    is_optimized: bool = False
    provider: Provider = Provider.FALLBACK


@dataclass(frozen=True)
class Template:
    subject: str
    body: str
