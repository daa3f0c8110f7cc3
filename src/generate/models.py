# Known models per provider, served to the UI so it can offer a picker.

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

from .types import Provider

DEFAULT_GEMINI_MODEL = "gemini-3-flash-preview"
DEFAULT_OPENROUTER_MODEL = "google/gemini-2.0-flash-exp:free"


@dataclass
class ModelInfo:
    id: str
    name: str
    description: str
    context_window: int
    max_output_tokens: int
    capabilities: List[str] = field(default_factory=list)
    recommended: bool = False
    provider: str = Provider.OPENROUTER.value

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


OPENROUTER_MODELS: List[ModelInfo] = [
    ModelInfo("google/gemini-2.0-flash-exp:free", "Gemini 2.0 Flash (Free)",
              "Fast, efficient model for quick generation", 1_000_000, 8192,
              ["text-generation", "multilingual"], recommended=True),
    ModelInfo("google/gemini-2.0-flash-thinking-exp:free", "Gemini 2.0 Flash Thinking (Free)",
              "Enhanced reasoning capabilities", 1_000_000, 8192,
              ["text-generation", "reasoning", "multilingual"]),
    ModelInfo("google/gemini-pro", "Gemini Pro",
              "Balanced performance and quality", 91_728, 8192,
              ["text-generation", "multilingual", "code"]),
    ModelInfo("anthropic/claude-3-haiku", "Claude 3 Haiku",
              "Fast and efficient for simple tasks", 200_000, 4096,
              ["text-generation", "multilingual"]),
    ModelInfo("anthropic/claude-3.5-sonnet", "Claude 3.5 Sonnet",
              "High quality with good performance", 200_000, 8192,
              ["text-generation", "reasoning", "multilingual"]),
    ModelInfo("meta-llama/llama-3.1-8b-instruct:free", "Llama 3.1 8B (Free)",
              "Open source model, good for general tasks", 128_000, 4096,
              ["text-generation", "multilingual"]),
    ModelInfo("mistralai/mistral-7b-instruct:free", "Mistral 7B (Free)",
              "Efficient open source model", 32_768, 4096,
              ["text-generation", "multilingual"]),
]


def recommended_model(provider: Provider) -> str:
    if provider is Provider.OPENROUTER:
        for m in OPENROUTER_MODELS:
            if m.recommended:
                return m.id
        return DEFAULT_OPENROUTER_MODEL
    return DEFAULT_GEMINI_MODEL


def get_model(model_id: str) -> Optional[ModelInfo]:
    for m in OPENROUTER_MODELS:
        if m.id == model_id:
            return m
    return None
