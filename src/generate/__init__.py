# Generator package

# Makes generate/ importable and exposes key interfaces.

from .errors import ErrorKind, GenerationError
from .generator import ObjectionGenerator, make_client, substitute_placeholders
from .types import (
    GeneratedLetter,
    GenerationMode,
    Language,
    Message,
    ModelParams,
    ObjectionRequest,
    ObjectionTone,
    Provider,
    ProviderConfig,
    Template,
)

__all__ = [
    "ErrorKind",
    "GenerationError",
    "ObjectionGenerator",
    "make_client",
    "substitute_placeholders",
    "GeneratedLetter",
    "GenerationMode",
    "Language",
    "Message",
    "ModelParams",
    "ObjectionRequest",
    "ObjectionTone",
    "Provider",
    "ProviderConfig",
    "Template",
]
