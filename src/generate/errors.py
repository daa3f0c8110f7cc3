from __future__ import annotations
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    UPSTREAM = "upstream"
    PARSING = "parsing"
    NETWORK = "network"


class GenerationError(Exception):
    """Raised anywhere in the letter pipeline; `kind` decides what the caller does with it."""

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code

    @property
    def recoverable(self) -> bool:
        # a bad request is the caller's problem; everything else ends in a template letter
        return self.kind is not ErrorKind.VALIDATION

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"[{self.kind.value}] {self.message} (status {self.status_code})"
        return f"[{self.kind.value}] {self.message}"
