# Turn raw model text into a validated letter.
# Models wrap JSON in prose or code fences often enough that we cut out the
# first balanced {...} before parsing.

from __future__ import annotations
import json
from dataclasses import dataclass
from typing import Any, Optional

from .errors import ErrorKind, GenerationError
from .types import GeneratedLetter, Provider


@dataclass
class PayloadCheck:
    valid: bool
    reason: str = ""
    subject: str = ""
    body: str = ""


def extract_json_object(text: str) -> Optional[str]:
    """
    Return the first balanced {...} substring of `text`, or None.
    Braces inside JSON string literals (and escaped quotes) do not count.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def validate_letter_payload(obj: Any) -> PayloadCheck:
    if not isinstance(obj, dict):
        return PayloadCheck(False, f"expected a JSON object, got {type(obj).__name__}")
    subject = obj.get("subject")
    body = obj.get("body")
    if not isinstance(subject, str) or not subject.strip():
        return PayloadCheck(False, "missing or empty 'subject'")
    if not isinstance(body, str) or not body.strip():
        return PayloadCheck(False, "missing or empty 'body'")
    return PayloadCheck(True, subject=subject.strip(), body=body.strip())


def parse_letter(text: Optional[str], provider: Provider) -> GeneratedLetter:
    if not text:
        raise GenerationError(ErrorKind.PARSING, "malformed AI output: empty response")
    raw = extract_json_object(text)
    if raw is None:
        raise GenerationError(ErrorKind.PARSING, "malformed AI output: no JSON object found")
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as e:
        raise GenerationError(ErrorKind.PARSING, f"malformed AI output: {e.msg}") from e

    check = validate_letter_payload(obj)
    if not check.valid:
        raise GenerationError(ErrorKind.PARSING, f"malformed AI output: {check.reason}")
    return GeneratedLetter(subject=check.subject, body=check.body, provider=provider)
