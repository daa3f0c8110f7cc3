# Static bilingual backup letters, read from templates.yaml next to this file.

from __future__ import annotations
import os
from functools import lru_cache
from typing import Dict, List, Union

import yaml

from .types import Language, Template

TEMPLATES_PATH = os.path.join(os.path.dirname(__file__), "templates.yaml")
DEFAULT_TOPIC = "general"


@lru_cache(maxsize=1)
def load_templates() -> Dict[str, Dict[str, Template]]:
    if not os.path.exists(TEMPLATES_PATH):
        raise FileNotFoundError(f"templates.yaml not found at {TEMPLATES_PATH}")
    with open(TEMPLATES_PATH, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return {
        lang: {key: Template(subject=t["subject"], body=t["body"]) for key, t in topics.items()}
        for lang, topics in data.items()
    }


def _lang_key(language: Union[Language, str]) -> str:
    return language.value if isinstance(language, Language) else str(language)


def list_topics(language: Union[Language, str]) -> List[str]:
    templates = load_templates()
    lang = _lang_key(language)
    if lang not in templates:
        raise KeyError(f"No templates for language '{lang}'")
    return list(templates[lang].keys())


def get_template(language: Union[Language, str], topic_key: str = DEFAULT_TOPIC) -> Template:
    templates = load_templates()
    lang = _lang_key(language)
    if lang not in templates:
        raise KeyError(f"No templates for language '{lang}'")
    if topic_key not in templates[lang]:
        raise KeyError(f"Template '{topic_key}' not found for language '{lang}'")
    return templates[lang][topic_key]
