"""Keyword-based routing of free-text prompts to an endpoint family.

:func:`route_prompt` is a pure function of the prompt text and whether image
attachments are present.  Patterns are tried in a fixed order and the first
match wins; there is no scoring between competing matches.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Optional, Pattern, Tuple, Union

from .core.errors import ValidationFailed


class PromptType(str, Enum):
    VISION = "vision"
    IMAGE_GENERATION = "image_generation"
    SPEECH = "speech"
    TRANSCRIPTION = "transcription"
    EMBEDDING = "embedding"
    MODERATION = "moderation"
    CHAT = "chat"


_IMAGE_VERBS = r"(?:draw|create|generate|make|design|paint|sketch|render)"
_IMAGE_NOUNS = r"(?:image|picture|photo|illustration|artwork|drawing|logo|painting)s?"

_RULES: Tuple[Tuple[PromptType, Pattern[str]], ...] = (
    (
        PromptType.IMAGE_GENERATION,
        re.compile(
            rf"\b{_IMAGE_VERBS}\b.*\b{_IMAGE_NOUNS}\b|^\s*(?:please\s+)?(?:draw|paint|sketch)\b",
            re.I | re.S,
        ),
    ),
    (
        PromptType.SPEECH,
        re.compile(
            r"\b(?:say|speak|voice|audio|read\s+aloud|pronounce)\b|\bspeech\b(?![\s-]+to[\s-]+text)",
            re.I,
        ),
    ),
    (
        PromptType.TRANSCRIPTION,
        re.compile(
            r"\b(?:transcribe|transcription|transcript|dictation)\b|\bspeech[\s-]+to[\s-]+text\b",
            re.I,
        ),
    ),
    (
        PromptType.EMBEDDING,
        re.compile(r"\b(?:embed|embeds|embedding|embeddings|similarity|vectors?)\b", re.I),
    ),
    (
        PromptType.MODERATION,
        re.compile(
            r"\b(?:moderate|moderation|polic(?:y|ies)|violations?|violates?|(?:in)?appropriate|offensive)\b",
            re.I,
        ),
    ),
)


def route_prompt(text: Optional[str], has_images: bool = False) -> PromptType:
    """Return the endpoint family ``text`` most likely asks for."""

    if has_images:
        return PromptType.VISION
    body = text or ""
    for prompt_type, pattern in _RULES:
        if pattern.search(body):
            return prompt_type
    return PromptType.CHAT


def coerce_prompt_type(value: Union[str, PromptType]) -> PromptType:
    if isinstance(value, PromptType):
        return value
    try:
        return PromptType(str(value).strip().lower().replace("-", "_"))
    except ValueError:
        options = ", ".join(t.value for t in PromptType)
        raise ValidationFailed(f"Unknown prompt type {value!r}; expected one of {options}") from None
