"""Versioned static price table used for cost decoration.

Prices are USD.  Token-priced models are quoted per million tokens; image
models per generated image keyed by ``"<quality>:<size>"``; speech models per
million input characters; transcription models per audio minute.  Lookups are
case-insensitive and pick the longest matching model-name prefix.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

PRICING_VERSION = "2025-06"

# model family -> {"input", "output"} USD per 1M tokens
TOKEN_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4.1": {"input": 2.00, "output": 8.00},
    "gpt-4.1-mini": {"input": 0.40, "output": 1.60},
    "gpt-4.1-nano": {"input": 0.10, "output": 0.40},
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4-turbo": {"input": 10.00, "output": 30.00},
    "gpt-4": {"input": 30.00, "output": 60.00},
    "gpt-3.5-turbo": {"input": 0.50, "output": 1.50},
    "gpt-5": {"input": 1.25, "output": 10.00},
    "gpt-5-mini": {"input": 0.25, "output": 2.00},
    "gpt-5-nano": {"input": 0.05, "output": 0.40},
    "o1": {"input": 15.00, "output": 60.00},
    "o1-mini": {"input": 1.10, "output": 4.40},
    "o3": {"input": 2.00, "output": 8.00},
    "o3-mini": {"input": 1.10, "output": 4.40},
    "o4-mini": {"input": 1.10, "output": 4.40},
    "text-embedding-3-small": {"input": 0.02, "output": 0.0},
    "text-embedding-3-large": {"input": 0.13, "output": 0.0},
    "text-embedding-ada-002": {"input": 0.10, "output": 0.0},
    "omni-moderation": {"input": 0.0, "output": 0.0},
    "text-moderation": {"input": 0.0, "output": 0.0},
}

IMAGE_PRICING: Dict[str, Dict[str, float]] = {
    "dall-e-3": {
        "standard:1024x1024": 0.040,
        "standard:1024x1792": 0.080,
        "standard:1792x1024": 0.080,
        "hd:1024x1024": 0.080,
        "hd:1024x1792": 0.120,
        "hd:1792x1024": 0.120,
    },
    "dall-e-2": {
        "standard:256x256": 0.016,
        "standard:512x512": 0.018,
        "standard:1024x1024": 0.020,
    },
}

# USD per 1M characters
SPEECH_PRICING: Dict[str, float] = {"tts-1": 15.00, "tts-1-hd": 30.00}

# USD per minute of audio
TRANSCRIPTION_PRICING: Dict[str, float] = {"whisper-1": 0.006}


def _longest_prefix(table: Dict[str, Any], model: str) -> Optional[Any]:
    key = (model or "").lower()
    best: Optional[Any] = None
    best_len = -1
    for prefix, value in table.items():
        if key.startswith(prefix) and len(prefix) > best_len:
            best = value
            best_len = len(prefix)
    return best


def lookup_token_pricing(model: str) -> Optional[Dict[str, float]]:
    return _longest_prefix(TOKEN_PRICING, model)


def lookup_image_price(model: str, size: str, quality: Optional[str] = None) -> Optional[float]:
    table = _longest_prefix(IMAGE_PRICING, model)
    if table is None:
        return None
    return table.get(f"{quality or 'standard'}:{size}")


def lookup_speech_price(model: str) -> Optional[float]:
    return _longest_prefix(SPEECH_PRICING, model)


def lookup_transcription_price(model: str) -> Optional[float]:
    return _longest_prefix(TRANSCRIPTION_PRICING, model)


def load_pricing_overrides(path: Union[str, Path]) -> str:
    """Merge a JSON price file into the in-memory tables.

    The file mirrors the module tables::

        {"version": "2025-09", "tokens": {"gpt-4o": {"input": 2.5, "output": 10}},
         "images": {...}, "speech": {...}, "transcription": {...}}

    Returns the version string now in effect.
    """

    global PRICING_VERSION
    data = json.loads(Path(path).expanduser().read_text(encoding="utf-8"))
    for name, entry in (data.get("tokens") or {}).items():
        TOKEN_PRICING[name.lower()] = {
            "input": float(entry["input"]),
            "output": float(entry.get("output", 0.0)),
        }
    for name, entry in (data.get("images") or {}).items():
        IMAGE_PRICING[name.lower()] = {k: float(v) for k, v in entry.items()}
    for name, price in (data.get("speech") or {}).items():
        SPEECH_PRICING[name.lower()] = float(price)
    for name, price in (data.get("transcription") or {}).items():
        TRANSCRIPTION_PRICING[name.lower()] = float(price)
    if data.get("version"):
        PRICING_VERSION = str(data["version"])
    return PRICING_VERSION
