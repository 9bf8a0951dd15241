"""Derived fields attached to API results: costs, risk levels, capabilities."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

import tiktoken

from . import pricing

RISK_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (0.9, "Critical"),
    (0.7, "High"),
    (0.5, "Medium"),
)
REVIEW_LEVELS = {"Critical", "High"}

VISION_MODELS = (
    "gpt-4o",
    "gpt-4.1",
    "gpt-4-turbo",
    "gpt-4-vision",
    "gpt-5",
    "o1",
    "o3",
    "o4-mini",
)
REASONING_MODELS = ("o1", "o3", "o4", "gpt-5")


def _approx_tokens(text: str) -> int:
    """Roughly estimate the token count from a string by assuming ~1.5 tokens per word."""
    return int(len(str(text).split()) * 1.5)


def _get_tokenizer(model_name: str):
    """Return a tiktoken encoding for the model or a sensible default."""
    try:
        return tiktoken.encoding_for_model(model_name)
    except Exception:
        class _ApproxEncoder:
            def encode(self, text: str) -> List[int]:
                return [0] * max(1, _approx_tokens(text))

        return _ApproxEncoder()


def count_tokens(text: str, model: str) -> int:
    if not text:
        return 0
    return len(_get_tokenizer(model).encode(text))


def estimate_cost(
    model: str,
    prompt_tokens: Optional[int],
    completion_tokens: Optional[int] = 0,
) -> Optional[float]:
    """Return the USD cost of a call from reported token usage.

    ``None`` is returned when the model has no entry in the price table or
    the usage is unknown.
    """

    price = pricing.lookup_token_pricing(model)
    if price is None or prompt_tokens is None:
        return None
    cost = (prompt_tokens / 1_000_000) * price["input"]
    cost += ((completion_tokens or 0) / 1_000_000) * price["output"]
    return round(cost, 8)


def risk_level(max_score: float, flagged: bool = False) -> str:
    for threshold, label in RISK_THRESHOLDS:
        if max_score > threshold:
            return label
    return "Low" if flagged else "Safe"


def requires_review(level: str, flagged: bool) -> bool:
    return bool(flagged) or level in REVIEW_LEVELS


def top_category(scores: Mapping[str, float]) -> Tuple[Optional[str], float]:
    """Return the highest scoring category and its score."""

    best_name: Optional[str] = None
    best_score = 0.0
    for name, score in scores.items():
        value = float(score or 0.0)
        if best_name is None or value > best_score:
            best_name, best_score = name, value
    return best_name, best_score


def _matches(model: str, names: Tuple[str, ...]) -> bool:
    lowered = (model or "").lower()
    return any(lowered == n or lowered.startswith(n + "-") or lowered.startswith(n + ".") for n in names)


def model_capabilities(model: str) -> Dict[str, bool]:
    """Infer feature flags from a resolved model name."""

    reasoning = _matches(model, REASONING_MODELS)
    return {
        "vision_capable": _matches(model, VISION_MODELS),
        "reasoning_model": reasoning,
        "supports_temperature": not reasoning,
    }
