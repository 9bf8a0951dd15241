"""Runtime configuration for :class:`oaiwrap.client.OpenAIClient`."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ValidationFailed

DEFAULT_MODEL = "gpt-4o-mini"

# environment variable -> settings field
_ENV_FIELDS = {
    "OAIWRAP_MODEL": "model",
    "OAIWRAP_MAX_TOKENS": "max_tokens",
    "OAIWRAP_TEMPERATURE": "temperature",
    "OAIWRAP_TIMEOUT": "timeout_seconds",
    "OPENAI_BASE_URL": "base_url",
}


class Settings(BaseModel):
    """Defaults applied when a call does not override them."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    max_tokens: int = Field(default=1000, ge=1, le=128_000)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=120.0, ge=1.0, le=600.0)
    base_url: Optional[str] = None
    poll_interval: float = Field(default=2.0, ge=1.0, le=10.0)
    max_wait: float = Field(default=60.0, ge=10.0, le=600.0)
    throttle_limit: int = Field(default=5, ge=1, le=10)

    @classmethod
    def create(cls, **values: Any) -> "Settings":
        try:
            return cls(**values)
        except ValidationError as exc:
            raise ValidationFailed(_format_validation_error(exc)) from exc

    @classmethod
    def from_env(cls, **overrides: Any) -> "Settings":
        values: Dict[str, Any] = {}
        for env_name, field in _ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw not in (None, ""):
                values[field] = raw
        values.update(overrides)
        return cls.create(**values)

    def updated(self, **changes: Any) -> "Settings":
        """Return a validated copy with ``changes`` applied."""

        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValidationFailed(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        merged = self.model_dump()
        merged.update(changes)
        return type(self).create(**merged)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "value"
        parts.append(f"{loc}: {err.get('msg')}")
    return "Invalid settings: " + "; ".join(parts)
