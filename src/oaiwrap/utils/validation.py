"""Local input checks performed before any request is sent."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from ..core.errors import ValidationFailed

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
AUDIO_EXTENSIONS = {
    ".flac",
    ".m4a",
    ".mp3",
    ".mp4",
    ".mpeg",
    ".mpga",
    ".oga",
    ".ogg",
    ".wav",
    ".webm",
}

PathLike = Union[str, "os.PathLike[str]"]


def check_range(
    name: str,
    value: Optional[float],
    low: Optional[float] = None,
    high: Optional[float] = None,
) -> None:
    """Raise :class:`ValidationFailed` when ``value`` lies outside ``[low, high]``."""

    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationFailed(f"{name} must be a number, got {value!r}")
    if low is not None and value < low:
        raise ValidationFailed(f"{name} must be >= {low}, got {value}")
    if high is not None and value > high:
        raise ValidationFailed(f"{name} must be <= {high}, got {value}")


def check_choice(name: str, value: Optional[str], allowed: Iterable[str]) -> None:
    if value is None:
        return
    options = list(allowed)
    if value not in options:
        raise ValidationFailed(f"{name} must be one of {', '.join(options)}; got {value!r}")


def check_sampling(
    *,
    temperature: Optional[float] = None,
    top_p: Optional[float] = None,
    presence_penalty: Optional[float] = None,
    frequency_penalty: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> None:
    check_range("temperature", temperature, 0.0, 2.0)
    check_range("top_p", top_p, 0.0, 1.0)
    check_range("presence_penalty", presence_penalty, -2.0, 2.0)
    check_range("frequency_penalty", frequency_penalty, -2.0, 2.0)
    check_range("max_tokens", max_tokens, 1)


def check_file(path: PathLike, allowed_extensions: Optional[Iterable[str]] = None) -> Path:
    resolved = Path(os.path.expandvars(os.path.expanduser(str(path))))
    if not resolved.is_file():
        raise ValidationFailed(f"File not found: {path}")
    if allowed_extensions is not None:
        allowed = {ext.lower() for ext in allowed_extensions}
        if resolved.suffix.lower() not in allowed:
            raise ValidationFailed(
                f"Unsupported file type '{resolved.suffix or '<none>'}' for {path}; "
                f"expected one of {', '.join(sorted(allowed))}"
            )
    return resolved


def check_image_paths(paths: Optional[Sequence[PathLike]]) -> List[Path]:
    return [check_file(p, IMAGE_EXTENSIONS) for p in (paths or [])]


def check_audio_path(path: PathLike) -> Path:
    return check_file(path, AUDIO_EXTENSIONS)
