"""Package-wide logging helpers."""

from __future__ import annotations

import logging
from typing import Union

_ROOT_NAME = "oaiwrap"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_configured = False

_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def _configure_root() -> logging.Logger:
    global _configured
    root = logging.getLogger(_ROOT_NAME)
    if not _configured:
        if not root.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter(_FORMAT))
            root.addHandler(handler)
        root.setLevel(logging.WARNING)
        root.propagate = False
        _configured = True
    return root


def _coerce_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    try:
        return _LEVELS[str(level).strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown logging level: {level!r}") from None


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``oaiwrap`` namespace.

    Module names outside the package are nested under the package root so a
    single call to :func:`set_log_level` controls every logger we hand out.
    """

    _configure_root()
    if name == _ROOT_NAME or name.startswith(_ROOT_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_NAME}.{name}")


def set_log_level(level: Union[str, int]) -> None:
    """Set the verbosity of every ``oaiwrap`` logger."""

    _configure_root().setLevel(_coerce_level(level))
