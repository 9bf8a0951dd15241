"""Classified errors raised by the request pipeline and the orchestrator."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorKind(str, Enum):
    AUTHENTICATION_MISSING = "AuthenticationMissing"
    VALIDATION_FAILED = "ValidationFailed"
    REMOTE_REQUEST_FAILED = "RemoteRequestFailed"
    TIMEOUT = "Timeout"
    PARTIAL_BATCH_FAILURE = "PartialBatchFailure"
    UNEXPECTED_FAILURE = "UnexpectedFailure"


class ApiError(Exception):
    """Base class for every error surfaced by this package."""

    kind: ErrorKind = ErrorKind.UNEXPECTED_FAILURE

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "kind": self.kind.value,
            "status_code": self.status_code,
        }


class AuthenticationMissing(ApiError):
    """No API key has been configured."""

    kind = ErrorKind.AUTHENTICATION_MISSING


class ValidationFailed(ApiError, ValueError):
    """Local input was rejected before any request was sent."""

    kind = ErrorKind.VALIDATION_FAILED


class RemoteRequestFailed(ApiError):
    """The API answered with a non-success status code."""

    kind = ErrorKind.REMOTE_REQUEST_FAILED


class UnexpectedFailure(ApiError):
    """Transport, timeout or decoding fault outside the API's error envelope."""

    kind = ErrorKind.UNEXPECTED_FAILURE


class RunTimeout(ApiError, asyncio.TimeoutError):
    """Timeout raised while polling an assistant run."""

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        message: str,
        *,
        thread_id: Optional[str] = None,
        run_id: Optional[str] = None,
        last_run: Any = None,
    ):
        super().__init__(message)
        self.thread_id = thread_id
        self.run_id = run_id
        self.last_run = last_run


class PartialBatchFailure(ApiError):
    """Some items of a batch failed while the rest succeeded."""

    kind = ErrorKind.PARTIAL_BATCH_FAILURE

    def __init__(self, message: str, *, failed: Iterable[Any] = ()):
        super().__init__(message)
        self.failed: List[Any] = list(failed)


def error_message(exc: BaseException) -> str:
    """Return the human-readable message carried by ``exc``."""

    if isinstance(exc, ApiError):
        return exc.message
    return str(exc) or exc.__class__.__name__
