"""Single-attempt request execution on top of the OpenAI SDK transport.

Every call made by the resource clients funnels through
:meth:`RequestExecutor.execute`.  The executor attaches credentials, sends one
HTTP request through the SDK's low-level ``get``/``post``/``delete`` helpers
and converts every failure into one of the classified errors in
:mod:`oaiwrap.core.errors`.  There is no retry: the SDK's own retry loop is
switched off with ``max_retries=0``.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import httpx
import openai

from .credentials import Credential, CredentialStore
from .errors import (
    ApiError,
    RemoteRequestFailed,
    UnexpectedFailure,
    ValidationFailed,
)
from .settings import Settings
from ..utils.logging import get_logger

logger = get_logger(__name__)

# (field name, (filename, content, mime type))
FilePart = Tuple[str, Tuple[str, bytes, str]]

_METHODS = {"GET", "POST", "DELETE"}
_BETA_PREFIXES = ("assistants", "threads")
ASSISTANTS_BETA_HEADER = ("OpenAI-Beta", "assistants=v2")


@dataclass(frozen=True)
class RequestSpec:
    """Description of one HTTP call."""

    path: str
    method: str = "POST"
    json_body: Optional[Mapping[str, Any]] = None
    form_fields: Optional[Mapping[str, Any]] = None
    files: Sequence[FilePart] = ()
    params: Optional[Mapping[str, Any]] = None
    headers: Optional[Mapping[str, str]] = None
    expect: str = "json"

    @property
    def content_type(self) -> str:
        return "multipart/form-data" if self.files else "application/json"


@dataclass
class ApiResult:
    """Either a decoded payload or the error that prevented one."""

    value: Any = None
    error: Optional[ApiError] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.value


def _remote_error_message(exc: openai.APIStatusError) -> str:
    """Pull the message out of ``{"error": {"message": ...}}`` when present."""

    body = getattr(exc, "body", None)
    if isinstance(body, Mapping):
        envelope = body.get("error", body)
        if isinstance(envelope, Mapping):
            message = envelope.get("message")
            if isinstance(message, str) and message.strip():
                return message.strip()
        elif isinstance(envelope, str) and envelope.strip():
            return envelope.strip()
    elif isinstance(body, str) and body.strip():
        return body.strip()
    return str(exc)


class RequestExecutor:
    """Send :class:`RequestSpec` objects and classify their failures."""

    def __init__(
        self,
        credentials: CredentialStore,
        settings: Settings,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._credentials = credentials
        self._settings = settings
        self._http_client = http_client
        self._client: Optional[openai.AsyncOpenAI] = None
        self._client_key: Optional[Tuple[Any, ...]] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @settings.setter
    def settings(self, value: Settings) -> None:
        self._settings = value

    async def _get_client(self, credential: Credential) -> openai.AsyncOpenAI:
        """Return a cached SDK client bound to the current credential snapshot.

        A client built around an injected ``http_client`` is never closed
        here; the caller owns that transport.
        """

        key = (credential, self._settings.base_url, self._settings.timeout_seconds)
        if (
            self._client is not None
            and self._client_key is not None
            and self._client_key[0] is credential
            and self._client_key[1:] == key[1:]
        ):
            return self._client
        kwargs: Dict[str, Any] = {
            "api_key": credential.token.get_secret_value(),
            "timeout": self._settings.timeout_seconds,
            "max_retries": 0,
        }
        if credential.organization:
            kwargs["organization"] = credential.organization
        if self._settings.base_url:
            kwargs["base_url"] = self._settings.base_url
        if self._http_client is not None:
            kwargs["http_client"] = self._http_client
        await self._release_client()
        self._client = openai.AsyncOpenAI(**kwargs)
        self._client_key = key
        return self._client

    async def request(self, method: str, path: str, **kwargs: Any) -> Any:
        return await self.execute(RequestSpec(path=path, method=method, **kwargs))

    async def try_execute(self, spec: RequestSpec) -> ApiResult:
        try:
            return ApiResult(value=await self.execute(spec))
        except ApiError as exc:
            return ApiResult(error=exc)

    async def execute(self, spec: RequestSpec) -> Any:
        method = spec.method.upper()
        if method not in _METHODS:
            raise ValidationFailed(f"Unsupported HTTP method: {spec.method}")
        credential = self._credentials.require()
        client = await self._get_client(credential)

        path = "/" + spec.path.lstrip("/")
        cast_to: Any = bytes if spec.expect == "bytes" else object
        headers: Dict[str, str] = dict(spec.headers or {})
        if spec.path.lstrip("/").startswith(_BETA_PREFIXES):
            headers.setdefault(*ASSISTANTS_BETA_HEADER)
        if spec.files:
            headers["Content-Type"] = spec.content_type
        options: Dict[str, Any] = {}
        if headers:
            options["headers"] = headers
        if spec.params:
            options["params"] = {k: v for k, v in spec.params.items() if v is not None}

        start = time.time()
        try:
            if method == "GET":
                result = await client.get(path, cast_to=cast_to, options=options)
            elif method == "DELETE":
                result = await client.delete(
                    path, cast_to=cast_to, body=spec.json_body, options=options
                )
            elif spec.files:
                result = await client.post(
                    path,
                    cast_to=cast_to,
                    body=dict(spec.form_fields or {}),
                    files=list(spec.files),
                    options=options,
                )
            else:
                result = await client.post(
                    path, cast_to=cast_to, body=dict(spec.json_body or {}), options=options
                )
        except asyncio.CancelledError:
            raise
        except openai.APIStatusError as exc:
            message = _remote_error_message(exc)
            logger.warning(
                "[execute] %s %s failed with status %s: %s",
                method,
                path,
                exc.status_code,
                message,
            )
            raise RemoteRequestFailed(message, status_code=exc.status_code) from exc
        except openai.APITimeoutError as exc:
            message = (
                f"Request {method} {path} timed out after "
                f"{self._settings.timeout_seconds:g} s"
            )
            logger.error("[execute] %s", message)
            raise UnexpectedFailure(message) from exc
        except ApiError:
            raise
        except Exception as exc:
            logger.error(
                "[execute] %s %s resulted in exception: %r", method, path, exc, exc_info=True
            )
            raise UnexpectedFailure(str(exc) or exc.__class__.__name__) from exc
        logger.debug("[execute] %s %s completed in %.2f s", method, path, time.time() - start)
        return result

    async def _release_client(self) -> None:
        client, self._client, self._client_key = self._client, None, None
        if client is not None and self._http_client is None:
            await client.close()

    async def aclose(self) -> None:
        await self._release_client()
