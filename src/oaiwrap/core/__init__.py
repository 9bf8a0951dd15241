from .credentials import Credential, CredentialStore
from .errors import (
    ApiError,
    AuthenticationMissing,
    ErrorKind,
    PartialBatchFailure,
    RemoteRequestFailed,
    RunTimeout,
    UnexpectedFailure,
    ValidationFailed,
)
from .executor import ApiResult, RequestExecutor, RequestSpec
from .settings import Settings

__all__ = [
    "ApiError",
    "ApiResult",
    "AuthenticationMissing",
    "Credential",
    "CredentialStore",
    "ErrorKind",
    "PartialBatchFailure",
    "RemoteRequestFailed",
    "RequestExecutor",
    "RequestSpec",
    "RunTimeout",
    "Settings",
    "UnexpectedFailure",
    "ValidationFailed",
]
