"""Async wrapper around the OpenAI REST API."""

from .api import (
    PromptResult,
    ask_assistant,
    chat,
    chat_many,
    embed,
    generate_image,
    invoke_prompt,
    moderate,
    speak,
    transcribe,
)
from .assistant_run import (
    AssistantResponse,
    AssistantRunOrchestrator,
    CleanupReport,
    RunOutcome,
)
from .client import OpenAIClient
from .core import (
    ApiError,
    AuthenticationMissing,
    CredentialStore,
    ErrorKind,
    PartialBatchFailure,
    RemoteRequestFailed,
    RunTimeout,
    Settings,
    UnexpectedFailure,
    ValidationFailed,
)
from .router import PromptType, route_prompt
from .utils.logging import get_logger, set_log_level

__version__ = "0.1.0"

__all__ = [
    "OpenAIClient",
    "Settings",
    "CredentialStore",
    "ApiError",
    "AuthenticationMissing",
    "ErrorKind",
    "PartialBatchFailure",
    "RemoteRequestFailed",
    "RunTimeout",
    "UnexpectedFailure",
    "ValidationFailed",
    "AssistantResponse",
    "AssistantRunOrchestrator",
    "CleanupReport",
    "RunOutcome",
    "PromptResult",
    "PromptType",
    "route_prompt",
    "invoke_prompt",
    "chat",
    "chat_many",
    "embed",
    "moderate",
    "generate_image",
    "speak",
    "transcribe",
    "ask_assistant",
    "get_logger",
    "set_log_level",
]
