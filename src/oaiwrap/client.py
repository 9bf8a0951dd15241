from __future__ import annotations

from typing import Any, Optional, Sequence

import httpx

from .assistant_run import AssistantResponse, AssistantRunOrchestrator
from .core.credentials import CredentialStore
from .core.executor import RequestExecutor
from .core.settings import Settings
from .resources import (
    AssistantsResource,
    AudioResource,
    BatchesResource,
    ChatResource,
    EmbeddingsResource,
    FilesResource,
    ImagesResource,
    MessagesResource,
    ModelsResource,
    ModerationResource,
    RunsResource,
    ThreadsResource,
)
from .utils.validation import PathLike


class OpenAIClient:
    """Owns the credential store, settings, executor and resource clients.

    Each client is independent; nothing is shared through module globals.
    Configure the key and settings before starting concurrent work.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        organization: Optional[str] = None,
        settings: Optional[Settings] = None,
        credentials: Optional[CredentialStore] = None,
        executor: Optional[RequestExecutor] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        use_env: bool = True,
    ) -> None:
        self.credentials = credentials or CredentialStore(use_env=use_env)
        if api_key:
            self.credentials.set(api_key, organization)
        if executor is None:
            executor = RequestExecutor(
                self.credentials,
                settings or (Settings.from_env() if use_env else Settings()),
                http_client=http_client,
            )
        elif settings is not None:
            executor.settings = settings
        self.executor = executor

        self.chat = ChatResource(executor)
        self.images = ImagesResource(executor)
        self.audio = AudioResource(executor)
        self.embeddings = EmbeddingsResource(executor)
        self.moderation = ModerationResource(executor)
        self.files = FilesResource(executor)
        self.assistants = AssistantsResource(executor)
        self.threads = ThreadsResource(executor)
        self.messages = MessagesResource(executor)
        self.runs = RunsResource(executor)
        self.batches = BatchesResource(executor, self.files)
        self.models = ModelsResource(executor)

    @property
    def settings(self) -> Settings:
        return self.executor.settings

    def set_api_key(self, api_key: str, organization: Optional[str] = None) -> None:
        self.credentials.set(api_key, organization)

    def configure(self, **changes: Any) -> Settings:
        """Validate and apply new default settings."""

        self.executor.settings = self.executor.settings.updated(**changes)
        return self.executor.settings

    def orchestrator(self, **kwargs: Any) -> AssistantRunOrchestrator:
        return AssistantRunOrchestrator(self, **kwargs)

    async def ask_assistant(
        self,
        assistant_id: str,
        text: str,
        *,
        image_paths: Optional[Sequence[PathLike]] = None,
        thread_id: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
    ) -> AssistantResponse:
        return await self.orchestrator().ask(
            assistant_id,
            text,
            image_paths=image_paths,
            thread_id=thread_id,
            poll_interval=poll_interval,
            max_wait=max_wait,
        )

    async def aclose(self) -> None:
        closer = getattr(self.executor, "aclose", None)
        if closer is not None:
            await closer()

    async def __aenter__(self) -> "OpenAIClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
