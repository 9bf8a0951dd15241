"""Module-level entry points.

Every function accepts an optional ``client``.  When it is omitted a fresh
:class:`~oaiwrap.client.OpenAIClient` is built from the environment for the
duration of the call and closed afterwards; no client is cached globally.
Batch helpers return :class:`pandas.DataFrame` objects with one row per
input.
"""

from __future__ import annotations

import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional, Sequence, Union

import pandas as pd

from .assistant_run import AssistantResponse
from .client import OpenAIClient
from .core.errors import ValidationFailed
from .resources import ChatResult, ImageResult, SpeechResult, TranscriptionResult
from .router import PromptType, coerce_prompt_type, route_prompt
from .utils.batching import records_to_frame
from .utils.logging import get_logger, set_log_level
from .utils.validation import PathLike

logger = get_logger(__name__)

__all__ = [
    "PromptResult",
    "invoke_prompt",
    "chat",
    "chat_many",
    "embed",
    "moderate",
    "generate_image",
    "speak",
    "transcribe",
    "ask_assistant",
]

_SPEECH_PREFIX = re.compile(
    r"^\s*(?:please\s+)?(?:say|speak|read\s+aloud|pronounce)\b\s*[:,]?\s*", re.I
)


@dataclass
class PromptResult:
    """Outcome of :func:`invoke_prompt`: the chosen route and what it returned."""

    prompt_type: PromptType
    result: Any


@asynccontextmanager
async def _client_scope(client: Optional[OpenAIClient]) -> AsyncIterator[OpenAIClient]:
    if client is not None:
        yield client
        return
    owned = OpenAIClient()
    try:
        yield owned
    finally:
        await owned.aclose()


def _speech_text(prompt: str) -> str:
    stripped = _SPEECH_PREFIX.sub("", prompt, count=1).strip()
    return stripped or prompt


async def invoke_prompt(
    prompt: str,
    *,
    images: Optional[Sequence[PathLike]] = None,
    prompt_type: Optional[Union[str, PromptType]] = None,
    assistant_id: Optional[str] = None,
    thread_id: Optional[str] = None,
    audio_path: Optional[PathLike] = None,
    output_dir: Optional[Union[str, Path]] = None,
    output_path: Optional[Union[str, Path]] = None,
    model: Optional[str] = None,
    client: Optional[OpenAIClient] = None,
    logging_level: Optional[Union[str, int]] = None,
    **kwargs: Any,
) -> PromptResult:
    """Pick an endpoint for ``prompt`` and call it.

    The endpoint family is detected with :func:`~oaiwrap.router.route_prompt`
    unless ``prompt_type`` is given explicitly.

    Parameters
    ----------
    prompt:
        Free-text request.
    images:
        Local image paths.  Their presence routes to the vision path: an
        assistant run when ``assistant_id`` is supplied, otherwise a chat
        completion with the images inlined.
    prompt_type:
        Override for the detected route (a :class:`PromptType` or its value).
    assistant_id, thread_id:
        Assistant to ask on the vision path and an optional existing thread
        (never deleted by this call).
    audio_path:
        Audio file to transcribe on the transcription path.
    output_dir:
        Directory receiving generated images.
    output_path:
        File receiving synthesised speech (default ``speech.mp3``).
    model:
        Model override forwarded to the chosen endpoint.
    client:
        Client to use; a temporary one is built from the environment if
        omitted.
    logging_level:
        Optional override for the package log level.
    **kwargs:
        Extra keyword arguments forwarded to the resource method.
    """

    if logging_level is not None:
        set_log_level(logging_level)
    detected = (
        coerce_prompt_type(prompt_type)
        if prompt_type is not None
        else route_prompt(prompt, bool(images))
    )
    logger.info("[invoke_prompt] Routing prompt as %s", detected.value)
    model_kw = {"model": model} if model else {}

    async with _client_scope(client) as c:
        if detected is PromptType.VISION:
            if assistant_id:
                result: Any = await c.ask_assistant(
                    assistant_id, prompt, image_paths=images, thread_id=thread_id, **kwargs
                )
            else:
                result = await c.chat.complete(prompt, images=images, **model_kw, **kwargs)
        elif detected is PromptType.IMAGE_GENERATION:
            result = await c.images.generate(prompt, output_dir=output_dir, **model_kw, **kwargs)
        elif detected is PromptType.SPEECH:
            result = await c.audio.speech(
                _speech_text(prompt),
                output_path=output_path or "speech.mp3",
                **model_kw,
                **kwargs,
            )
        elif detected is PromptType.TRANSCRIPTION:
            if audio_path is None:
                raise ValidationFailed("audio_path is required to transcribe audio.")
            result = await c.audio.transcribe(audio_path, prompt=prompt or None, **model_kw, **kwargs)
        elif detected is PromptType.EMBEDDING:
            result = (await c.embeddings.create([prompt], **model_kw, **kwargs))[0]
        elif detected is PromptType.MODERATION:
            result = (await c.moderation.classify([prompt], **model_kw, **kwargs))[0]
        else:
            result = await c.chat.complete(prompt, images=images, **model_kw, **kwargs)
    return PromptResult(prompt_type=detected, result=result)


async def chat(
    prompt: str,
    *,
    client: Optional[OpenAIClient] = None,
    **kwargs: Any,
) -> ChatResult:
    async with _client_scope(client) as c:
        return await c.chat.complete(prompt, **kwargs)


async def chat_many(
    prompts: Sequence[str],
    *,
    throttle_limit: Optional[int] = None,
    requests_per_minute: Optional[float] = None,
    client: Optional[OpenAIClient] = None,
    verbose: bool = True,
    logging_level: Optional[Union[str, int]] = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """Complete many prompts in parallel and return one row per prompt."""

    if logging_level is not None:
        set_log_level(logging_level)
    async with _client_scope(client) as c:
        results = await c.chat.complete_many(
            prompts,
            throttle_limit=throttle_limit,
            requests_per_minute=requests_per_minute,
            verbose=verbose,
            **kwargs,
        )
    return records_to_frame(results)


async def embed(
    texts: Sequence[str],
    *,
    client: Optional[OpenAIClient] = None,
    verbose: bool = True,
    logging_level: Optional[Union[str, int]] = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """Embed ``texts`` in chunks of 100 and return one row per text."""

    if logging_level is not None:
        set_log_level(logging_level)
    async with _client_scope(client) as c:
        results = await c.embeddings.create(list(texts), verbose=verbose, **kwargs)
    return records_to_frame(results)


async def moderate(
    texts: Sequence[str],
    *,
    client: Optional[OpenAIClient] = None,
    verbose: bool = True,
    logging_level: Optional[Union[str, int]] = None,
    **kwargs: Any,
) -> pd.DataFrame:
    """Moderate ``texts`` and return risk levels and review flags per row."""

    if logging_level is not None:
        set_log_level(logging_level)
    async with _client_scope(client) as c:
        results = await c.moderation.classify(list(texts), verbose=verbose, **kwargs)
    return records_to_frame(results)


async def generate_image(
    prompt: str, *, client: Optional[OpenAIClient] = None, **kwargs: Any
) -> List[ImageResult]:
    async with _client_scope(client) as c:
        return await c.images.generate(prompt, **kwargs)


async def speak(
    text: str,
    output_path: Union[str, Path],
    *,
    client: Optional[OpenAIClient] = None,
    **kwargs: Any,
) -> SpeechResult:
    async with _client_scope(client) as c:
        return await c.audio.speech(text, output_path=output_path, **kwargs)


async def transcribe(
    path: PathLike, *, client: Optional[OpenAIClient] = None, **kwargs: Any
) -> TranscriptionResult:
    async with _client_scope(client) as c:
        return await c.audio.transcribe(path, **kwargs)


async def ask_assistant(
    assistant_id: str,
    text: str,
    *,
    client: Optional[OpenAIClient] = None,
    **kwargs: Any,
) -> AssistantResponse:
    async with _client_scope(client) as c:
        return await c.ask_assistant(assistant_id, text, **kwargs)
