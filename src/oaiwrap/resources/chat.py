from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

from ._base import Resource, drop_none
from ..core.errors import ApiError, ValidationFailed
from ..utils.analytics import count_tokens, estimate_cost, model_capabilities
from ..utils.batching import parallel_map
from ..utils.logging import get_logger
from ..utils.media_utils import image_content_parts
from ..utils.validation import PathLike, check_image_paths, check_sampling

logger = get_logger(__name__)

Message = Dict[str, Any]


@dataclass
class ChatResult:
    """One chat completion together with its usage analytics."""

    prompt: str
    response: Optional[str] = None
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    estimated_cost: Optional[float] = None
    duration: float = 0.0
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[str] = None
    index: int = 0
    batch_index: int = 0
    position_in_batch: int = 0
    raw: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @classmethod
    def failed(cls, prompt: str, error: ApiError) -> "ChatResult":
        return cls(
            prompt=prompt,
            success=False,
            error=error.message,
            error_kind=error.kind.value,
        )


def message_content_text(content: Any) -> str:
    """Flatten a chat ``content`` field (string or parts list) into text."""

    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text"
        )
    return str(content)


def build_chat_payload(
    *,
    model: str,
    messages: List[Message],
    max_tokens: Optional[int],
    temperature: Optional[float],
    top_p: Optional[float] = None,
    presence_penalty: Optional[float] = None,
    frequency_penalty: Optional[float] = None,
    json_mode: bool = False,
    **extra: Any,
) -> Dict[str, Any]:
    """Assemble the ``chat/completions`` request body.

    Reasoning models reject sampling parameters, so ``temperature`` and
    ``top_p`` are dropped for them.
    """

    caps = model_capabilities(model)
    payload: Dict[str, Any] = {"model": model, "messages": messages}
    if max_tokens is not None:
        payload["max_completion_tokens"] = max_tokens
    if caps["supports_temperature"]:
        payload.update(drop_none({"temperature": temperature, "top_p": top_p}))
    elif temperature is not None or top_p is not None:
        logger.debug("Model %s ignores sampling parameters; dropping them.", model)
    payload.update(
        drop_none(
            {"presence_penalty": presence_penalty, "frequency_penalty": frequency_penalty}
        )
    )
    if json_mode:
        payload["response_format"] = {"type": "json_object"}
    payload.update(extra)
    return payload


class ChatResource(Resource):
    """``chat/completions``."""

    def build_messages(
        self,
        prompt: Optional[str] = None,
        *,
        messages: Optional[Sequence[Message]] = None,
        system_prompt: Optional[str] = None,
        images: Optional[Sequence[PathLike]] = None,
    ) -> List[Message]:
        out: List[Message] = []
        if system_prompt:
            out.append({"role": "system", "content": system_prompt})
        if messages:
            out.extend(dict(m) for m in messages)
        if prompt is not None or images:
            image_paths = check_image_paths(images)
            if image_paths:
                out.append(
                    {"role": "user", "content": image_content_parts(prompt or "", image_paths)}
                )
            else:
                out.append({"role": "user", "content": prompt})
        if not out:
            raise ValidationFailed("A prompt or a list of messages is required.")
        return out

    async def complete(
        self,
        prompt: Optional[str] = None,
        *,
        messages: Optional[Sequence[Message]] = None,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        presence_penalty: Optional[float] = None,
        frequency_penalty: Optional[float] = None,
        json_mode: bool = False,
        images: Optional[Sequence[PathLike]] = None,
        **extra: Any,
    ) -> ChatResult:
        """Request a single chat completion.

        Parameter ranges are validated locally first (temperature in [0, 2],
        penalties in [-2, 2]); image paths must exist and carry an allowed
        extension.  Remote failures raise :class:`~oaiwrap.core.errors.ApiError`.
        """

        settings = self.settings
        model = model or settings.model
        max_tokens = settings.max_tokens if max_tokens is None else max_tokens
        temperature = settings.temperature if temperature is None else temperature
        check_sampling(
            temperature=temperature,
            top_p=top_p,
            presence_penalty=presence_penalty,
            frequency_penalty=frequency_penalty,
            max_tokens=max_tokens,
        )
        if images and not model_capabilities(model)["vision_capable"]:
            logger.warning(
                "Images supplied but model '%s' is not known to accept images; the API may reject the request.",
                model,
            )
        built = self.build_messages(
            prompt, messages=messages, system_prompt=system_prompt, images=images
        )
        payload = build_chat_payload(
            model=model,
            messages=built,
            max_tokens=max_tokens,
            temperature=temperature,
            top_p=top_p,
            presence_penalty=presence_penalty,
            frequency_penalty=frequency_penalty,
            json_mode=json_mode,
            **extra,
        )
        start = time.time()
        raw = await self._post("chat/completions", payload)
        duration = time.time() - start
        return self._to_result(prompt if prompt is not None else _last_user_text(built), raw, model, duration)

    @staticmethod
    def _to_result(prompt: str, raw: Dict[str, Any], model: str, duration: float) -> ChatResult:
        choice = (raw.get("choices") or [{}])[0]
        message = choice.get("message") or {}
        usage = raw.get("usage") or {}
        resolved_model = raw.get("model") or model
        prompt_tokens = usage.get("prompt_tokens")
        completion_tokens = usage.get("completion_tokens")
        return ChatResult(
            prompt=prompt,
            response=message_content_text(message.get("content")),
            model=resolved_model,
            finish_reason=choice.get("finish_reason"),
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=usage.get("total_tokens"),
            estimated_cost=estimate_cost(resolved_model, prompt_tokens, completion_tokens),
            duration=duration,
            raw=raw,
        )

    async def complete_many(
        self,
        prompts: Sequence[str],
        *,
        throttle_limit: Optional[int] = None,
        requests_per_minute: Optional[float] = None,
        verbose: bool = False,
        **kwargs: Any,
    ) -> List[ChatResult]:
        """Complete independent prompts with bounded concurrency.

        A failing prompt yields a ``ChatResult`` with ``success=False``; the
        others are unaffected.  Each result carries its originating prompt.
        """

        settings = self.settings
        limit = settings.throttle_limit if throttle_limit is None else throttle_limit
        # every unit sees the settings as they were when the batch started
        defaults = {
            "model": kwargs.pop("model", None) or settings.model,
            "max_tokens": kwargs.pop("max_tokens", None),
            "temperature": kwargs.pop("temperature", None),
        }
        if defaults["max_tokens"] is None:
            defaults["max_tokens"] = settings.max_tokens
        if defaults["temperature"] is None:
            defaults["temperature"] = settings.temperature

        async def _one(prompt: str) -> ChatResult:
            return await self.complete(prompt, **defaults, **kwargs)

        return await parallel_map(
            list(prompts),
            _one,
            ChatResult.failed,
            throttle_limit=limit,
            requests_per_minute=requests_per_minute,
            verbose=verbose,
            desc="Chat completions",
        )

    def estimate_tokens(self, text: Union[str, Sequence[Message]], model: Optional[str] = None) -> int:
        model = model or self.settings.model
        if isinstance(text, str):
            return count_tokens(text, model)
        return sum(count_tokens(message_content_text(m.get("content")), model) for m in text)


def _last_user_text(messages: Sequence[Message]) -> str:
    for message in reversed(messages):
        if message.get("role") == "user":
            return message_content_text(message.get("content"))
    return ""
