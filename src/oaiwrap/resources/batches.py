from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

from ._base import Resource, drop_none, list_data
from .chat import build_chat_payload
from .files import FilesResource
from ..core.errors import ValidationFailed
from ..core.executor import RequestExecutor
from ..utils.logging import get_logger
from ..utils.validation import check_choice, check_range

logger = get_logger(__name__)

BATCH_ENDPOINTS = ["/v1/chat/completions", "/v1/embeddings", "/v1/completions", "/v1/responses"]
COMPLETION_WINDOWS = ["24h"]


def build_batch_lines(
    prompts: Sequence[str],
    *,
    model: str,
    system_prompt: Optional[str] = None,
    max_tokens: Optional[int] = None,
    temperature: Optional[float] = None,
    custom_id_prefix: str = "request",
) -> str:
    """Render one JSONL line per prompt for a chat-completions batch."""

    if not prompts:
        raise ValidationFailed("At least one prompt is required for a batch.")
    lines = []
    for i, prompt in enumerate(prompts, start=1):
        messages: List[Dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        body = build_chat_payload(
            model=model,
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        lines.append(
            json.dumps(
                {
                    "custom_id": f"{custom_id_prefix}-{i}",
                    "method": "POST",
                    "url": "/v1/chat/completions",
                    "body": body,
                },
                ensure_ascii=False,
            )
        )
    return "\n".join(lines) + "\n"


class BatchesResource(Resource):
    """``batches``."""

    def __init__(self, executor: RequestExecutor, files: FilesResource) -> None:
        super().__init__(executor)
        self._files = files

    async def create(
        self,
        input_file_id: str,
        *,
        endpoint: str = "/v1/chat/completions",
        completion_window: str = "24h",
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        check_choice("endpoint", endpoint, BATCH_ENDPOINTS)
        check_choice("completion_window", completion_window, COMPLETION_WINDOWS)
        body = drop_none(
            {
                "input_file_id": input_file_id,
                "endpoint": endpoint,
                "completion_window": completion_window,
                "metadata": metadata,
            }
        )
        return await self._post("batches", body)

    async def submit_chat_prompts(
        self,
        prompts: Sequence[str],
        *,
        model: Optional[str] = None,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Upload ``prompts`` as a JSONL file and start a chat batch over it."""

        jsonl = build_batch_lines(
            prompts,
            model=model or self.settings.model,
            system_prompt=system_prompt,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        uploaded = await self._files.upload_bytes(
            "batch_input.jsonl", jsonl.encode("utf-8"), purpose="batch"
        )
        logger.info("[submit_chat_prompts] Uploaded %d requests as %s", len(prompts), uploaded["id"])
        return await self.create(uploaded["id"], metadata=metadata)

    async def retrieve(self, batch_id: str) -> Dict[str, Any]:
        return await self._get(f"batches/{batch_id}")

    async def list(self, *, limit: int = 20, after: Optional[str] = None) -> List[Dict[str, Any]]:
        check_range("limit", limit, 1, 100)
        return list_data(await self._get("batches", params={"limit": limit, "after": after}))

    async def cancel(self, batch_id: str) -> Dict[str, Any]:
        return await self._post(f"batches/{batch_id}/cancel")
