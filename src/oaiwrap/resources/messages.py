from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ._base import Resource, list_data
from ..core.errors import ValidationFailed
from ..utils.validation import check_choice, check_range


def build_message_content(text: str, image_file_ids: Sequence[str] = ()) -> Any:
    """Text alone stays a string; with images it becomes a list of parts."""

    if not image_file_ids:
        return text
    parts: List[Dict[str, Any]] = []
    if text:
        parts.append({"type": "text", "text": text})
    for file_id in image_file_ids:
        parts.append({"type": "image_file", "image_file": {"file_id": file_id}})
    return parts


def message_text(message: Optional[Dict[str, Any]]) -> str:
    """Concatenate the text parts of an assistant message."""

    if not message:
        return ""
    chunks = []
    for part in message.get("content") or []:
        if part.get("type") == "text":
            text = part.get("text")
            if isinstance(text, dict):
                chunks.append(text.get("value", ""))
            elif isinstance(text, str):
                chunks.append(text)
    return "\n".join(c for c in chunks if c)


class MessagesResource(Resource):
    """``threads/{id}/messages``."""

    async def create(
        self,
        thread_id: str,
        text: str,
        *,
        image_file_ids: Sequence[str] = (),
        role: str = "user",
    ) -> Dict[str, Any]:
        check_choice("role", role, ["user", "assistant"])
        if not text and not image_file_ids:
            raise ValidationFailed("A message needs text or at least one image.")
        body = {"role": role, "content": build_message_content(text, image_file_ids)}
        return await self._post(f"threads/{thread_id}/messages", body)

    async def list(
        self,
        thread_id: str,
        *,
        limit: int = 20,
        order: str = "desc",
        run_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        check_range("limit", limit, 1, 100)
        check_choice("order", order, ["asc", "desc"])
        params = {"limit": limit, "order": order, "run_id": run_id}
        return list_data(await self._get(f"threads/{thread_id}/messages", params=params))

    async def latest(self, thread_id: str) -> Optional[Dict[str, Any]]:
        messages = await self.list(thread_id, limit=1, order="desc")
        return messages[0] if messages else None
