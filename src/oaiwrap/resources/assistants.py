from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from ._base import Resource, drop_none, list_data
from ..core.errors import ValidationFailed
from ..utils.validation import check_choice, check_range


class AssistantsResource(Resource):
    """``assistants``."""

    async def create(
        self,
        *,
        model: Optional[str] = None,
        name: Optional[str] = None,
        instructions: Optional[str] = None,
        description: Optional[str] = None,
        tools: Optional[Sequence[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, str]] = None,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
    ) -> Dict[str, Any]:
        check_range("temperature", temperature, 0.0, 2.0)
        check_range("top_p", top_p, 0.0, 1.0)
        body = drop_none(
            {
                "model": model or self.settings.model,
                "name": name,
                "instructions": instructions,
                "description": description,
                "tools": list(tools) if tools is not None else None,
                "metadata": metadata,
                "temperature": temperature,
                "top_p": top_p,
            }
        )
        return await self._post("assistants", body)

    async def list(self, *, limit: int = 20, order: str = "desc") -> List[Dict[str, Any]]:
        check_range("limit", limit, 1, 100)
        check_choice("order", order, ["asc", "desc"])
        return list_data(await self._get("assistants", params={"limit": limit, "order": order}))

    async def retrieve(self, assistant_id: str) -> Dict[str, Any]:
        return await self._get(f"assistants/{assistant_id}")

    async def update(self, assistant_id: str, **changes: Any) -> Dict[str, Any]:
        body = drop_none(changes)
        if not body:
            raise ValidationFailed("No assistant fields to update.")
        check_range("temperature", body.get("temperature"), 0.0, 2.0)
        return await self._post(f"assistants/{assistant_id}", body)

    async def delete(self, assistant_id: str) -> Dict[str, Any]:
        return await self._delete(f"assistants/{assistant_id}")
