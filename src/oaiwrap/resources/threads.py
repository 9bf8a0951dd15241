from __future__ import annotations

from typing import Any, Dict, List, Optional

from ._base import Resource, drop_none


class ThreadsResource(Resource):
    """``threads``."""

    async def create(
        self,
        *,
        messages: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        return await self._post("threads", drop_none({"messages": messages, "metadata": metadata}))

    async def retrieve(self, thread_id: str) -> Dict[str, Any]:
        return await self._get(f"threads/{thread_id}")

    async def delete(self, thread_id: str) -> Dict[str, Any]:
        return await self._delete(f"threads/{thread_id}")
