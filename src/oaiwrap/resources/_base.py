from __future__ import annotations

from typing import Any, Dict, List, Optional

from ..core.executor import RequestExecutor
from ..core.settings import Settings


class Resource:
    """Shared plumbing for the per-endpoint resource clients."""

    def __init__(self, executor: RequestExecutor) -> None:
        self._executor = executor

    @property
    def settings(self) -> Settings:
        return self._executor.settings

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return await self._executor.request("GET", path, params=params, **kwargs)

    async def _post(self, path: str, body: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        return await self._executor.request("POST", path, json_body=body or {}, **kwargs)

    async def _delete(self, path: str, **kwargs: Any) -> Any:
        return await self._executor.request("DELETE", path, **kwargs)


def list_data(payload: Any) -> List[Dict[str, Any]]:
    """Return the ``data`` array of a list response."""

    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
    return []


def drop_none(values: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in values.items() if v is not None}
