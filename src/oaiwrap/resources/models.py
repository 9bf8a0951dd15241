from __future__ import annotations

from typing import Any, Dict, List

from ._base import Resource, list_data
from ..utils.analytics import model_capabilities


class ModelsResource(Resource):
    """``models``."""

    async def list(self) -> List[Dict[str, Any]]:
        models = list_data(await self._get("models"))
        for entry in models:
            entry.update(model_capabilities(entry.get("id", "")))
        return sorted(models, key=lambda m: m.get("id", ""))

    async def retrieve(self, model_id: str) -> Dict[str, Any]:
        entry = await self._get(f"models/{model_id}")
        entry.update(model_capabilities(entry.get("id", model_id)))
        return entry
