from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from ._base import Resource, drop_none


class RunStatus(str, Enum):
    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    CANCELLING = "cancelling"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    INCOMPLETE = "incomplete"


PENDING_STATUSES = {RunStatus.QUEUED, RunStatus.IN_PROGRESS, RunStatus.CANCELLING}
TERMINAL_STATUSES = {
    RunStatus.COMPLETED,
    RunStatus.FAILED,
    RunStatus.CANCELLED,
    RunStatus.EXPIRED,
    RunStatus.INCOMPLETE,
}


def run_status(run: Dict[str, Any]) -> Optional[RunStatus]:
    try:
        return RunStatus(run.get("status"))
    except ValueError:
        return None


class RunsResource(Resource):
    """``threads/{id}/runs``."""

    async def create(
        self,
        thread_id: str,
        assistant_id: str,
        *,
        model: Optional[str] = None,
        instructions: Optional[str] = None,
        additional_instructions: Optional[str] = None,
    ) -> Dict[str, Any]:
        body = drop_none(
            {
                "assistant_id": assistant_id,
                "model": model,
                "instructions": instructions,
                "additional_instructions": additional_instructions,
            }
        )
        return await self._post(f"threads/{thread_id}/runs", body)

    async def retrieve(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        return await self._get(f"threads/{thread_id}/runs/{run_id}")

    async def cancel(self, thread_id: str, run_id: str) -> Dict[str, Any]:
        return await self._post(f"threads/{thread_id}/runs/{run_id}/cancel")
