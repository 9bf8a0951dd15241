"""Drive one assistant interaction from message submission to a final answer.

The orchestrator uploads any local images, posts the user message to a
thread (creating one when the caller does not supply a thread id), starts a
run and polls it until the run reaches a terminal status or the wait ceiling
is exceeded.  A timed-out run receives exactly one cancel request.  Uploaded
files and any thread the orchestrator created are always deleted afterwards;
cleanup failures are recorded in a :class:`CleanupReport` and logged, never
raised.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .core.errors import ApiError, RunTimeout, ValidationFailed
from .resources.messages import message_text
from .resources.runs import PENDING_STATUSES, RunStatus, run_status
from .utils.analytics import estimate_cost, model_capabilities
from .utils.logging import get_logger
from .utils.validation import PathLike, check_image_paths, check_range

if TYPE_CHECKING:
    from .client import OpenAIClient

logger = get_logger(__name__)


class RunOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REQUIRES_ACTION = "requires_action"
    TIMED_OUT = "timed_out"


_STATUS_OUTCOMES = {
    RunStatus.COMPLETED: RunOutcome.COMPLETED,
    RunStatus.FAILED: RunOutcome.FAILED,
    RunStatus.CANCELLED: RunOutcome.CANCELLED,
    RunStatus.EXPIRED: RunOutcome.EXPIRED,
    RunStatus.INCOMPLETE: RunOutcome.FAILED,
    RunStatus.REQUIRES_ACTION: RunOutcome.REQUIRES_ACTION,
}


@dataclass
class CleanupReport:
    """What the orchestrator tried to delete and what went wrong."""

    deleted_files: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)
    thread_id: Optional[str] = None
    thread_deleted: bool = False
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class AssistantResponse:
    success: bool
    outcome: Optional[RunOutcome]
    text: Optional[str] = None
    error: Optional[str] = None
    assistant_id: Optional[str] = None
    thread_id: Optional[str] = None
    run_id: Optional[str] = None
    model: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    estimated_cost: Optional[float] = None
    created_at: Optional[int] = None
    started_at: Optional[int] = None
    completed_at: Optional[int] = None
    processing_seconds: Optional[float] = None
    vision_capable: bool = False
    reasoning_model: bool = False
    attached_file_ids: List[str] = field(default_factory=list)
    skipped_images: List[str] = field(default_factory=list)
    cleanup: CleanupReport = field(default_factory=CleanupReport)
    run: Optional[Dict[str, Any]] = field(default=None, repr=False)


def _run_error_message(run: Dict[str, Any], outcome: RunOutcome) -> str:
    last_error = run.get("last_error")
    if isinstance(last_error, dict) and last_error.get("message"):
        return str(last_error["message"])
    if outcome is RunOutcome.REQUIRES_ACTION:
        return "Run requires tool outputs; tool calls are not resolved automatically."
    details = run.get("incomplete_details")
    if isinstance(details, dict) and details.get("reason"):
        return f"Run ended as incomplete: {details['reason']}"
    return f"Run {run.get('id', '<unknown>')} ended with status {run.get('status')}."


class AssistantRunOrchestrator:
    """Thread/message/run lifecycle for a single question to an assistant.

    ``sleep`` and ``clock`` are injectable so callers can drive the polling
    loop deterministically.
    """

    def __init__(
        self,
        client: "OpenAIClient",
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._client = client
        self._sleep = sleep
        self._clock = clock

    async def poll_run(
        self,
        thread_id: str,
        run_id: str,
        *,
        poll_interval: float,
        max_wait: float,
        run: Optional[Dict[str, Any]] = None,
    ) -> Tuple[RunOutcome, Dict[str, Any]]:
        """Poll a run until it stops.

        Returns the outcome and the last run object.  When ``max_wait``
        elapses first the run is cancelled once (best effort) and
        :class:`RunTimeout` is raised.
        """

        runs = self._client.runs
        started = self._clock()
        last = run if run is not None else await runs.retrieve(thread_id, run_id)
        polls = 0
        while True:
            status = run_status(last)
            outcome = _STATUS_OUTCOMES.get(status) if status is not None else None
            if outcome is RunOutcome.REQUIRES_ACTION:
                logger.warning(
                    "[poll_run] Run %s requires action (tool outputs); no longer waiting.",
                    run_id,
                )
                return outcome, last
            if outcome is not None:
                logger.debug("[poll_run] Run %s finished as %s after %d polls", run_id, outcome.value, polls)
                return outcome, last
            if status not in PENDING_STATUSES:
                logger.warning("[poll_run] Run %s reported unknown status %r", run_id, last.get("status"))
            elapsed = self._clock() - started
            if elapsed >= max_wait:
                await self._cancel(thread_id, run_id)
                raise RunTimeout(
                    f"Run {run_id} did not finish within {max_wait:g} s (last status: {last.get('status')})",
                    thread_id=thread_id,
                    run_id=run_id,
                    last_run=last,
                )
            await self._sleep(poll_interval)
            last = await runs.retrieve(thread_id, run_id)
            polls += 1

    async def _cancel(self, thread_id: str, run_id: str) -> None:
        try:
            await self._client.runs.cancel(thread_id, run_id)
            logger.info("[poll_run] Cancel requested for run %s", run_id)
        except ApiError as exc:
            logger.warning("[poll_run] Could not cancel run %s: %s", run_id, exc.message)

    async def ask(
        self,
        assistant_id: str,
        text: str,
        *,
        image_paths: Optional[Sequence[PathLike]] = None,
        thread_id: Optional[str] = None,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
        model: Optional[str] = None,
        instructions: Optional[str] = None,
    ) -> AssistantResponse:
        """Send ``text`` (and optional images) to an assistant and wait for its reply.

        Remote errors raised before the run exists propagate to the caller
        after cleanup has been attempted.  Once the run exists, a failed poll
        cancels it once and comes back as a ``FAILED`` response.
        """

        settings = self._client.settings
        poll_interval = settings.poll_interval if poll_interval is None else poll_interval
        max_wait = settings.max_wait if max_wait is None else max_wait
        check_range("poll_interval", poll_interval, 1.0, 10.0)
        check_range("max_wait", max_wait, 10.0, 600.0)
        if not assistant_id:
            raise ValidationFailed("assistant_id is required.")
        images = check_image_paths(image_paths)
        if not (text or "").strip() and not images:
            raise ValidationFailed("A question or at least one image is required.")

        uploaded: List[str] = []
        skipped: List[str] = []
        owned_thread: Optional[str] = None
        try:
            for path in images:
                try:
                    uploaded_file = await self._client.files.upload(path, purpose="vision")
                    uploaded.append(uploaded_file["id"])
                except ApiError as exc:
                    logger.warning("[ask] Skipping image %s: upload failed: %s", path, exc.message)
                    skipped.append(str(path))

            if thread_id is None:
                thread = await self._client.threads.create()
                thread_id = owned_thread = thread["id"]
            await self._client.messages.create(thread_id, text or "", image_file_ids=uploaded)
            run = await self._client.runs.create(
                thread_id, assistant_id, model=model, instructions=instructions
            )
            try:
                outcome, final = await self.poll_run(
                    thread_id,
                    run["id"],
                    poll_interval=poll_interval,
                    max_wait=max_wait,
                    run=run,
                )
            except RunTimeout as exc:
                response = AssistantResponse(
                    success=False,
                    outcome=RunOutcome.TIMED_OUT,
                    error=exc.message,
                    run=exc.last_run,
                )
            except ApiError as exc:
                logger.warning("[ask] Polling run %s failed: %s", run["id"], exc.message)
                await self._cancel(thread_id, run["id"])
                response = AssistantResponse(
                    success=False,
                    outcome=RunOutcome.FAILED,
                    error=exc.message,
                )
            else:
                response = await self._build_response(outcome, final, thread_id)
        finally:
            cleanup = await self._cleanup(uploaded, owned_thread)

        response.assistant_id = assistant_id
        response.thread_id = thread_id
        response.run_id = run["id"]
        response.attached_file_ids = uploaded
        response.skipped_images = skipped
        response.cleanup = cleanup
        return response

    async def _build_response(
        self, outcome: RunOutcome, run: Dict[str, Any], thread_id: str
    ) -> AssistantResponse:
        usage = run.get("usage") or {}
        resolved_model = run.get("model") or ""
        started_at = run.get("started_at")
        completed_at = run.get("completed_at")
        caps = model_capabilities(resolved_model)
        response = AssistantResponse(
            success=False,
            outcome=outcome,
            model=resolved_model or None,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
            total_tokens=usage.get("total_tokens"),
            estimated_cost=estimate_cost(
                resolved_model, usage.get("prompt_tokens"), usage.get("completion_tokens")
            ),
            created_at=run.get("created_at"),
            started_at=started_at,
            completed_at=completed_at,
            processing_seconds=(
                float(completed_at - started_at)
                if started_at is not None and completed_at is not None
                else None
            ),
            vision_capable=caps["vision_capable"],
            reasoning_model=caps["reasoning_model"],
            run=run,
        )
        if outcome is not RunOutcome.COMPLETED:
            response.error = _run_error_message(run, outcome)
            logger.warning("[ask] Run %s ended as %s: %s", run.get("id"), outcome.value, response.error)
            return response
        try:
            latest = await self._client.messages.latest(thread_id)
        except ApiError as exc:
            response.error = f"Run completed but the reply could not be fetched: {exc.message}"
            return response
        response.text = message_text(latest)
        response.success = True
        return response

    async def _cleanup(self, file_ids: Sequence[str], thread_id: Optional[str]) -> CleanupReport:
        report = CleanupReport(thread_id=thread_id)
        for file_id in file_ids:
            try:
                await self._client.files.delete(file_id)
                report.deleted_files.append(file_id)
            except ApiError as exc:
                logger.warning("[cleanup] Could not delete file %s: %s", file_id, exc.message)
                report.failed_files.append(file_id)
                report.errors.append(f"file {file_id}: {exc.message}")
        if thread_id is not None:
            try:
                await self._client.threads.delete(thread_id)
                report.thread_deleted = True
            except ApiError as exc:
                logger.warning("[cleanup] Could not delete thread %s: %s", thread_id, exc.message)
                report.errors.append(f"thread {thread_id}: {exc.message}")
        return report
