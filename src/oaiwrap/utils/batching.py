"""Chunked and bounded-parallel execution helpers for batch operations.

Both helpers return exactly one record per input item.  A failure only
affects the records of the chunk (or parallel unit) where it happened; the
rest of the batch still runs.  Records are expected to expose the
bookkeeping attributes ``index``, ``batch_index``, ``position_in_batch``,
``success`` and ``error``.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import (
    Any,
    Awaitable,
    Callable,
    Iterable,
    List,
    Optional,
    Sequence,
    TypeVar,
)

import pandas as pd
from aiolimiter import AsyncLimiter
from tqdm.auto import tqdm

from ..core.errors import ApiError, PartialBatchFailure, UnexpectedFailure
from .logging import get_logger
from .validation import check_range

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CHUNK_SIZE = 100
# pause between chunks, seconds
DEFAULT_CHUNK_PAUSE = 0.05
MAX_THROTTLE_LIMIT = 10

# payload shapes that indicate a malformed response rather than a remote error
_SHAPE_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


def _progress_bar(*args: Any, verbose: bool = True, **kwargs: Any):
    """Construct a tqdm progress bar that degrades gracefully."""

    disable = kwargs.pop("disable", False) or not verbose
    kwargs.setdefault("dynamic_ncols", True)
    return tqdm(*args, disable=disable, **kwargs)


def chunked(items: Sequence[T], size: int = DEFAULT_CHUNK_SIZE) -> List[List[T]]:
    if size < 1:
        raise ValueError("chunk size must be positive")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def _as_api_error(exc: Exception) -> ApiError:
    if isinstance(exc, ApiError):
        return exc
    return UnexpectedFailure(f"Malformed response: {exc!r}")


async def run_chunked(
    items: Sequence[T],
    call_chunk: Callable[[List[T]], Awaitable[Any]],
    build_record: Callable[[T, int, Any], R],
    build_error: Callable[[T, ApiError], R],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    pause: float = DEFAULT_CHUNK_PAUSE,
    verbose: bool = False,
    desc: str = "Processing",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> List[R]:
    """Call the API once per chunk and build one record per item.

    ``build_record(item, position_in_batch, response)`` receives the decoded
    response of the item's chunk.  When the call or any record build fails,
    every item of that chunk gets ``build_error(item, error)`` instead.
    """

    records: List[R] = []
    chunks = chunked(items, chunk_size)
    pbar = _progress_bar(total=len(items), desc=desc, verbose=verbose)
    try:
        for batch_index, chunk in enumerate(chunks):
            if batch_index and pause > 0:
                await sleep(pause)
            try:
                response = await call_chunk(chunk)
                chunk_records = [
                    build_record(item, position, response)
                    for position, item in enumerate(chunk)
                ]
            except asyncio.CancelledError:
                raise
            except (ApiError,) + _SHAPE_ERRORS as exc:
                err = _as_api_error(exc)
                logger.warning(
                    "[run_chunked] Chunk %d (%d items) failed: %s",
                    batch_index,
                    len(chunk),
                    err.message,
                )
                chunk_records = [build_error(item, err) for item in chunk]
            for position, record in enumerate(chunk_records):
                _stamp(
                    record,
                    index=len(records),
                    batch_index=batch_index,
                    position_in_batch=position,
                )
                records.append(record)
            pbar.update(len(chunk))
    finally:
        pbar.close()
    return records


async def parallel_map(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    build_error: Callable[[T, ApiError], R],
    *,
    throttle_limit: int = 5,
    requests_per_minute: Optional[float] = None,
    verbose: bool = False,
    desc: str = "Processing",
) -> List[R]:
    """Run ``fn`` over independent items with at most ``throttle_limit`` in flight.

    Each unit's failure is converted into ``build_error(item, error)``.  The
    optional ``requests_per_minute`` cap is a fixed limiter, not adaptive.
    """

    check_range("throttle_limit", throttle_limit, 1, MAX_THROTTLE_LIMIT)
    semaphore = asyncio.Semaphore(int(throttle_limit))
    limiter = (
        AsyncLimiter(requests_per_minute, 60) if requests_per_minute else None
    )
    pbar = _progress_bar(total=len(items), desc=desc, verbose=verbose)

    async def _call(item: T) -> R:
        if limiter is not None:
            async with limiter:
                return await fn(item)
        return await fn(item)

    async def _unit(index: int, item: T) -> R:
        async with semaphore:
            try:
                record = await _call(item)
            except asyncio.CancelledError:
                raise
            except (ApiError,) + _SHAPE_ERRORS as exc:
                err = _as_api_error(exc)
                logger.warning("[parallel_map] Item %d failed: %s", index, err.message)
                record = build_error(item, err)
            _stamp(record, index=index, batch_index=index, position_in_batch=0)
            pbar.update(1)
            return record

    try:
        return list(await asyncio.gather(*(_unit(i, item) for i, item in enumerate(items))))
    finally:
        pbar.close()


def _stamp(record: Any, **fields: int) -> None:
    for name, value in fields.items():
        if hasattr(record, name):
            setattr(record, name, value)


def failed_records(records: Iterable[Any]) -> List[Any]:
    return [r for r in records if not getattr(r, "success", True)]


def raise_for_batch_failures(records: Sequence[Any]) -> None:
    """Raise :class:`PartialBatchFailure` if any record failed."""

    failed = failed_records(records)
    if not failed:
        return
    first = getattr(failed[0], "error", None) or "unknown error"
    raise PartialBatchFailure(
        f"{len(failed)} of {len(records)} items failed (first error: {first})",
        failed=failed,
    )


def records_to_frame(records: Iterable[Any], *, drop: Sequence[str] = ("raw",)) -> pd.DataFrame:
    """Flatten result dataclasses into a DataFrame."""

    rows = []
    for record in records:
        row = dataclasses.asdict(record) if dataclasses.is_dataclass(record) else dict(record)
        for key in drop:
            row.pop(key, None)
        rows.append(row)
    return pd.DataFrame(rows)


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "DEFAULT_CHUNK_PAUSE",
    "chunked",
    "run_chunked",
    "parallel_map",
    "failed_records",
    "raise_for_batch_failures",
    "records_to_frame",
]
