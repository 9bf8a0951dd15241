import asyncio
from dataclasses import dataclass
from typing import Optional

import pytest

from oaiwrap.core.errors import (
    ErrorKind,
    PartialBatchFailure,
    RemoteRequestFailed,
    ValidationFailed,
)
from oaiwrap.utils.batching import (
    chunked,
    parallel_map,
    raise_for_batch_failures,
    records_to_frame,
    run_chunked,
)


@dataclass
class Record:
    item: str
    value: Optional[str] = None
    success: bool = True
    error: Optional[str] = None
    error_kind: Optional[str] = None
    index: int = 0
    batch_index: int = 0
    position_in_batch: int = 0


def _record(item, position, response):
    return Record(item=item, value=response[position])


def _error(item, err):
    return Record(item=item, success=False, error=err.message, error_kind=err.kind.value)


async def _no_sleep(_):
    return None


def test_chunked_partitions():
    assert chunked(list(range(5)), 2) == [[0, 1], [2, 3], [4]]
    assert chunked([], 3) == []
    with pytest.raises(ValueError):
        chunked([1], 0)


def test_run_chunked_returns_one_record_per_item():
    items = [f"t{i}" for i in range(250)]
    calls = []

    async def call_chunk(chunk):
        calls.append(len(chunk))
        return [s.upper() for s in chunk]

    records = asyncio.run(run_chunked(items, call_chunk, _record, _error, sleep=_no_sleep))
    assert calls == [100, 100, 50]
    assert len(records) == 250
    assert [r.index for r in records] == list(range(250))
    assert records[150].batch_index == 1
    assert records[150].position_in_batch == 50
    assert records[249].value == "T249"
    assert all(r.success for r in records)


def test_run_chunked_failure_is_confined_to_its_chunk():
    items = list("abcdefg")

    async def call_chunk(chunk):
        if "d" in chunk:
            raise RemoteRequestFailed("server exploded", status_code=500)
        return chunk

    records = asyncio.run(
        run_chunked(items, call_chunk, _record, _error, chunk_size=3, sleep=_no_sleep)
    )
    assert len(records) == 7
    assert [r.success for r in records] == [True, True, True, False, False, False, True]
    assert records[3].error == "server exploded"
    assert records[3].error_kind == ErrorKind.REMOTE_REQUEST_FAILED.value
    assert records[6].value == "g"


def test_run_chunked_malformed_response_becomes_error_records():
    async def call_chunk(chunk):
        return []  # too short: building a record raises IndexError

    records = asyncio.run(
        run_chunked(["x", "y"], call_chunk, _record, _error, sleep=_no_sleep)
    )
    assert [r.success for r in records] == [False, False]
    assert records[0].error_kind == ErrorKind.UNEXPECTED_FAILURE.value


def test_run_chunked_pauses_between_chunks_only():
    pauses = []

    async def fake_sleep(seconds):
        pauses.append(seconds)

    async def call_chunk(chunk):
        return chunk

    asyncio.run(
        run_chunked(list("abcde"), call_chunk, _record, _error, chunk_size=2, pause=0.05, sleep=fake_sleep)
    )
    assert pauses == [0.05, 0.05]


def test_parallel_map_respects_throttle_and_order():
    in_flight = 0
    peak = 0

    async def fn(item):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        if item == "boom":
            raise RemoteRequestFailed("rate limited", status_code=429)
        return Record(item=item, value=item * 2)

    items = ["a", "b", "boom", "c", "d", "e", "f"]
    records = asyncio.run(parallel_map(items, fn, _error, throttle_limit=2))
    assert peak <= 2
    assert [r.item for r in records] == items
    assert [r.index for r in records] == list(range(len(items)))
    assert records[2].success is False
    assert records[2].error == "rate limited"
    assert records[3].value == "cc"


def test_parallel_map_rejects_out_of_range_throttle():
    async def fn(item):
        return Record(item=item)

    with pytest.raises(ValidationFailed):
        asyncio.run(parallel_map(["a"], fn, _error, throttle_limit=11))


def test_parallel_map_validation_errors_are_per_item():
    async def fn(item):
        if item == "bad":
            raise ValidationFailed("temperature must be <= 2.0, got 5")
        return Record(item=item)

    records = asyncio.run(parallel_map(["ok", "bad"], fn, _error))
    assert records[0].success and not records[1].success
    assert records[1].error_kind == ErrorKind.VALIDATION_FAILED.value


def test_raise_for_batch_failures():
    ok = [Record(item="a"), Record(item="b")]
    raise_for_batch_failures(ok)
    mixed = ok + [Record(item="c", success=False, error="nope")]
    with pytest.raises(PartialBatchFailure) as excinfo:
        raise_for_batch_failures(mixed)
    assert excinfo.value.failed == [mixed[2]]
    assert "1 of 3" in excinfo.value.message


def test_records_to_frame_drops_raw():
    @dataclass
    class WithRaw:
        item: str
        raw: dict

    df = records_to_frame([WithRaw("a", {"x": 1}), WithRaw("b", {"x": 2})])
    assert list(df.columns) == ["item"]
    assert df["item"].tolist() == ["a", "b"]
