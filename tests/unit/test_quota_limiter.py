"""QuotaLimiter 테스트 (월간 상한, 영속화, 월 변경)."""

from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime

import pytest

from websearch.core.exceptions import QuotaExceededException
from websearch.engine.quota_limiter import QuotaLimiter


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock():
    return MutableClock(datetime(2026, 3, 15, 12, 0, 0))


@pytest.fixture
def usage_file(tmp_path):
    return tmp_path / "brave-usage.json"


def make_limiter(usage_file, clock, cap=2000):
    return QuotaLimiter(
        requests_per_second=1000,
        max_requests_per_month=cap,
        usage_file=usage_file,
        clock=clock,
    )


def write_usage(path, month, count):
    path.write_text(json.dumps({"month": month, "count": count}))


def read_usage(path):
    return json.loads(path.read_text())


@pytest.mark.asyncio
async def test_successful_call_is_counted_and_persisted(usage_file, clock):
    limiter = make_limiter(usage_file, clock)

    async def call():
        return "payload"

    assert await limiter.execute(call) == "payload"
    assert read_usage(usage_file) == {"month": "2026-03", "count": 1}


@pytest.mark.asyncio
async def test_call_over_monthly_cap_fails_without_calling(usage_file, clock):
    write_usage(usage_file, "2026-03", 1999)
    limiter = make_limiter(usage_file, clock)
    invoked = []

    async def call():
        invoked.append(True)
        return "ok"

    await limiter.execute(call)  # 2000번째 호출
    assert read_usage(usage_file)["count"] == 2000

    with pytest.raises(QuotaExceededException) as exc_info:
        await limiter.execute(call)  # 2001번째 호출

    assert len(invoked) == 1
    assert read_usage(usage_file)["count"] == 2000
    assert exc_info.value.days_until_reset == 17
    assert "Resets in ~17 days" in exc_info.value.message
    assert exc_info.value.error_code == "QUOTA_EXCEEDED"


@pytest.mark.asyncio
async def test_reload_from_file_restores_count(usage_file, clock):
    limiter = make_limiter(usage_file, clock)

    async def call():
        return None

    for _ in range(3):
        await limiter.execute(call)

    reloaded = make_limiter(usage_file, clock)
    status = await reloaded.get_status()

    assert status["monthly_used"] == 3
    assert status["monthly_remaining"] == 1997
    assert status["current_month"] == "2026-03"


@pytest.mark.asyncio
async def test_failed_calls_are_not_counted(usage_file, clock):
    limiter = make_limiter(usage_file, clock)

    async def failing():
        raise RuntimeError("upstream 500")

    with pytest.raises(RuntimeError):
        await limiter.execute(failing)

    status = await limiter.get_status()
    assert status["monthly_used"] == 0
    assert not usage_file.exists()


@pytest.mark.asyncio
async def test_stale_month_in_file_resets_on_load(usage_file, clock):
    write_usage(usage_file, "2026-02", 2000)
    limiter = make_limiter(usage_file, clock)

    async def call():
        return "fresh"

    assert await limiter.execute(call) == "fresh"
    assert read_usage(usage_file) == {"month": "2026-03", "count": 1}


@pytest.mark.asyncio
async def test_month_rollover_resets_before_cap_check(usage_file, clock):
    write_usage(usage_file, "2026-03", 2000)
    limiter = make_limiter(usage_file, clock)

    async def call():
        return "ok"

    with pytest.raises(QuotaExceededException):
        await limiter.execute(call)

    clock.now = datetime(2026, 4, 1, 0, 0, 5)

    assert await limiter.execute(call) == "ok"
    assert read_usage(usage_file) == {"month": "2026-04", "count": 1}


@pytest.mark.asyncio
async def test_corrupt_usage_file_starts_fresh(usage_file, clock):
    usage_file.write_text("{not json")
    limiter = make_limiter(usage_file, clock)

    status = await limiter.get_status()

    assert status["monthly_used"] == 0
    assert status["monthly_limit"] == 2000


@pytest.mark.asyncio
async def test_calls_are_spaced_by_minimum_interval(usage_file, clock):
    limiter = QuotaLimiter(requests_per_second=10, max_requests_per_month=100, usage_file=usage_file, clock=clock)
    started_at: list[float] = []

    async def call():
        started_at.append(time.monotonic())

    for _ in range(3):
        await limiter.execute(call)

    gaps = [b - a for a, b in zip(started_at, started_at[1:])]
    assert all(gap >= 0.09 for gap in gaps)
    assert started_at[-1] - started_at[0] >= 0.19


@pytest.mark.asyncio
async def test_concurrent_calls_at_last_slot_never_exceed_cap(usage_file, clock):
    write_usage(usage_file, "2026-03", 4)
    limiter = make_limiter(usage_file, clock, cap=5)
    called: list[int] = []

    async def call():
        called.append(1)
        await asyncio.sleep(0.05)
        return "ok"

    outcomes = await asyncio.gather(*(limiter.execute(call) for _ in range(3)), return_exceptions=True)

    assert outcomes.count("ok") == 1
    assert sum(isinstance(o, QuotaExceededException) for o in outcomes) == 2
    assert len(called) == 1
    assert read_usage(usage_file) == {"month": "2026-03", "count": 5}


def test_days_until_reset_across_year_boundary(usage_file):
    limiter = make_limiter(usage_file, MutableClock(datetime(2026, 12, 31, 12, 0, 0)))
    assert limiter.get_days_until_reset() == 1


def test_invalid_configuration_rejected(usage_file, clock):
    with pytest.raises(ValueError):
        QuotaLimiter(requests_per_second=0, usage_file=usage_file, clock=clock)
    with pytest.raises(ValueError):
        QuotaLimiter(max_requests_per_month=0, usage_file=usage_file, clock=clock)
