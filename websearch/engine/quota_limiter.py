"""Quota Limiter - 초당 페이싱 + 영속 월간 호출 상한

쿼터가 있는 백엔드(Brave Search API 등)용 레이트 리미터입니다.
- 초당 최대 requests_per_second 회 (최소 호출 간격 강제)
- 월 최대 max_requests_per_month 회 (JSON 파일에 영속, 재시작 후에도 유지)
- 실패한 호출은 상한에 포함하지 않음

NOTE: 사용량 파일은 단일 writer 배포를 가정합니다. 여러 프로세스가 같은 파일을 쓰면
      카운터가 손상될 수 있습니다 (파일 잠금 없음).
"""

from __future__ import annotations

import asyncio
import json
import math
import os
import tempfile
import time
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from websearch.core.config import settings
from websearch.core.exceptions import QuotaExceededException
from websearch.core.logging import logger

T = TypeVar("T")


@dataclass
class MonthlyUsage:
    month: str  # "YYYY-MM"
    count: int = 0


def _write_json_atomic(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class QuotaLimiter:
    """초당 + 월간 쿼터 리미터

    Usage:
        limiter = QuotaLimiter(requests_per_second=1, max_requests_per_month=2000)
        data = await limiter.execute(lambda: client.get(...))
    """

    def __init__(
        self,
        requests_per_second: float = 1.0,
        max_requests_per_month: int = 2000,
        usage_file: Optional[str | Path] = None,
        *,
        service: str = "Brave API",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")
        if max_requests_per_month <= 0:
            raise ValueError("max_requests_per_month must be positive")

        self.min_interval_s = 1.0 / requests_per_second
        self.max_requests_per_month = max_requests_per_month
        self.usage_file = Path(usage_file or settings.brave_usage_file)
        self.service = service
        self._clock = clock or datetime.now

        self._usage: Optional[MonthlyUsage] = None
        self._last_request_time = 0.0
        self._in_flight = 0
        self._lock = asyncio.Lock()

    def _current_month(self) -> str:
        return self._clock().strftime("%Y-%m")

    def _load_usage(self) -> MonthlyUsage:
        current_month = self._current_month()
        try:
            with open(self.usage_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            usage = MonthlyUsage(month=str(data["month"]), count=max(0, int(data["count"])))
        except FileNotFoundError:
            return MonthlyUsage(month=current_month, count=0)
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"[QuotaLimiter] Usage file corrupted ({type(e).__name__}), starting fresh")
            return MonthlyUsage(month=current_month, count=0)

        if usage.month != current_month:
            logger.info(f"[QuotaLimiter] New month detected, resetting counter from {usage.month} to {current_month}")
            return MonthlyUsage(month=current_month, count=0)
        return usage

    async def _save_usage(self, usage: MonthlyUsage) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, _write_json_atomic, self.usage_file, asdict(usage))
        except Exception as e:
            logger.error(f"[QuotaLimiter] Failed to save usage data: {type(e).__name__}: {e}")

    def _ensure_usage(self) -> MonthlyUsage:
        if self._usage is None:
            self._usage = self._load_usage()
            logger.info(
                f"[QuotaLimiter] Initialized - Month: {self._usage.month}, "
                f"Used: {self._usage.count}/{self.max_requests_per_month}"
            )
        current_month = self._current_month()
        if self._usage.month != current_month:
            logger.info(f"[QuotaLimiter] Month rolled over ({self._usage.month} -> {current_month}), resetting counter")
            self._usage = MonthlyUsage(month=current_month, count=0)
        return self._usage

    def get_days_until_reset(self) -> int:
        now = self._clock()
        if now.month == 12:
            next_month = now.replace(year=now.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        else:
            next_month = now.replace(month=now.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)
        return math.ceil((next_month - now).total_seconds() / 86400)

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        """쿼터 안에서 fn 실행

        Raises:
            QuotaExceededException: 월간 상한 도달 (fn을 호출하지 않음)
        """
        async with self._lock:
            usage = self._ensure_usage()

            # 진행 중인 호출까지 예약분으로 계산해 동시 호출로 상한을 넘지 않도록 함
            if usage.count + self._in_flight >= self.max_requests_per_month:
                raise QuotaExceededException(self.service, self.max_requests_per_month, self.get_days_until_reset())

            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self.min_interval_s:
                wait_s = self.min_interval_s - elapsed
                logger.info(f"[QuotaLimiter] Rate limiting: waiting {wait_s * 1000:.0f}ms")
                await asyncio.sleep(wait_s)

            self._last_request_time = time.monotonic()
            self._in_flight += 1

        try:
            result = await fn()
        finally:
            self._in_flight -= 1

        async with self._lock:
            usage = self._ensure_usage()
            usage.count += 1
            await self._save_usage(usage)
            logger.info(
                f"[QuotaLimiter] Request successful. Monthly usage: {usage.count}/{self.max_requests_per_month}"
            )

        return result

    async def get_status(self) -> Dict[str, Any]:
        async with self._lock:
            usage = self._ensure_usage()
            return {
                "monthly_used": usage.count,
                "monthly_limit": self.max_requests_per_month,
                "monthly_remaining": max(0, self.max_requests_per_month - usage.count),
                "current_month": usage.month,
                "days_until_reset": self.get_days_until_reset(),
            }


_shared_quota_limiter: Optional[QuotaLimiter] = None


def get_brave_quota_limiter() -> QuotaLimiter:
    global _shared_quota_limiter
    if _shared_quota_limiter is None:
        _shared_quota_limiter = QuotaLimiter(
            requests_per_second=settings.brave_requests_per_second,
            max_requests_per_month=settings.brave_max_requests_per_month,
            usage_file=settings.brave_usage_file,
        )
    return _shared_quota_limiter
