"""Rate Limiter - 롤링 윈도우 기반 호출 페이싱

윈도우(period_s) 안에서 최대 max_calls번만 실행합니다.
예산을 넘는 호출은 거절하지 않고 슬롯이 열릴 때까지 대기한 뒤 정확히 한 번 실행합니다.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, TypeVar

from websearch.core.logging import logger

T = TypeVar("T")


class RateLimiter:
    """롤링 윈도우 레이트 리미터

    Usage:
        limiter = RateLimiter(max_calls=10, period_s=60.0)
        result = await limiter.execute(lambda: do_search(query))
    """

    def __init__(self, max_calls: int = 10, period_s: float = 60.0, name: str = "RateLimiter") -> None:
        if max_calls <= 0:
            raise ValueError("max_calls must be positive")
        if period_s <= 0:
            raise ValueError("period_s must be positive")

        self.max_calls = max_calls
        self.period_s = period_s
        self.name = name
        self._calls: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        while self._calls and now - self._calls[0] >= self.period_s:
            self._calls.popleft()

    async def acquire(self) -> float:
        """슬롯 확보 (필요 시 대기)

        Returns:
            실제로 대기한 시간 (초)
        """
        waited = 0.0
        async with self._lock:
            while True:
                now = time.monotonic()
                self._prune(now)
                if len(self._calls) < self.max_calls:
                    self._calls.append(now)
                    return waited

                delay = self.period_s - (now - self._calls[0])
                logger.info(f"[{self.name}] Rate limit reached ({self.max_calls}/{self.period_s:.0f}s), waiting {delay:.2f}s")
                await asyncio.sleep(delay)
                waited += delay

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        await self.acquire()
        return await fn()

    @property
    def available(self) -> int:
        self._prune(time.monotonic())
        return max(0, self.max_calls - len(self._calls))

    def __repr__(self) -> str:
        return f"RateLimiter(name={self.name}, max_calls={self.max_calls}, period={self.period_s}s)"
