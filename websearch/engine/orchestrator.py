"""Search Orchestrator - 다중 엔진 폴백 검색

우선순위 순으로 백엔드를 시도하고 결과 관련성 점수로 조기 반환 여부를 결정합니다.
1. 점수 >= 0.8 → 즉시 반환
2. 점수 >= threshold 이고 기준 백엔드(첫 번째)가 아님 → 즉시 반환
3. 마지막 백엔드 → 지금까지의 최고 결과 반환 (임계값 미달이어도 비어있지 않으면 반환)
모두 실패하면 ([], "None").
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, NamedTuple, Optional, Sequence

from websearch.core.config import settings
from websearch.core.exceptions import InvalidQueryException
from websearch.core.logging import logger, sanitize_for_log
from websearch.crawlers.browser_pool import shutdown_browser_pool
from websearch.schemas.search_schema import SearchResult
from websearch.utils.text_utils import sanitize_query

from .backends import SearchBackend, default_backends
from .quality import assess_result_quality
from .rate_limiter import RateLimiter


HIGH_QUALITY_SCORE = 0.8
MAX_ATTEMPT_TIMEOUT_MS = 5000
NO_ENGINE = "None"


class SearchOutcome(NamedTuple):
    results: List[SearchResult]
    engine: str


@dataclass
class EngineAttempt:
    engine: str
    results: List[SearchResult] = field(default_factory=list)
    quality: float = 0.0
    error: Optional[str] = None


class SearchOrchestrator:
    """다중 엔진 검색 오케스트레이터

    Usage:
        orchestrator = SearchOrchestrator()
        results, engine = await orchestrator.search("python asyncio tutorial", num_results=5)
    """

    def __init__(
        self,
        backends: Optional[Sequence[SearchBackend]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        *,
        enable_relevance_checking: Optional[bool] = None,
        relevance_threshold: Optional[float] = None,
        force_multi_engine: Optional[bool] = None,
    ):
        self.backends: List[SearchBackend] = list(backends) if backends is not None else default_backends()
        if not self.backends:
            raise ValueError("at least one search backend is required")

        self.rate_limiter = rate_limiter or RateLimiter(
            max_calls=settings.search_rate_limit_per_minute, period_s=60.0, name="RateLimiter"
        )
        self.enable_relevance_checking = (
            settings.enable_relevance_checking if enable_relevance_checking is None else enable_relevance_checking
        )
        self.relevance_threshold = (
            settings.relevance_threshold if relevance_threshold is None else relevance_threshold
        )
        self.force_multi_engine = (
            settings.force_multi_engine_search if force_multi_engine is None else force_multi_engine
        )

        logger.info(
            f"[SearchEngine] Configuration: relevance_checking={self.enable_relevance_checking}, "
            f"threshold={self.relevance_threshold}, force_multi_engine={self.force_multi_engine}, "
            f"backends={[b.name for b in self.backends]}"
        )

    @property
    def baseline_backend(self) -> SearchBackend:
        return self.backends[0]

    async def search(
        self,
        query: str,
        num_results: int = 5,
        timeout_ms: int = 10000,
    ) -> SearchOutcome:
        """다중 엔진 검색

        Returns:
            SearchOutcome(results, engine) - 모두 실패 시 ([], "None")

        Raises:
            InvalidQueryException: 정규화 후 빈 검색어
        """
        sanitized = sanitize_query(query or "")
        if not sanitized:
            raise InvalidQueryException("query must not be empty")

        return await self.rate_limiter.execute(lambda: self._search(sanitized, num_results, timeout_ms))

    async def _search(self, query: str, num_results: int, timeout_ms: int) -> SearchOutcome:
        started = time.monotonic()
        attempt_timeout_s = min(timeout_ms / 3, MAX_ATTEMPT_TIMEOUT_MS) / 1000.0

        logger.info(
            f"[SearchEngine] Starting search for query: '{sanitize_for_log(query)}' "
            f"(num_results={num_results}, attempt_timeout={attempt_timeout_s:.2f}s)"
        )

        best: Optional[EngineAttempt] = None
        last_index = len(self.backends) - 1

        for index, backend in enumerate(self.backends):
            attempt = await self._run_attempt(backend, query, num_results, attempt_timeout_s)

            if attempt.results:
                # 첫 비어있지 않은 결과는 0.0이어도 최선으로 보관 (저품질 결과라도 반환)
                if best is None or attempt.quality > best.quality:
                    best = attempt

                if self.force_multi_engine:
                    logger.info(f"[SearchEngine] Multi-engine forcing on, continuing after {attempt.engine}")
                elif attempt.quality >= HIGH_QUALITY_SCORE:
                    logger.info(
                        f"[SearchEngine] High quality results from {attempt.engine} "
                        f"(quality: {attempt.quality:.2f}), returning immediately"
                    )
                    return self._finish(attempt, started)
                elif attempt.quality >= self.relevance_threshold and backend is not self.baseline_backend:
                    logger.info(
                        f"[SearchEngine] Acceptable results from {attempt.engine} "
                        f"(quality: {attempt.quality:.2f}), returning"
                    )
                    return self._finish(attempt, started)

            if index == last_index and best is not None:
                if not self.enable_relevance_checking or best.quality >= self.relevance_threshold:
                    logger.info(
                        f"[SearchEngine] Using best results from {best.engine} (quality: {best.quality:.2f})"
                    )
                else:
                    logger.warning(
                        f"[SearchEngine] Best results from {best.engine} are below relevance threshold "
                        f"(quality: {best.quality:.2f} < {self.relevance_threshold}), returning anyway"
                    )
                return self._finish(best, started)

        logger.warning(
            f"[SearchEngine] All search approaches failed for query: '{sanitize_for_log(query)}' "
            f"({(time.monotonic() - started) * 1000:.0f}ms)"
        )
        return SearchOutcome([], NO_ENGINE)

    async def _run_attempt(
        self,
        backend: SearchBackend,
        query: str,
        num_results: int,
        timeout_s: float,
    ) -> EngineAttempt:
        """백엔드 1회 시도 (실패/타임아웃은 점수 0으로 기록, 예외를 올리지 않음)"""
        try:
            results = await asyncio.wait_for(backend.attempt(query, num_results, timeout_s), timeout=timeout_s)
        except asyncio.TimeoutError:
            logger.warning(f"[SearchEngine] {backend.name} timed out after {timeout_s:.2f}s")
            return EngineAttempt(engine=backend.name, error="timeout")
        except Exception as e:
            logger.warning(f"[SearchEngine] {backend.name} failed: {type(e).__name__}: {e}")
            return EngineAttempt(engine=backend.name, error=f"{type(e).__name__}: {e}")

        results = list(results or [])
        if not results:
            logger.info(f"[SearchEngine] {backend.name} returned no results")
            return EngineAttempt(engine=backend.name)

        quality = assess_result_quality(results, query) if self.enable_relevance_checking else 1.0
        logger.info(f"[SearchEngine] Found {len(results)} results with {backend.name} (quality: {quality:.2f})")
        return EngineAttempt(engine=backend.name, results=results, quality=quality)

    def _finish(self, attempt: EngineAttempt, started: float) -> SearchOutcome:
        logger.info(
            f"[SearchEngine] Search completed with {attempt.engine}: {len(attempt.results)} results "
            f"in {(time.monotonic() - started) * 1000:.0f}ms"
        )
        return SearchOutcome(attempt.results, attempt.engine)

    async def close_all(self) -> None:
        await shutdown_browser_pool()
