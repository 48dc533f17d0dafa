"""본문 추출 파이프라인 (HTTP Fast Path → Playwright 폴백).

책임:
- HTTP(curl_cffi)로 가볍게 가져와 본문 추출
- 봇 방어 신호가 보이면 공유 브라우저 풀로 렌더링 후 재추출
- 검색 결과 목록에 대한 동시 대량 추출 (항목별 외부 타임아웃)
"""

from __future__ import annotations

import asyncio
from typing import List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from websearch.core.config import settings
from websearch.core.exceptions import (
    ContentTooLongException,
    ExtractionFailedException,
    HttpStatusException,
    InvalidURLException,
    LowQualityContentException,
    NetworkException,
    NetworkTimeoutException,
    WebSearchException,
)
from websearch.core.logging import logger, sanitize_for_log
from websearch.schemas.search_schema import SearchResult
from websearch.utils.text_utils import (
    clean_text,
    generate_timestamp,
    get_content_preview,
    get_word_count,
    is_pdf_url,
)

from .browser_pool import BrowserPool, get_browser_pool
from .escalation import match_escalation_rule
from .http_client import SharedHttpClient, get_shared_http_client
from .pages import configure_page, simulate_human_behavior
from .parsing import extract_main_text, is_low_quality_content
from .personas import get_random_persona


CONTENT_WAIT_SELECTOR = "article, main, .content, .post-content, .entry-content, body"
CONTENT_WAIT_TIMEOUT_MS = 5000
MAX_BULK_CANDIDATES = 10
DEFAULT_MAX_CONTENT_LENGTH = 500000


def _is_timeout_error(error: BaseException) -> bool:
    return isinstance(
        error,
        (NetworkTimeoutException, PlaywrightTimeoutError, asyncio.TimeoutError, TimeoutError),
    )


def classify_extraction_error(error: BaseException) -> str:
    """원시 예외 대신 결과에 실을 분류된 실패 메시지"""
    if isinstance(error, ExtractionFailedException):
        causes = [c for c in (error.http_error, error.browser_error) if c is not None]
        if any(_is_timeout_error(c) for c in causes):
            return "Request timeout"
        if error.http_error is not None:
            return classify_extraction_error(error.http_error)
        return error.message

    if _is_timeout_error(error):
        return "Request timeout"

    if isinstance(error, HttpStatusException):
        if error.status == 403:
            return "403 Forbidden - Access denied"
        if error.status == 404:
            return "404 Not found"
        return f"HTTP {error.status}: {error.message}"

    if isinstance(error, ContentTooLongException):
        return "Content too long"

    if isinstance(error, NetworkException):
        return f"Network error: {error.message}"

    if isinstance(error, WebSearchException):
        return error.message

    return str(error) or type(error).__name__


class ContentExtractor:
    """2단계 본문 추출기

    Usage:
        extractor = ContentExtractor()
        text = await extractor.extract_content("https://example.com/article", max_length=1000)
    """

    def __init__(
        self,
        browser_pool: Optional[BrowserPool] = None,
        http_client: Optional[SharedHttpClient] = None,
        *,
        default_timeout_ms: Optional[int] = None,
        max_content_length: Optional[int] = None,
    ) -> None:
        self._pool = browser_pool
        self._http = http_client or get_shared_http_client()
        self.default_timeout_ms = default_timeout_ms or settings.default_timeout

        limit = settings.max_content_length if max_content_length is None else max_content_length
        if limit < 0:
            logger.warning(f"[Extractor] Invalid max content length: {limit}, using default {DEFAULT_MAX_CONTENT_LENGTH}")
            limit = DEFAULT_MAX_CONTENT_LENGTH
        self.max_content_length = limit

        logger.info(
            f"[Extractor] Configuration: timeout={self.default_timeout_ms}ms, "
            f"max_content_length={self.max_content_length}"
        )

    @property
    def browser_pool(self) -> BrowserPool:
        # 브라우저가 필요해질 때까지 공유 풀 생성을 미룸
        if self._pool is None:
            self._pool = get_browser_pool()
        return self._pool

    async def extract_content(
        self,
        url: str,
        max_length: Optional[int] = None,
        timeout_ms: Optional[int] = None,
    ) -> str:
        """URL에서 본문 텍스트 추출

        Raises:
            InvalidURLException: http(s) URL이 아님
            ExtractionFailedException: HTTP/브라우저 경로 모두 실패
            CrawlerException: 에스컬레이션 대상이 아닌 HTTP 경로 실패 (그대로 전파)
        """
        if not url or not url.startswith(("http://", "https://")):
            raise InvalidURLException(url or "", "URL must start with http:// or https://")

        max_length = self.max_content_length if max_length is None else max_length
        timeout_ms = timeout_ms or self.default_timeout_ms

        logger.info(f"[Extractor] Starting extraction for: {sanitize_for_log(url, 200)}")

        try:
            content = await self._extract_with_http(url, max_length, timeout_ms)
            logger.info(f"[Extractor] Successfully extracted via HTTP: {len(content)} chars")
            return content
        except Exception as http_error:
            logger.info(f"[Extractor] HTTP path failed: {type(http_error).__name__}: {http_error}")

            rule = match_escalation_rule(http_error, url)
            if rule is None:
                raise

            logger.info(f"[Extractor] Falling back to browser (rule={rule}) for: {sanitize_for_log(url, 200)}")
            try:
                content = await self._extract_with_browser(url, max_length, timeout_ms)
            except Exception as browser_error:
                logger.error(
                    f"[Extractor] Browser extraction also failed: {type(browser_error).__name__}: {browser_error}"
                )
                raise ExtractionFailedException(
                    url,
                    {"url": url, "escalation_rule": rule, "browser_error": type(browser_error).__name__},
                    http_error=http_error,
                    browser_error=browser_error,
                ) from browser_error

            logger.info(f"[Extractor] Successfully extracted via browser: {len(content)} chars")
            return content

    def _truncate(self, content: str, max_length: int, url: str) -> str:
        if max_length and len(content) > max_length:
            logger.info(
                f"[Extractor] Content truncated from {len(content)} to {max_length} characters for "
                f"{sanitize_for_log(url, 200)}"
            )
            return content[:max_length]
        return content

    async def _extract_with_http(self, url: str, max_length: int, timeout_ms: int) -> str:
        persona = get_random_persona()
        response = await self._http.get(
            url,
            timeout_s=timeout_ms / 1000.0,
            headers=persona.http_headers(),
        )

        content = self._truncate(extract_main_text(response.text), max_length, url)

        if is_low_quality_content(content):
            raise LowQualityContentException(url, len(content))

        return content

    async def _extract_with_browser(self, url: str, max_length: int, timeout_ms: int) -> str:
        persona = get_random_persona()
        context = await self.browser_pool.get_context(persona)

        try:
            page = await context.new_page()
            await configure_page(page)

            logger.info(f"[BrowserExtractor] Navigating to {sanitize_for_log(url, 200)} with persona {persona.name}")
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)

            await simulate_human_behavior(page)

            try:
                await page.wait_for_selector(CONTENT_WAIT_SELECTOR, timeout=CONTENT_WAIT_TIMEOUT_MS)
            except Exception:
                logger.info("[BrowserExtractor] No main content selector found, proceeding anyway")

            html = await page.content()
            return self._truncate(extract_main_text(html), max_length, url)
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"[BrowserExtractor] Failed to close context: {type(e).__name__}: {e}")

    async def extract_content_for_results(
        self,
        results: List[SearchResult],
        target_count: Optional[int] = None,
    ) -> List[SearchResult]:
        """검색 결과 목록의 본문을 동시 추출

        - PDF 등 비기사 문서 제외
        - 실패 대비 min(2×target, 10)개 후보 처리
        - 항목마다 외부 타임아웃을 걸어 느린 페이지 하나가 배치를 막지 않음
        - 성공 우선, 남는 자리는 실패 결과로 채움
        """
        target = len(results) if target_count is None else max(0, target_count)
        logger.info(f"[Extractor] Processing up to {len(results)} results to get {target} non-PDF results")

        non_pdf = [r for r in results if not is_pdf_url(r.url)]
        to_process = non_pdf[: min(target * 2, MAX_BULK_CANDIDATES)]

        logger.info(f"[Extractor] Processing {len(to_process)} non-PDF results concurrently")
        processed = await asyncio.gather(*(self._extract_for_result(r) for r in to_process))

        successes = [r for r in processed if r.fetch_status == "success"]
        failures = [r for r in processed if r.fetch_status == "error"]

        enhanced = (successes[:target] + failures[: max(0, target - len(successes))])[:target]

        logger.info(
            f"[Extractor] Completed processing {len(to_process)} results, "
            f"extracted {len(successes)} successful/{len(failures)} failed"
        )
        return enhanced

    async def _extract_for_result(self, result: SearchResult) -> SearchResult:
        try:
            content = await asyncio.wait_for(
                self.extract_content(result.url, timeout_ms=settings.bulk_extraction_timeout_ms),
                timeout=settings.bulk_extraction_race_timeout_ms / 1000.0,
            )
            cleaned = clean_text(content, self.max_content_length)
            logger.info(f"[Extractor] Successfully extracted: {sanitize_for_log(result.url, 200)}")
            return result.model_copy(
                update={
                    "full_content": cleaned,
                    "content_preview": get_content_preview(cleaned),
                    "word_count": get_word_count(cleaned),
                    "timestamp": generate_timestamp(),
                    "fetch_status": "success",
                    "error": None,
                }
            )
        except Exception as e:
            message = classify_extraction_error(e)
            logger.info(f"[Extractor] Failed to extract: {sanitize_for_log(result.url, 200)} - {message}")
            return result.model_copy(
                update={
                    "full_content": "",
                    "content_preview": "",
                    "word_count": 0,
                    "timestamp": generate_timestamp(),
                    "fetch_status": "error",
                    "error": message,
                }
            )

    async def close_all(self) -> None:
        if self._pool is not None:
            await self._pool.close_all()
