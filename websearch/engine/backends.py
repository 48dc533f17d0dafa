"""Search Backends - 검색 엔진별 구현

모든 백엔드는 SearchBackend 프로토콜을 따르므로 오케스트레이터는 목록 순서만 관리합니다.
- 브라우저 백엔드: 공유 BrowserPool에서 페르소나 컨텍스트를 받아 렌더링 후 파싱
- HTTP 백엔드: curl_cffi 공유 클라이언트로 가벼운 HTML 엔드포인트 조회
- Brave API 백엔드: 월간 쿼터가 있으므로 모든 호출을 QuotaLimiter로 감쌈
"""

from __future__ import annotations

import json
from typing import List, Optional, Protocol, Sequence
from urllib.parse import quote_plus

from websearch.core.config import settings
from websearch.core.exceptions import BlockedException, EngineException
from websearch.core.logging import logger
from websearch.crawlers.browser_pool import BrowserPool, get_browser_pool
from websearch.crawlers.http_client import SharedHttpClient, get_shared_http_client
from websearch.crawlers.pages import configure_page
from websearch.crawlers.parsing import (
    get_blocked_keyword,
    parse_bing_results,
    parse_brave_results,
    parse_duckduckgo_browser_results,
    parse_duckduckgo_html_results,
)
from websearch.crawlers.personas import get_random_persona
from websearch.schemas.search_schema import SearchResult
from websearch.utils.text_utils import generate_timestamp

from .quota_limiter import QuotaLimiter, get_brave_quota_limiter


class SearchBackend(Protocol):
    """검색 백엔드 프로토콜"""

    name: str

    async def attempt(self, query: str, num_results: int, timeout_s: float) -> List[SearchResult]:
        """검색 1회 시도

        Args:
            query: 정규화된 검색어
            num_results: 최대 결과 수
            timeout_s: 네비게이션/요청 타임아웃 (초)

        Raises:
            CrawlerException: 네트워크/차단/파싱 실패
        """
        ...


class BrowserSearchBackend:
    """브라우저 렌더링 백엔드 공통 흐름

    서브클래스는 name, build_url, wait_selectors, parse만 정의합니다.
    컨텍스트는 성공/실패와 무관하게 항상 닫습니다.
    """

    name = "Browser"
    wait_selectors: Sequence[tuple[str, int]] = ()

    def __init__(self, browser_pool: Optional[BrowserPool] = None) -> None:
        self._pool = browser_pool

    @property
    def browser_pool(self) -> BrowserPool:
        if self._pool is None:
            self._pool = get_browser_pool()
        return self._pool

    def build_url(self, query: str, num_results: int) -> str:
        raise NotImplementedError

    def parse(self, html: str, num_results: int) -> List[SearchResult]:
        raise NotImplementedError

    async def _wait_for_results(self, page) -> None:
        for selector, timeout_ms in self.wait_selectors:
            try:
                await page.wait_for_selector(selector, timeout=timeout_ms)
                return
            except Exception:
                logger.info(f"[SearchEngine] {self.name} selector '{selector}' not found")

    async def attempt(self, query: str, num_results: int, timeout_s: float) -> List[SearchResult]:
        logger.info(f"[SearchEngine] Trying {self.name} search with shared pool...")

        persona = get_random_persona()
        context = await self.browser_pool.get_context(persona)

        try:
            page = await context.new_page()
            await configure_page(page)

            url = self.build_url(query, num_results)
            logger.info(f"[SearchEngine] {self.name} navigating to: {url}")
            await page.goto(url, wait_until="domcontentloaded", timeout=int(timeout_s * 1000))

            await self._wait_for_results(page)

            html = await page.content()
            results = self.parse(html, num_results)
            logger.info(f"[SearchEngine] {self.name} parsed {len(results)} results (html length: {len(html)})")

            if not results:
                keyword = get_blocked_keyword(html)
                if keyword:
                    raise BlockedException(self.name, {"keyword": keyword})

            return results
        finally:
            try:
                await context.close()
            except Exception as e:
                logger.warning(f"[SearchEngine] {self.name} failed to close context: {type(e).__name__}: {e}")


class BrowserBingBackend(BrowserSearchBackend):
    name = "Browser Bing"
    wait_selectors = ((".b_algo, .b_result", 3000),)

    def build_url(self, query: str, num_results: int) -> str:
        return f"https://www.bing.com/search?q={quote_plus(query)}&count={min(num_results, 10)}"

    def parse(self, html: str, num_results: int) -> List[SearchResult]:
        return parse_bing_results(html, num_results)


class BrowserDuckDuckGoBackend(BrowserSearchBackend):
    name = "Browser DuckDuckGo"
    wait_selectors = ((".react-results--main", 3000), ("#links", 2000))

    def build_url(self, query: str, num_results: int) -> str:
        return f"https://duckduckgo.com/?q={quote_plus(query)}&t=h_&ia=web"

    def parse(self, html: str, num_results: int) -> List[SearchResult]:
        return parse_duckduckgo_browser_results(html, num_results)


class BrowserBraveBackend(BrowserSearchBackend):
    name = "Browser Brave"
    wait_selectors = (('[data-type="web"]', 3000),)

    def build_url(self, query: str, num_results: int) -> str:
        return f"https://search.brave.com/search?q={quote_plus(query)}&source=web"

    def parse(self, html: str, num_results: int) -> List[SearchResult]:
        return parse_brave_results(html, num_results)


class HttpDuckDuckGoBackend:
    """html.duckduckgo.com (JS 없는 버전) HTTP 백엔드"""

    name = "DuckDuckGo"
    endpoint = "https://html.duckduckgo.com/html/"

    def __init__(self, http_client: Optional[SharedHttpClient] = None) -> None:
        self._http = http_client or get_shared_http_client()

    async def attempt(self, query: str, num_results: int, timeout_s: float) -> List[SearchResult]:
        logger.info("[SearchEngine] Trying DuckDuckGo HTTP search...")

        persona = get_random_persona()
        response = await self._http.get(
            self.endpoint,
            timeout_s=timeout_s,
            headers=persona.http_headers(),
            params={"q": query},
        )
        logger.info(f"[SearchEngine] DuckDuckGo got response with status: {response.status}")

        results = parse_duckduckgo_html_results(response.text, num_results)
        logger.info(f"[SearchEngine] DuckDuckGo parsed {len(results)} results")

        if not results:
            keyword = get_blocked_keyword(response.text)
            if keyword:
                raise BlockedException(self.name, {"keyword": keyword})

        return results


class BraveApiBackend:
    """Brave Search API 백엔드 (월간 쿼터 적용)"""

    name = "Brave API"
    endpoint = "https://api.search.brave.com/res/v1/web/search"

    def __init__(
        self,
        api_key: str,
        http_client: Optional[SharedHttpClient] = None,
        quota_limiter: Optional[QuotaLimiter] = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key is required for Brave API backend")
        self._api_key = api_key
        self._http = http_client or get_shared_http_client()
        self.quota_limiter = quota_limiter or get_brave_quota_limiter()

    async def attempt(self, query: str, num_results: int, timeout_s: float) -> List[SearchResult]:
        logger.info("[SearchEngine] Trying Brave Search API...")

        async def _call():
            return await self._http.get(
                self.endpoint,
                timeout_s=timeout_s,
                headers={
                    "Accept": "application/json",
                    "X-Subscription-Token": self._api_key,
                },
                params={"q": query, "count": str(min(num_results, 20))},
            )

        response = await self.quota_limiter.execute(_call)
        return self._parse(response.text, num_results)

    def _parse(self, text: str, num_results: int) -> List[SearchResult]:
        try:
            payload = json.loads(text or "{}")
        except ValueError as e:
            raise EngineException(self.name, f"invalid JSON response: {e}") from e

        items = ((payload.get("web") or {}).get("results") or []) if isinstance(payload, dict) else []
        timestamp = generate_timestamp()

        results: List[SearchResult] = []
        for item in items:
            if len(results) >= num_results:
                break
            url = (item.get("url") or "").strip()
            title = (item.get("title") or "").strip()
            if not url or not title:
                continue
            results.append(
                SearchResult(
                    title=title,
                    url=url,
                    description=(item.get("description") or "").strip(),
                    timestamp=timestamp,
                    fetch_status="success",
                )
            )

        logger.info(f"[SearchEngine] Brave API parsed {len(results)} results")
        return results


def default_backends(
    browser_pool: Optional[BrowserPool] = None,
    http_client: Optional[SharedHttpClient] = None,
) -> List[SearchBackend]:
    """우선순위 순 기본 백엔드 목록 (첫 번째가 기준 백엔드)"""
    backends: List[SearchBackend] = [
        BrowserBingBackend(browser_pool),
        BrowserDuckDuckGoBackend(browser_pool),
        BrowserBraveBackend(browser_pool),
        HttpDuckDuckGoBackend(http_client),
    ]
    if settings.brave_api_key:
        backends.append(BraveApiBackend(settings.brave_api_key, http_client))
    return backends
