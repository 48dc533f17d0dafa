"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake(브라우저, 컨텍스트, 페이지, 백엔드, HTTP 클라이언트) 제공

금지:
- 실제 네트워크 호출
- 실제 브라우저 실행
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("GC_ENABLED", "false")

from websearch.crawlers.http_client import HttpResponse  # noqa: E402
from websearch.schemas.search_schema import SearchResult  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


def make_result(title: str, url: Optional[str] = None, description: str = "") -> SearchResult:
    return SearchResult(
        title=title,
        url=url or f"https://example.com/{title.lower().replace(' ', '-')}",
        description=description,
        timestamp="2026-01-01T00:00:00+00:00",
    )


def make_page(html: str = "<html><body></body></html>") -> MagicMock:
    """Playwright Page 모의 객체"""
    page = MagicMock()
    page.route = AsyncMock()
    page.goto = AsyncMock()
    page.wait_for_selector = AsyncMock()
    page.content = AsyncMock(return_value=html)
    page.evaluate = AsyncMock()
    page.wait_for_timeout = AsyncMock()
    page.mouse = MagicMock()
    page.mouse.move = AsyncMock()
    return page


class FakeContext:
    """BrowserContext 모의 객체 (close 호출 여부 기록)"""

    def __init__(self, page: Optional[MagicMock] = None) -> None:
        self.page = page or make_page()
        self.closed = False
        self.kwargs: dict[str, Any] = {}

    async def new_page(self) -> MagicMock:
        return self.page

    async def close(self) -> None:
        self.closed = True


class FakeBrowser:
    """Browser 모의 객체"""

    def __init__(self, name: str = "browser") -> None:
        self.name = name
        self.connected = True
        self.closed = False
        self.contexts: list[FakeContext] = []

    def is_connected(self) -> bool:
        return self.connected

    async def new_context(self, **kwargs: Any) -> FakeContext:
        context = FakeContext()
        context.kwargs = kwargs
        self.contexts.append(context)
        return context

    async def close(self) -> None:
        self.closed = True
        self.connected = False


class FakePool:
    """BrowserPool 대체: 미리 정한 HTML을 돌려주는 컨텍스트 발급"""

    def __init__(self, html: str = "", *, goto_error: Optional[BaseException] = None) -> None:
        self.html = html
        self.goto_error = goto_error
        self.contexts: list[FakeContext] = []

    async def get_context(self, persona: Any) -> FakeContext:
        page = make_page(self.html)
        if self.goto_error is not None:
            page.goto = AsyncMock(side_effect=self.goto_error)
        context = FakeContext(page)
        self.contexts.append(context)
        return context

    async def close_all(self) -> None:
        return None


@dataclass
class FakeBackend:
    """SearchBackend 대체: 고정 결과 또는 예외"""

    name: str
    results: list[SearchResult] = field(default_factory=list)
    error: Optional[BaseException] = None
    calls: int = 0

    async def attempt(self, query: str, num_results: int, timeout_s: float) -> list[SearchResult]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.results)


class FakeHttpClient:
    """SharedHttpClient 대체: URL별 응답 또는 예외"""

    def __init__(self, responses: Optional[dict[str, Any]] = None, default: Any = None) -> None:
        self.responses = responses or {}
        self.default = default
        self.calls: list[dict[str, Any]] = []

    async def get(self, url: str, *, timeout_s: float, headers=None, params=None, accept_status=None) -> HttpResponse:
        self.calls.append({"url": url, "timeout_s": timeout_s, "headers": headers, "params": params})
        outcome = self.responses.get(url, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            raise AssertionError(f"unexpected request: {url}")
        return HttpResponse(status=200, text=outcome, url=url)

    async def close(self) -> None:
        return None


@pytest.fixture
def fake_browser_factory():
    """런치될 때마다 새 FakeBrowser를 돌려주는 launcher"""
    launched: list[FakeBrowser] = []

    async def launcher() -> FakeBrowser:
        browser = FakeBrowser(name=f"browser-{len(launched) + 1}")
        launched.append(browser)
        return browser

    launcher.launched = launched  # type: ignore[attr-defined]
    return launcher


@pytest.fixture
def result_factory():
    return make_result


@pytest.fixture
def backend_factory():
    return FakeBackend


@pytest.fixture
def pool_factory():
    return FakePool


@pytest.fixture
def http_client_factory():
    return FakeHttpClient


@pytest.fixture
def page_factory():
    return make_page
