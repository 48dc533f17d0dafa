"""API 통합 테스트 (ASGI 전송, 의존성 오버라이드, 네트워크 없음)."""

from __future__ import annotations

from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio

from websearch.api import get_extractor, get_orchestrator, get_quota_limiter
from websearch.app import create_app
from websearch.core.exceptions import ExtractionFailedException, HttpStatusException, InvalidQueryException
from websearch.engine.orchestrator import SearchOutcome
from websearch.engine.quota_limiter import QuotaLimiter


pytestmark = pytest.mark.integration


@pytest.fixture
def orchestrator(result_factory):
    mock = MagicMock()
    mock.search = AsyncMock(
        return_value=SearchOutcome(
            [result_factory("Python asyncio guide", "https://a.test/1", "Event loop basics")],
            "Browser Bing",
        )
    )
    return mock


@pytest.fixture
def extractor():
    mock = MagicMock()
    mock.extract_content = AsyncMock(return_value="Extracted body text " * 40)

    async def enrich(results, target_count=None):
        return [
            r.model_copy(update={"full_content": "Full text", "word_count": 2, "fetch_status": "success"})
            for r in results
        ]

    mock.extract_content_for_results = AsyncMock(side_effect=enrich)
    return mock


@pytest.fixture
def app(orchestrator, extractor):
    application = create_app()
    application.dependency_overrides[get_orchestrator] = lambda: orchestrator
    application.dependency_overrides[get_extractor] = lambda: extractor
    application.dependency_overrides[get_quota_limiter] = lambda: None
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] in ("ok", "degraded")
    assert "state" in body["browser_pool"]
    assert "chrome_count" in body["gc"]


@pytest.mark.asyncio
async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["docs"] == "/docs"


@pytest.mark.asyncio
async def test_search_returns_results_and_engine(client, orchestrator):
    response = await client.post("/api/v1/search", json={"query": "python asyncio", "limit": 3})

    assert response.status_code == 200
    body = response.json()
    assert body["engine"] == "Browser Bing"
    assert body["total_results"] == 1
    assert body["results"][0]["url"] == "https://a.test/1"
    orchestrator.search.assert_awaited_once()
    assert orchestrator.search.await_args.kwargs["num_results"] == 3


@pytest.mark.asyncio
async def test_search_with_no_results(client, orchestrator):
    orchestrator.search.return_value = SearchOutcome([], "None")

    response = await client.post("/api/v1/search", json={"query": "zzzz"})

    assert response.status_code == 200
    assert response.json()["engine"] == "None"
    assert response.json()["results"] == []


@pytest.mark.asyncio
async def test_search_validation(client):
    response = await client.post("/api/v1/search", json={"query": "python", "limit": 11})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_search_invalid_query_maps_to_400(client, orchestrator):
    orchestrator.search.side_effect = InvalidQueryException("query must not be empty")

    response = await client.post("/api/v1/search", json={"query": "\x00"})

    assert response.status_code == 400
    assert response.json()["detail"]["error_code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_full_search_extracts_content(client, extractor):
    response = await client.post("/api/v1/search/full", json={"query": "python asyncio", "limit": 2})

    assert response.status_code == 200
    result = response.json()["results"][0]
    assert result["full_content"] == "Full text"
    extractor.extract_content_for_results.assert_awaited_once()


@pytest.mark.asyncio
async def test_full_search_can_skip_content(client, extractor):
    response = await client.post(
        "/api/v1/search/full", json={"query": "python asyncio", "include_content": False}
    )

    assert response.status_code == 200
    extractor.extract_content_for_results.assert_not_awaited()


@pytest.mark.asyncio
async def test_extract_returns_content(client, extractor):
    response = await client.post("/api/v1/extract", json={"url": "https://a.test/1", "max_content_length": 2000})

    assert response.status_code == 200
    body = response.json()
    assert body["word_count"] == 120
    assert body["content_preview"].endswith("...")
    assert extractor.extract_content.await_args.kwargs["max_length"] == 2000


@pytest.mark.asyncio
async def test_extract_failure_maps_to_502(client, extractor):
    url = "https://a.test/blocked"
    extractor.extract_content.side_effect = ExtractionFailedException(
        url, http_error=HttpStatusException(url, 403), browser_error=RuntimeError("crash")
    )

    response = await client.post("/api/v1/extract", json={"url": url})

    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["error_code"] == "EXTRACTION_FAILED"
    assert detail["message"] == "403 Forbidden - Access denied"


@pytest.mark.asyncio
async def test_extract_rejects_non_http_url(client):
    response = await client.post("/api/v1/extract", json={"url": "javascript:alert(1)"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_quota_disabled_without_key(client):
    response = await client.get("/api/v1/quota")

    assert response.status_code == 200
    assert response.json() == {
        "enabled": False,
        "monthly_used": 0,
        "monthly_limit": 0,
        "monthly_remaining": 0,
        "current_month": None,
        "days_until_reset": None,
    }


@pytest.mark.asyncio
async def test_quota_status_with_limiter(app, client, tmp_path):
    limiter = QuotaLimiter(
        requests_per_second=1000,
        max_requests_per_month=2000,
        usage_file=tmp_path / "usage.json",
        clock=lambda: datetime(2026, 6, 20, 12, 0, 0),
    )
    app.dependency_overrides[get_quota_limiter] = lambda: limiter

    response = await client.get("/api/v1/quota")

    body = response.json()
    assert body["enabled"] is True
    assert body["monthly_used"] == 0
    assert body["monthly_remaining"] == 2000
    assert body["current_month"] == "2026-06"
    assert body["days_until_reset"] == 11
