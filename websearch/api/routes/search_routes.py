"""Search Routes - 검색/본문 추출 API

HTTP Layer는 요청 검증과 응답 변환만 하고 실제 작업은 Engine/Crawler Layer에 위임합니다.
"""

import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from websearch.core.config import settings
from websearch.core.exceptions import CrawlerException, InvalidQueryException, InvalidURLException
from websearch.core.logging import logger, sanitize_for_log
from websearch.crawlers import ContentExtractor, classify_extraction_error
from websearch.engine import QuotaLimiter, SearchOrchestrator, get_brave_quota_limiter
from websearch.schemas.search_schema import (
    ExtractRequest,
    ExtractResponse,
    FullSearchRequest,
    QuotaStatusResponse,
    SearchRequest,
    SearchResponse,
)
from websearch.utils.text_utils import generate_timestamp, get_content_preview, get_word_count

router = APIRouter(prefix="/api/v1", tags=["search"])

# 싱글톤 서비스
_orchestrator: Optional[SearchOrchestrator] = None
_extractor: Optional[ContentExtractor] = None


def get_orchestrator() -> SearchOrchestrator:
    """SearchOrchestrator 싱글톤"""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = SearchOrchestrator()
    return _orchestrator


def get_extractor() -> ContentExtractor:
    """ContentExtractor 싱글톤"""
    global _extractor
    if _extractor is None:
        _extractor = ContentExtractor()
    return _extractor


def get_quota_limiter() -> Optional[QuotaLimiter]:
    """Brave API 키가 설정된 경우에만 쿼터 리미터 반환"""
    if not settings.brave_api_key:
        return None
    return get_brave_quota_limiter()


async def _run_search(orchestrator: SearchOrchestrator, query: str, limit: int):
    try:
        return await orchestrator.search(query, num_results=limit, timeout_ms=settings.search_default_timeout_ms)
    except InvalidQueryException as e:
        logger.warning(f"[API] Invalid query: {e.message}")
        raise HTTPException(status_code=400, detail={"error_code": e.error_code, "message": e.message})


@router.post("/search", response_model=SearchResponse)
async def search(
    request: SearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
):
    """웹 검색 (제목/URL/설명 요약만 반환)"""
    started = time.monotonic()
    logger.info(f"[API] Search request: '{sanitize_for_log(request.query)}' (limit: {request.limit})")

    results, engine = await _run_search(orchestrator, request.query, request.limit)

    return SearchResponse(
        query=request.query,
        engine=engine,
        total_results=len(results),
        results=results,
        elapsed_ms=(time.monotonic() - started) * 1000,
    )


@router.post("/search/full", response_model=SearchResponse)
async def full_search(
    request: FullSearchRequest,
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
    extractor: ContentExtractor = Depends(get_extractor),
):
    """웹 검색 + 결과 페이지 본문 동시 추출"""
    started = time.monotonic()
    logger.info(f"[API] Full search request: '{sanitize_for_log(request.query)}' (limit: {request.limit})")

    results, engine = await _run_search(orchestrator, request.query, request.limit)

    if request.include_content and results:
        results = await extractor.extract_content_for_results(results, request.limit)

    return SearchResponse(
        query=request.query,
        engine=engine,
        total_results=len(results),
        results=results,
        elapsed_ms=(time.monotonic() - started) * 1000,
    )


@router.post("/extract", response_model=ExtractResponse)
async def extract(
    request: ExtractRequest,
    extractor: ContentExtractor = Depends(get_extractor),
):
    """단일 페이지 본문 추출"""
    logger.info(f"[API] Extract request: {sanitize_for_log(request.url, 200)}")

    try:
        content = await extractor.extract_content(request.url, max_length=request.max_content_length)
    except InvalidURLException as e:
        raise HTTPException(status_code=400, detail={"error_code": e.error_code, "message": e.message})
    except CrawlerException as e:
        message = classify_extraction_error(e)
        logger.warning(f"[API] Extraction failed: {sanitize_for_log(request.url, 200)} - {message}")
        raise HTTPException(status_code=502, detail={"error_code": e.error_code, "message": message})

    return ExtractResponse(
        url=request.url,
        content=content,
        content_preview=get_content_preview(content),
        word_count=get_word_count(content),
        timestamp=generate_timestamp(),
    )


@router.get("/quota", response_model=QuotaStatusResponse)
async def quota_status(quota_limiter: Optional[QuotaLimiter] = Depends(get_quota_limiter)):
    """Brave API 월간 쿼터 상태"""
    if quota_limiter is None:
        return QuotaStatusResponse(enabled=False)

    status = await quota_limiter.get_status()
    return QuotaStatusResponse(enabled=True, **status)
