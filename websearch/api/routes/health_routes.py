"""헬스 체크 엔드포인트"""
from fastapi import APIRouter
from datetime import datetime

from websearch.schemas.search_schema import HealthResponse
from websearch.crawlers import get_browser_pool
from websearch.maintenance import get_process_reaper
from websearch.core.logging import logger
from websearch import __version__

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    헬스 체크 엔드포인트

    - 서버 상태
    - 공유 브라우저 풀 상태
    - 좀비 프로세스 정리기 상태
    """
    browser_stats: dict = {}
    gc_stats: dict = {}

    try:
        browser_stats = get_browser_pool().stats()
    except Exception as e:
        logger.error(f"Browser pool stats failed: {type(e).__name__}: {e}")

    try:
        gc_stats = await get_process_reaper().get_stats()
    except Exception as e:
        logger.error(f"Process reaper stats failed: {type(e).__name__}: {e}")

    status = "ok" if browser_stats and gc_stats else "degraded"

    return HealthResponse(
        status=status,
        timestamp=datetime.now(),
        version=__version__,
        browser_pool=browser_stats,
        gc=gc_stats,
    )


@router.get("/")
async def root():
    """루트 엔드포인트"""
    return {
        "service": "웹 검색 및 본문 추출 서비스",
        "version": __version__,
        "docs": "/docs"
    }
