"""FastAPI 앱 팩토리

기동: 고아 Chrome 정리기(GC) 시작 (GC_ENABLED=true일 때)
종료: GC 중지 → 공유 브라우저 종료 → 공유 HTTP 세션 종료
"""
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, List, Tuple

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from websearch.core.config import settings
from websearch.core.logging import logger
from websearch.api import health_router, search_router
from websearch.crawlers import shutdown_browser_pool, shutdown_shared_http_client
from websearch.maintenance import get_process_reaper, start_process_reaper


async def _stop_reaper() -> None:
    await get_process_reaper().stop()


_SHUTDOWN_STEPS: List[Tuple[str, Callable[[], Awaitable[None]]]] = [
    ("process reaper", _stop_reaper),
    ("browser pool", shutdown_browser_pool),
    ("http client", shutdown_shared_http_client),
]


async def run_shutdown_steps() -> None:
    """종료 단계를 순서대로 실행 (한 단계 실패가 다음 단계를 막지 않음)"""
    for name, step in _SHUTDOWN_STEPS:
        try:
            await step()
        except Exception as e:
            logger.warning(f"[App] Failed to stop {name}: {type(e).__name__}: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"[App] Starting {settings.api_title} v{settings.api_version}")
    if settings.gc_enabled:
        start_process_reaper()
    else:
        logger.info("[App] Process reaper disabled (GC_ENABLED=false)")

    yield

    logger.info("[App] Shutting down...")
    await run_shutdown_steps()
    logger.info("[App] Shutdown complete")


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성

    Returns:
        라우터(health, search)와 CORS가 설정된 앱
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(search_router)

    return app


# uvicorn websearch.app:app
app = create_app()
