"""API 엔드포인트 패키지 - export only."""

from .routes import (
    health_router,
    search_router,
    get_extractor,
    get_orchestrator,
    get_quota_limiter,
)

__all__ = ["health_router", "search_router", "get_extractor", "get_orchestrator", "get_quota_limiter"]
