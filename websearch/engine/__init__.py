"""검색 엔진 모듈 (다중 엔진 오케스트레이션 + 레이트/쿼터 제한)"""

from .backends import (
    BraveApiBackend,
    BrowserBingBackend,
    BrowserBraveBackend,
    BrowserDuckDuckGoBackend,
    BrowserSearchBackend,
    HttpDuckDuckGoBackend,
    SearchBackend,
    default_backends,
)
from .orchestrator import EngineAttempt, SearchOrchestrator, SearchOutcome
from .quality import assess_result_quality
from .quota_limiter import QuotaLimiter, get_brave_quota_limiter
from .rate_limiter import RateLimiter

__all__ = [
    "BraveApiBackend",
    "BrowserBingBackend",
    "BrowserBraveBackend",
    "BrowserDuckDuckGoBackend",
    "BrowserSearchBackend",
    "HttpDuckDuckGoBackend",
    "SearchBackend",
    "default_backends",
    "EngineAttempt",
    "SearchOrchestrator",
    "SearchOutcome",
    "assess_result_quality",
    "QuotaLimiter",
    "get_brave_quota_limiter",
    "RateLimiter",
]
