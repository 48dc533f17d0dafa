"""크롤러 모듈 (HTTP + Playwright 하이브리드).

공개 API는 이 파일에서만 export합니다.
"""

from .browser_pool import BrowserPool, PoolState, get_browser_pool, shutdown_browser_pool
from .extractor import ContentExtractor, classify_extraction_error
from .escalation import ESCALATION_RULES, EscalationRule, match_escalation_rule, should_use_browser
from .http_client import SharedHttpClient, get_shared_http_client, shutdown_shared_http_client
from .personas import Persona, get_random_persona

__all__ = [
    "BrowserPool",
    "PoolState",
    "get_browser_pool",
    "shutdown_browser_pool",
    "ContentExtractor",
    "classify_extraction_error",
    "ESCALATION_RULES",
    "EscalationRule",
    "match_escalation_rule",
    "should_use_browser",
    "SharedHttpClient",
    "get_shared_http_client",
    "shutdown_shared_http_client",
    "Persona",
    "get_random_persona",
]
