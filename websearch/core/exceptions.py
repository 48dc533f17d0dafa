"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from typing import Any, Optional


# 기본 예외 클래스
class WebSearchException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 크롤러 관련 예외
class CrawlerException(WebSearchException):
    """크롤러(HTTP/브라우저) 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "CRAWLER_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CRAWLER_ERROR", details)


class BrowserException(CrawlerException):
    """브라우저 실행 오류"""
    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message, "BROWSER_ERROR", details)


class NetworkTimeoutException(CrawlerException):
    """네트워크 타임아웃 예외"""
    def __init__(self, operation: str, timeout_ms: int, details: Optional[dict[str, Any]] = None):
        message = f"Network timeout during '{operation}' after {timeout_ms}ms"
        super().__init__(message, "NETWORK_TIMEOUT",
                        details or {"operation": operation, "timeout_ms": timeout_ms})
        self.operation = operation
        self.timeout_ms = timeout_ms


class HttpStatusException(CrawlerException):
    """허용되지 않는 HTTP 상태 코드 (>= 400)

    응답 본문을 보관해 에스컬레이션 규칙이 챌린지 문구를 검사할 수 있도록 합니다.
    """
    def __init__(self, url: str, status: int, body: str = "", details: Optional[dict[str, Any]] = None):
        reason = "Forbidden" if status == 403 else "Request failed"
        message = f"{reason} with status code {status}"
        super().__init__(message, "HTTP_STATUS_ERROR", details or {"url": url, "status": status})
        self.url = url
        self.status = status
        self.body = body or ""


class NetworkException(CrawlerException):
    """연결 실패, DNS, TLS 등 상태 코드 없는 네트워크 오류"""
    def __init__(self, url: str, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__(reason, "NETWORK_ERROR", details or {"url": url, "reason": reason})
        self.url = url


class BlockedException(CrawlerException):
    """봇 감지/차단 예외"""
    def __init__(self, source: str, details: Optional[dict[str, Any]] = None):
        message = f"Request blocked by {source} (possible bot detection)"
        super().__init__(message, "BLOCKED", details or {"source": source})


class LowQualityContentException(CrawlerException):
    """추출 결과가 너무 짧거나 챌린지 페이지로 보이는 경우"""
    def __init__(self, url: str, content_length: int, details: Optional[dict[str, Any]] = None):
        message = "Low quality content detected - likely bot detection"
        super().__init__(message, "LOW_QUALITY_CONTENT",
                        details or {"url": url, "content_length": content_length})


class ContentTooLongException(CrawlerException):
    """응답 본문이 허용 크기를 초과"""
    def __init__(self, url: str, limit: int, details: Optional[dict[str, Any]] = None):
        message = f"Content exceeds maxContentLength ({limit})"
        super().__init__(message, "CONTENT_TOO_LONG", details or {"url": url, "limit": limit})


class ExtractionFailedException(CrawlerException):
    """HTTP 경로와 브라우저 경로가 모두 실패"""
    def __init__(
        self,
        url: str,
        details: Optional[dict[str, Any]] = None,
        *,
        http_error: Optional[BaseException] = None,
        browser_error: Optional[BaseException] = None,
    ):
        message = f"Both HTTP and browser extraction failed for {url}"
        super().__init__(message, "EXTRACTION_FAILED", details or {"url": url})
        self.url = url
        self.http_error = http_error
        self.browser_error = browser_error


class EngineException(CrawlerException):
    """개별 검색 엔진(백엔드) 실패"""
    def __init__(self, engine: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"{engine} search failed: {reason}"
        super().__init__(message, "ENGINE_ERROR", details or {"engine": engine, "reason": reason})
        self.engine = engine


# 쿼터 관련 예외
class QuotaExceededException(WebSearchException):
    """월간 호출 쿼터 소진 (호출 자체를 시도하지 않음)"""
    def __init__(self, service: str, limit: int, days_until_reset: int, details: Optional[dict[str, Any]] = None):
        message = (
            f"{service} monthly limit reached ({limit} requests). "
            f"Resets in ~{days_until_reset} days on the 1st of next month."
        )
        super().__init__(message, "QUOTA_EXCEEDED",
                        details or {"service": service, "limit": limit, "days_until_reset": days_until_reset})
        self.days_until_reset = days_until_reset


# 유효성 검증 관련 예외
class ValidationException(WebSearchException):
    """유효성 검증 예외"""
    def __init__(self, field: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Validation failed for '{field}': {reason}"
        super().__init__(message, "VALIDATION_ERROR",
                        details or {"field": field, "reason": reason})


class InvalidQueryException(ValidationException):
    """유효하지 않은 검색어"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("query", reason, details)


class InvalidURLException(ValidationException):
    """유효하지 않은 URL"""
    def __init__(self, url: str, reason: str, details: Optional[dict[str, Any]] = None):
        super().__init__("url", f"{reason} (url: {url})", details)
