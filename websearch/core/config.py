"""설정 관리 - 환경 변수 로드 및 검증"""
from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # 검색 오케스트레이터
    search_rate_limit_per_minute: int = 10
    search_default_timeout_ms: int = 10000
    search_default_num_results: int = 5

    # 품질 검사(관련도) 설정
    # - enable_relevance_checking=False 이면 모든 결과 세트를 1.0으로 취급
    # - force_multi_engine_search=True 이면 조기 반환 없이 모든 엔진을 시도
    enable_relevance_checking: bool = True
    relevance_threshold: float = 0.3
    force_multi_engine_search: bool = False
    debug_browser_lifecycle: bool = False

    # 브라우저 풀
    # NOTE: 서버에서는 headful + Xvfb 조합을 기본으로 가정합니다.
    browser_channel: Optional[str] = "chrome"
    browser_headless: bool = False
    browser_max_contexts: int = 50
    browser_launch_timeout_s: float = 30.0

    # 본문 추출
    default_timeout: int = 30000  # ms
    max_content_length: int = 500000
    bulk_extraction_timeout_ms: int = 45000
    bulk_extraction_race_timeout_ms: int = 50000
    http_impersonate: str = "chrome120"
    http_max_clients: int = 20
    http_max_response_bytes: int = 10_000_000

    # Brave Search API (월간 쿼터 제한)
    brave_api_key: str = ""
    brave_requests_per_second: float = 1.0
    brave_max_requests_per_month: int = 2000
    brave_usage_file: str = ".brave-api-usage.json"

    # 좀비 브라우저 프로세스 정리(GC)
    gc_enabled: bool = True
    gc_interval_s: float = 300.0
    gc_max_process_age_s: float = 1800.0
    gc_verbose: bool = False

    # API
    api_title: str = "Resilient Web Search"
    api_version: str = "1.0.0"
    api_description: str = "다중 엔진 폴백 검색과 2단계(HTTP → 브라우저) 본문 추출 서비스"

    # 로깅
    log_level: str = "INFO"

    @field_validator("relevance_threshold")
    @classmethod
    def validate_relevance_threshold(cls, v: float) -> float:
        if not 0.0 <= v <= 1.0:
            raise ValueError("relevance_threshold must be within [0, 1]")
        return v

    @field_validator("search_rate_limit_per_minute", "browser_max_contexts", "brave_max_requests_per_month")
    @classmethod
    def validate_positive_counts(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("limits must be positive")
        return v

    @field_validator("default_timeout", "search_default_timeout_ms", "bulk_extraction_timeout_ms", "bulk_extraction_race_timeout_ms")
    @classmethod
    def validate_timeouts(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @field_validator("max_content_length", mode="before")
    @classmethod
    def validate_max_content_length(cls, v):
        # 잘못된 값은 기동 실패 대신 기본값으로 대체 (추출기에서 경고 로그)
        try:
            parsed = int(v)
        except (TypeError, ValueError):
            return 500000
        return parsed if parsed >= 0 else 500000

    @field_validator("brave_requests_per_second", "gc_interval_s", "gc_max_process_age_s")
    @classmethod
    def validate_positive_floats(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("rates and intervals must be positive")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
