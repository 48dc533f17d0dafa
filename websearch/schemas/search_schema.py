"""Pydantic 스키마 정의 (검색 결과 + API 요청/응답)"""
from typing import Optional, List, Literal
from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime


FetchStatus = Literal["success", "error"]


class SearchResult(BaseModel):
    """검색/추출 결과 한 건

    fetch_status == "error" 이면 full_content는 항상 빈 문자열입니다.
    """
    title: str = Field("", description="결과 제목")
    url: str = Field(..., min_length=1, description="결과 URL")
    description: str = Field("", description="검색 엔진 스니펫")
    full_content: str = Field("", description="추출된 본문")
    content_preview: str = Field("", description="본문 미리보기")
    word_count: int = Field(0, ge=0, description="full_content 단어 수")
    timestamp: str = Field(..., description="생성 시각 (ISO-8601)")
    fetch_status: FetchStatus = Field("success", description="추출 상태")
    error: Optional[str] = Field(None, description="분류된 실패 메시지")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("url must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def validate_error_has_no_content(self) -> "SearchResult":
        if self.fetch_status == "error" and self.full_content:
            raise ValueError("error results must not carry full_content")
        return self


class SearchRequest(BaseModel):
    """검색 요청"""
    query: str = Field(..., min_length=1, max_length=500, description="검색어")
    limit: int = Field(5, ge=1, le=10, description="결과 개수 (1~10)")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("query must not be blank")
        return v.strip()


class FullSearchRequest(SearchRequest):
    """검색 + 본문 추출 요청"""
    include_content: bool = Field(True, description="결과 페이지 본문까지 추출할지 여부")


class ExtractRequest(BaseModel):
    """단일 페이지 본문 추출 요청"""
    url: str = Field(..., max_length=2048, description="추출할 URL")
    max_content_length: Optional[int] = Field(None, ge=1, description="최대 본문 길이 (문자)")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("url must start with http:// or https://")
        return v


class SearchResponse(BaseModel):
    """검색 응답"""
    query: str
    engine: str = Field(..., description="결과를 낸 엔진 이름 (실패 시 'None')")
    total_results: int = Field(..., ge=0)
    results: List[SearchResult]
    elapsed_ms: float = Field(..., ge=0)


class ExtractResponse(BaseModel):
    """본문 추출 응답"""
    url: str
    content: str
    content_preview: str
    word_count: int = Field(..., ge=0)
    timestamp: str


class QuotaStatusResponse(BaseModel):
    """월간 쿼터 상태"""
    enabled: bool
    monthly_used: int = 0
    monthly_limit: int = 0
    monthly_remaining: int = 0
    current_month: Optional[str] = None
    days_until_reset: Optional[int] = None


class HealthResponse(BaseModel):
    """헬스 체크 응답"""
    status: str
    timestamp: datetime
    version: str
    browser_pool: dict = Field(default_factory=dict)
    gc: dict = Field(default_factory=dict)
