"""텍스트/URL 공용 유틸리티

검색 결과 및 추출 본문의 정리, 미리보기, 단어 수 계산을 담당합니다.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from urllib.parse import urlparse

MAX_QUERY_LENGTH = 500
PREVIEW_LENGTH = 500

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_WHITESPACE = re.compile(r"\s+")


def sanitize_query(query: str) -> str:
    """검색어 정리: 제어문자 제거, 공백 정규화, 길이 제한"""
    if not query:
        return ""
    cleaned = _CONTROL_CHARS.sub(" ", query)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:MAX_QUERY_LENGTH]


def clean_text(text: str, max_length: int | None = None) -> str:
    """공백 정규화 후 max_length로 절단"""
    if not text:
        return ""
    cleaned = re.sub(r"[ \t\r\f\v]+", " ", text)
    cleaned = re.sub(r"\n\s*\n+", "\n", cleaned).strip()
    if max_length is not None and max_length >= 0 and len(cleaned) > max_length:
        cleaned = cleaned[:max_length]
    return cleaned


def get_word_count(text: str) -> int:
    if not text or not text.strip():
        return 0
    return len(text.split())


def get_content_preview(text: str, max_length: int = PREVIEW_LENGTH) -> str:
    """본문 미리보기 (단어 경계에서 자르고 말줄임표 추가)"""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    cut = text[:max_length]
    last_space = cut.rfind(" ")
    if last_space > max_length * 0.8:
        cut = cut[:last_space]
    return cut.rstrip() + "..."


def generate_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_pdf_url(url: str) -> bool:
    """PDF 등 기사형이 아닌 문서 URL 여부"""
    if not url:
        return False
    lowered = url.lower()
    path = urlparse(lowered).path
    return path.endswith(".pdf") or "/pdf/" in path or "filetype=pdf" in lowered


def get_hostname(url: str) -> str:
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(url: str, domains: tuple[str, ...] | list[str] | set[str]) -> bool:
    """호스트가 도메인 목록(서브도메인 포함)에 속하는지"""
    host = get_hostname(url)
    if not host:
        return False
    return any(host == d or host.endswith("." + d) for d in domains)
