"""검색 결과 관련성 점수"""

from __future__ import annotations

from typing import List, Sequence

from websearch.schemas.search_schema import SearchResult


MIN_QUERY_WORD_LENGTH = 4


def _query_words(query: str) -> List[str]:
    return [w for w in query.lower().split() if len(w) >= MIN_QUERY_WORD_LENGTH]


def assess_result_quality(results: Sequence[SearchResult], query: str) -> float:
    """결과 중 제목/설명에 검색어 단어(4자 이상)를 하나라도 포함한 비율 (0.0~1.0)

    - 결과가 없으면 0.0
    - 짧은 단어만 있는 검색어는 판단 불가 → 1.0
    """
    if not results:
        return 0.0

    words = _query_words(query)
    if not words:
        return 1.0

    relevant = 0
    for result in results:
        haystack = f"{result.title} {result.description}".lower()
        if any(w in haystack for w in words):
            relevant += 1

    return relevant / len(results)
