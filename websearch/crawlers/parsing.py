"""HTML 파싱/정제 유틸 (selectolax).

네트워크(fetch)와 분리된 순수 파싱 로직만 담습니다.
- 본문 추출: 비본문 마크업 제거 → 우선순위 컨테이너에서 텍스트 추출 → 정리
- 검색 결과 파싱: 엔진별(Bing, DuckDuckGo, Brave) 결과 목록 파싱
"""

from __future__ import annotations

import re
from typing import Callable, List, Optional
from urllib.parse import parse_qs, unquote, urljoin, urlparse

from selectolax.parser import HTMLParser, Node

from websearch.schemas.search_schema import SearchResult
from websearch.utils.text_utils import generate_timestamp


_NON_CONTENT_TAGS = "script, style, noscript, iframe, img, video, audio, canvas, svg, object, embed, applet"
_NON_CONTENT_REGIONS = (
    "nav, header, footer, .nav, .header, .footer, .sidebar, "
    ".cookie-notice, .privacy-notice, .search-box"
)
_AD_MARKERS = '[class*="ad-"], [class*="ads-"], [class*="advertisement"]'

CONTENT_SELECTORS = (
    "article",
    "main",
    '[role="main"]',
    ".content",
    ".post-content",
    "#main-content",
    "#content",
    "body",
)
MIN_CONTAINER_TEXT = 50

_LOW_QUALITY_MARKERS = (
    "Please enable JavaScript",
    "Access Denied",
    "403 Forbidden",
    "captcha",
    "unusual traffic",
    "robot",
)
MIN_CONTENT_LENGTH = 100

# 검색 결과 페이지용: 문맥적으로 명확한 차단/챌린지 문구만 보관합니다.
_BLOCK_KEYWORDS = (
    "captcha",
    "unusual traffic",
    "verify you are human",
    "are you a robot",
    "just a moment",
)

_DATA_IMAGE = re.compile(r"data:image/[^;]+;base64,[A-Za-z0-9+/=]+")
_IMAGE_BOILERPLATE = re.compile(
    r"\b(click to enlarge|click for full size|view larger|download image)\b", re.IGNORECASE
)
_LEGAL_BOILERPLATE = re.compile(
    r"\b(cookie|privacy|terms|conditions|disclaimer|legal|copyright|all rights reserved)\b",
    re.IGNORECASE,
)


def _decompose_all(tree: HTMLParser, selector: str) -> None:
    nodes = tree.css(selector)
    matched = {n.mem_id for n in nodes}
    for node in nodes:
        # 이미 제거될 조상 아래의 노드는 건너뜀 (해제된 노드 재접근 방지)
        parent = node.parent
        while parent is not None and parent.mem_id not in matched:
            parent = parent.parent
        if parent is None:
            node.decompose()


def _remove_empty_leaves(tree: HTMLParser) -> None:
    root = tree.body or tree.root
    if root is None:
        return
    for node in list(root.traverse(include_text=False)):
        if node is root or node.tag in ("html", "head", "body", "-text"):
            continue
        has_element_child = next(node.iter(include_text=False), None) is not None
        if not has_element_child and not (node.text(deep=True) or "").strip():
            node.decompose()


def reduce_html(html: str) -> HTMLParser:
    """비본문 요소(스크립트, 미디어, 내비/헤더/푸터, 광고, 빈 요소) 제거"""
    tree = HTMLParser(html or "")
    _decompose_all(tree, _NON_CONTENT_TAGS)
    _decompose_all(tree, _NON_CONTENT_REGIONS)
    _decompose_all(tree, _AD_MARKERS)
    _remove_empty_leaves(tree)
    return tree


def clean_text_content(text: str) -> str:
    text = re.sub(r"\s+", " ", text or "")
    text = _DATA_IMAGE.sub("", text)
    text = _IMAGE_BOILERPLATE.sub("", text)
    text = _LEGAL_BOILERPLATE.sub("", text)
    text = re.sub(r"\n\s*\n", "\n", text)
    return re.sub(r" {2,}", " ", text).strip()


def extract_main_text(html: str) -> str:
    """본문 텍스트 추출

    CONTENT_SELECTORS 순서로 첫 번째 컨테이너를 찾고, 텍스트가 MIN_CONTAINER_TEXT를
    넘으면 채택합니다. 모두 짧으면 마지막으로 찾은 텍스트를 사용합니다.
    """
    tree = reduce_html(html)
    main_content = ""
    for selector in CONTENT_SELECTORS:
        node = tree.css_first(selector)
        if node is None:
            continue
        main_content = (node.text(deep=True, separator=" ") or "").strip()
        if len(main_content) > MIN_CONTAINER_TEXT:
            break

    if not main_content and tree.root is not None:
        main_content = (tree.root.text(deep=True, separator=" ") or "").strip()

    return clean_text_content(main_content)


def is_low_quality_content(content: str) -> bool:
    if not content or not content.strip():
        return True
    if len(content) < MIN_CONTENT_LENGTH:
        return True
    return any(marker in content for marker in _LOW_QUALITY_MARKERS)


def get_blocked_keyword(html: str) -> Optional[str]:
    if not html:
        return None
    lowered = html.lower()
    for k in _BLOCK_KEYWORDS:
        if k in lowered:
            return k
    return None


# --- 검색 결과 파싱 ---

def _node_text(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return (node.text(deep=True, separator=" ") or "").strip()


def _node_href(node: Optional[Node]) -> str:
    if node is None:
        return ""
    return (node.attributes.get("href") or "").strip()


def _make_result(title: str, url: str, description: str, timestamp: str) -> SearchResult:
    return SearchResult(
        title=re.sub(r"\s+", " ", title),
        url=url,
        description=re.sub(r"\s+", " ", description or ""),
        timestamp=timestamp,
        fetch_status="success",
    )


def _collect(
    tree: HTMLParser,
    selector: str,
    max_results: int,
    extract: Callable[[Node], tuple[str, str, str]],
    timestamp: str,
) -> List[SearchResult]:
    results: List[SearchResult] = []
    for element in tree.css(selector):
        if len(results) >= max_results:
            break
        title, url, description = extract(element)
        if title and url:
            results.append(_make_result(title, url, description, timestamp))
    return results


def unwrap_duckduckgo_url(url: str) -> str:
    """DuckDuckGo 리다이렉트(/l/?uddg=...) 링크를 실제 URL로 변환"""
    try:
        absolute = urljoin("https://duckduckgo.com", url)
        qs = parse_qs(urlparse(absolute).query)
        if "uddg" in qs and qs["uddg"]:
            return unquote(qs["uddg"][0])
        return absolute if url.startswith("//") else url
    except ValueError:
        return url


def _legacy_duckduckgo(element: Node) -> tuple[str, str, str]:
    title = _node_text(element.css_first(".result__title"))
    url = _node_href(element.css_first(".result__url")) or _node_href(element.css_first(".result__a"))
    description = _node_text(element.css_first(".result__snippet"))
    return title, unwrap_duckduckgo_url(url) if url else "", description


def parse_duckduckgo_html_results(html: str, max_results: int) -> List[SearchResult]:
    """html.duckduckgo.com (JS 없는 버전) 결과 파싱"""
    tree = HTMLParser(html or "")
    return _collect(tree, ".result", max_results, _legacy_duckduckgo, generate_timestamp())


def parse_duckduckgo_browser_results(html: str, max_results: int) -> List[SearchResult]:
    """브라우저 렌더링된 DuckDuckGo(React) 결과 파싱, 실패 시 레거시 마크업으로 폴백"""
    tree = HTMLParser(html or "")
    timestamp = generate_timestamp()

    def _react(element: Node) -> tuple[str, str, str]:
        link = element.css_first("h2 a")
        return _node_text(link), _node_href(link), _node_text(element.css_first('[data-result="snippet"]'))

    results = _collect(tree, "article", max_results, _react, timestamp)
    if not results:
        results = _collect(tree, ".result", max_results, _legacy_duckduckgo, timestamp)
    return results


def parse_bing_results(html: str, max_results: int) -> List[SearchResult]:
    tree = HTMLParser(html or "")

    def _bing(element: Node) -> tuple[str, str, str]:
        return (
            _node_text(element.css_first("h2")),
            _node_href(element.css_first("h2 a")),
            _node_text(element.css_first(".b_caption p")),
        )

    return _collect(tree, ".b_algo", max_results, _bing, generate_timestamp())


def parse_brave_results(html: str, max_results: int) -> List[SearchResult]:
    """Brave 검색 결과 파싱, 구조가 바뀐 경우 .snippet 링크로 폴백"""
    tree = HTMLParser(html or "")
    timestamp = generate_timestamp()

    def _brave(element: Node) -> tuple[str, str, str]:
        return (
            _node_text(element.css_first(".title")),
            _node_href(element.css_first("a")),
            _node_text(element.css_first(".snippet-content")),
        )

    def _fallback(element: Node) -> tuple[str, str, str]:
        link = element.css_first("a")
        return _node_text(link), _node_href(link), ""

    results = _collect(tree, '#results .snippet[data-type="web"]', max_results, _brave, timestamp)
    if not results:
        results = _collect(tree, ".snippet", max_results, _fallback, timestamp)
    return results
