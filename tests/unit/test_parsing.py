"""HTML 파싱/정제 테스트 (selectolax)."""

from __future__ import annotations

from websearch.crawlers.parsing import (
    extract_main_text,
    get_blocked_keyword,
    is_low_quality_content,
    parse_bing_results,
    parse_brave_results,
    parse_duckduckgo_browser_results,
    parse_duckduckgo_html_results,
    unwrap_duckduckgo_url,
)


BING_HTML = """
<html><body><ol id="b_results">
  <li class="b_algo">
    <h2><a href="https://docs.python.org/3/library/asyncio.html">asyncio: Asynchronous I/O</a></h2>
    <div class="b_caption"><p>asyncio is a library to write concurrent code.</p></div>
  </li>
  <li class="b_algo">
    <h2><a href="https://realpython.com/async-io-python/">Async IO in Python</a></h2>
    <div class="b_caption"><p>A complete walkthrough.</p></div>
  </li>
  <li class="b_algo"><h2>Entry without a link</h2></li>
</ol></body></html>
"""

DDG_HTML = """
<html><body><div id="links">
  <div class="result">
    <h2 class="result__title"><a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fpage&amp;rut=abc">Example Page</a></h2>
    <a class="result__url" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fpage&amp;rut=abc">example.com/page</a>
    <a class="result__snippet">Snippet   text
      spanning lines</a>
  </div>
  <div class="result">
    <h2 class="result__title"><a class="result__a" href="https://example.org/direct">Direct Link</a></h2>
    <a class="result__url" href="https://example.org/direct">example.org/direct</a>
    <a class="result__snippet">Second snippet</a>
  </div>
</div></body></html>
"""

DDG_BROWSER_HTML = """
<html><body><section class="react-results--main">
  <article><h2><a href="https://a.test/1">First result</a></h2><div data-result="snippet">Snippet one</div></article>
  <article><h2><a href="https://a.test/2">Second result</a></h2><div data-result="snippet">Snippet two</div></article>
</section></body></html>
"""

BRAVE_HTML = """
<html><body><div id="results">
  <div class="snippet" data-type="web">
    <a href="https://b.test/1"><div class="title">Brave One</div></a>
    <div class="snippet-content">First description</div>
  </div>
  <div class="snippet" data-type="web">
    <a href="https://b.test/2"><div class="title">Brave Two</div></a>
    <div class="snippet-content">Second description</div>
  </div>
</div></body></html>
"""


def test_parse_bing_results():
    results = parse_bing_results(BING_HTML, 5)

    assert [r.url for r in results] == [
        "https://docs.python.org/3/library/asyncio.html",
        "https://realpython.com/async-io-python/",
    ]
    assert results[0].title == "asyncio: Asynchronous I/O"
    assert results[0].description == "asyncio is a library to write concurrent code."
    assert all(r.fetch_status == "success" for r in results)


def test_parse_bing_respects_max_results():
    assert len(parse_bing_results(BING_HTML, 1)) == 1


def test_parse_duckduckgo_html_unwraps_redirects():
    results = parse_duckduckgo_html_results(DDG_HTML, 10)

    assert [r.url for r in results] == ["https://example.com/page", "https://example.org/direct"]
    assert results[0].title == "Example Page"
    assert results[0].description == "Snippet text spanning lines"


def test_unwrap_duckduckgo_url():
    wrapped = "//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.com%2Fa%3Fb%3D1&rut=x"
    assert unwrap_duckduckgo_url(wrapped) == "https://example.com/a?b=1"
    assert unwrap_duckduckgo_url("https://example.com/plain") == "https://example.com/plain"


def test_parse_duckduckgo_browser_results():
    results = parse_duckduckgo_browser_results(DDG_BROWSER_HTML, 10)

    assert [r.title for r in results] == ["First result", "Second result"]
    assert results[1].description == "Snippet two"


def test_parse_duckduckgo_browser_falls_back_to_legacy_markup():
    results = parse_duckduckgo_browser_results(DDG_HTML, 10)
    assert results[0].url == "https://example.com/page"


def test_parse_brave_results():
    results = parse_brave_results(BRAVE_HTML, 10)

    assert [r.title for r in results] == ["Brave One", "Brave Two"]
    assert results[0].url == "https://b.test/1"
    assert results[0].description == "First description"


def test_parse_brave_fallback_uses_any_snippet_link():
    html = '<html><body><div class="snippet"><a href="https://b.test/x">Fallback title</a></div></body></html>'

    results = parse_brave_results(html, 10)

    assert len(results) == 1
    assert results[0].title == "Fallback title"
    assert results[0].description == ""


def test_parsers_tolerate_empty_html():
    assert parse_bing_results("", 5) == []
    assert parse_duckduckgo_html_results("", 5) == []
    assert parse_brave_results("", 5) == []


def test_extract_main_text_drops_non_content_markup():
    body = "Main article paragraph describing concurrency in detail. " * 3
    html = (
        "<html><body><nav>Menu links</nav>"
        f"<article><p>{body}</p><script>var tracking = 1;</script></article>"
        "<footer>Site footer</footer></body></html>"
    )

    text = extract_main_text(html)

    assert text.startswith("Main article paragraph")
    assert "Menu links" not in text
    assert "tracking" not in text
    assert "Site footer" not in text


def test_extract_main_text_prefers_article_over_body():
    article = "Focused article text that is long enough to be selected as content. " * 2
    html = f"<html><body><div>Sidebar teaser</div><article>{article}</article></body></html>"

    text = extract_main_text(html)

    assert "Sidebar teaser" not in text
    assert text.startswith("Focused article text")


def test_is_low_quality_content():
    assert is_low_quality_content("") is True
    assert is_low_quality_content("   ") is True
    assert is_low_quality_content("x" * 50) is True
    assert is_low_quality_content("Please complete the captcha to continue. " * 5) is True
    assert is_low_quality_content("A perfectly normal paragraph of prose. " * 5) is False


def test_get_blocked_keyword():
    assert get_blocked_keyword("<p>Please solve the CAPTCHA below</p>") == "captcha"
    assert get_blocked_keyword("<p>Our systems have detected unusual traffic</p>") == "unusual traffic"
    assert get_blocked_keyword("<p>Ordinary results page</p>") is None
    assert get_blocked_keyword("") is None
