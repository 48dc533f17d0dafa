"""에스컬레이션 규칙 테이블 테스트."""

from __future__ import annotations

import pytest

from websearch.core.exceptions import (
    HttpStatusException,
    LowQualityContentException,
    NetworkException,
    NetworkTimeoutException,
)
from websearch.crawlers.escalation import (
    ESCALATION_RULES,
    EscalationRule,
    match_escalation_rule,
    should_use_browser,
)


URL = "https://example.com/article"


@pytest.mark.parametrize(
    "error, rule",
    [
        (HttpStatusException(URL, 403), "status_403"),
        (HttpStatusException(URL, 429), "status_429"),
        (HttpStatusException(URL, 503), "status_503"),
        (NetworkTimeoutException("http_get", 5000), "timeout"),
        (Exception("Access denied by upstream firewall"), "access_denied"),
        (LowQualityContentException(URL, 50), "low_quality_content"),
        (HttpStatusException(URL, 500, "Please enable JavaScript to continue"), "body_enable_javascript"),
        (HttpStatusException(URL, 500, "solve this captcha"), "body_captcha"),
        (HttpStatusException(URL, 500, "unusual traffic from your network"), "body_unusual_traffic"),
        (HttpStatusException(URL, 500, "are you a robot?"), "body_robot"),
    ],
)
def test_rules_match_bot_signals(error, rule):
    assert match_escalation_rule(error, URL) == rule


def test_status_rule_wins_over_body_rule():
    error = HttpStatusException(URL, 403, "captcha challenge")
    assert match_escalation_rule(error, URL) == "status_403"


def test_js_heavy_site_escalates_any_error():
    error = NetworkException("https://m.facebook.com/story", "connection reset")
    assert match_escalation_rule(error, "https://m.facebook.com/story") == "js_heavy_site"


def test_plain_failure_does_not_escalate():
    error = HttpStatusException(URL, 404)
    assert match_escalation_rule(error, URL) is None
    assert should_use_browser(error, URL) is False


def test_rule_table_order_is_stable():
    names = [r.name for r in ESCALATION_RULES]
    assert names[:3] == ["status_403", "status_429", "status_503"]
    assert names[-1] == "js_heavy_site"


def test_faulty_predicate_is_treated_as_no_match():
    def broken(error, url):
        raise KeyError("boom")

    rules = (EscalationRule("broken", broken), EscalationRule("always", lambda e, u: True))

    assert match_escalation_rule(ValueError("x"), URL, rules) == "always"
