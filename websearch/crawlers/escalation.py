"""HTTP 경로 실패 → 브라우저 경로 에스컬레이션 규칙.

봇 방어 신호 목록을 인라인 boolean OR 대신 순서 있는 규칙 테이블로 유지합니다.
match_escalation_rule()은 처음 일치한 규칙 이름을 돌려주므로 로그로 정책을 추적할 수 있습니다.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from websearch.core.exceptions import LowQualityContentException, NetworkTimeoutException
from websearch.utils.resource_loader import load_js_heavy_domains
from websearch.utils.text_utils import host_matches


EscalationPredicate = Callable[[BaseException, str], bool]


@dataclass(frozen=True)
class EscalationRule:
    name: str
    predicate: EscalationPredicate

    def matches(self, error: BaseException, url: str) -> bool:
        try:
            return bool(self.predicate(error, url))
        except Exception:
            return False


def _status(error: BaseException) -> Optional[int]:
    return getattr(error, "status", None)


def _message(error: BaseException) -> str:
    return str(getattr(error, "message", None) or error)


def _body(error: BaseException) -> str:
    return getattr(error, "body", "") or ""


def _status_is(code: int) -> EscalationPredicate:
    return lambda e, _url: _status(e) == code


def _message_contains(marker: str) -> EscalationPredicate:
    return lambda e, _url: marker in _message(e)


def _body_contains(marker: str) -> EscalationPredicate:
    return lambda e, _url: marker in _body(e)


def _is_timeout(error: BaseException, _url: str) -> bool:
    if isinstance(error, (NetworkTimeoutException, asyncio.TimeoutError, TimeoutError)):
        return True
    return "timeout" in _message(error)


def _is_low_quality(error: BaseException, _url: str) -> bool:
    return isinstance(error, LowQualityContentException) or "Low quality content detected" in _message(error)


def _is_js_heavy_site(_error: BaseException, url: str) -> bool:
    return host_matches(url, tuple(load_js_heavy_domains()))


ESCALATION_RULES: tuple[EscalationRule, ...] = (
    # 봇 감지를 시사하는 상태 코드
    EscalationRule("status_403", _status_is(403)),
    EscalationRule("status_429", _status_is(429)),
    EscalationRule("status_503", _status_is(503)),
    # JS 요구/차단을 시사하는 오류
    EscalationRule("timeout", _is_timeout),
    EscalationRule("access_denied", _message_contains("Access denied")),
    EscalationRule("forbidden", _message_contains("Forbidden")),
    EscalationRule("low_quality_content", _is_low_quality),
    # 응답 본문의 챌린지 문구
    EscalationRule("body_enable_javascript", _body_contains("enable JavaScript")),
    EscalationRule("body_captcha", _body_contains("captcha")),
    EscalationRule("body_unusual_traffic", _body_contains("unusual traffic")),
    EscalationRule("body_robot", _body_contains("robot")),
    # JS 중심 사이트
    EscalationRule("js_heavy_site", _is_js_heavy_site),
)


def match_escalation_rule(
    error: BaseException,
    url: str,
    rules: tuple[EscalationRule, ...] = ESCALATION_RULES,
) -> Optional[str]:
    for rule in rules:
        if rule.matches(error, url):
            return rule.name
    return None


def should_use_browser(error: BaseException, url: str) -> bool:
    return match_escalation_rule(error, url) is not None
