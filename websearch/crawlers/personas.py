"""브라우저 지문 페르소나 제공자.

정적 페르소나 테이블(resources/personas.yaml)에서 세션마다 하나를 무작위로 고릅니다.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict

from websearch.core.exceptions import WebSearchException
from websearch.utils.resource_loader import load_persona_definitions


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int


@dataclass(frozen=True)
class Persona:
    """한 브라우징 세션을 구성하는 불변 지문 묶음"""

    name: str
    user_agent: str
    viewport: Viewport
    platform: str
    locale: str
    timezone_id: str
    device_scale_factor: float

    @property
    def has_touch(self) -> bool:
        # 고밀도 디스플레이는 터치 지원 기기로 간주
        return self.device_scale_factor > 1

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Persona":
        viewport = data.get("viewport") or {}
        return cls(
            name=str(data["name"]),
            user_agent=str(data["user_agent"]),
            viewport=Viewport(int(viewport.get("width", 1366)), int(viewport.get("height", 768))),
            platform=str(data.get("platform", "Win32")),
            locale=str(data.get("locale", "en-US")),
            timezone_id=str(data.get("timezone_id", "America/New_York")),
            device_scale_factor=float(data.get("device_scale_factor", 1)),
        )

    def http_headers(self) -> Dict[str, str]:
        """HTTP 경로에서 사용할 페르소나 기반 요청 헤더"""
        return {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
            "Accept-Language": f"{self.locale},en;q=0.9",
            "DNT": "1",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "none",
            "Sec-Fetch-User": "?1",
            "Cache-Control": "max-age=0",
        }


@lru_cache(maxsize=1)
def get_personas() -> tuple[Persona, ...]:
    personas = tuple(Persona.from_dict(d) for d in load_persona_definitions())
    if not personas:
        raise WebSearchException("No browser personas configured", "CONFIG_ERROR")
    return personas


def get_random_persona() -> Persona:
    return random.choice(get_personas())
