"""Playwright page 설정/보조 함수.

Page 생성 후 라우팅(리소스 차단)과 사람 같은 상호작용 시뮬레이션을 분리합니다.
"""

from __future__ import annotations

import random

from playwright.async_api import Page

from websearch.core.logging import logger


# 일부 안티봇은 이미지 로딩 여부를 검사하므로 이미지는 차단하지 않습니다.
BLOCKED_RESOURCE_TYPES = frozenset({"font", "media"})


async def configure_page(page: Page) -> Page:
    async def _route_handler(route, request):
        try:
            if request.resource_type in BLOCKED_RESOURCE_TYPES:
                await route.abort()
                return
            await route.continue_()
        except Exception:
            # 페이지가 이미 닫힌 경우 등
            return

    try:
        await page.route("**/*", _route_handler)
    except Exception as e:
        logger.debug(f"[Pages] Failed to install route handler: {type(e).__name__}: {e}")

    return page


async def simulate_human_behavior(page: Page) -> None:
    """짧은 사람 같은 상호작용 (무작위 마우스 이동, 스크롤, 0.5~1.5초 대기)

    행동 기반 지문 검사를 줄이기 위한 것으로, 실패해도 추출은 계속합니다.
    """
    try:
        await page.mouse.move(random.random() * 800, random.random() * 600)
        scroll_y = random.random() * 500
        await page.evaluate("(y) => window.scrollTo(0, y)", scroll_y)
        await page.wait_for_timeout(500 + random.random() * 1000)
    except Exception as e:
        logger.info(f"[Pages] Behavior simulation failed, continuing: {type(e).__name__}")
