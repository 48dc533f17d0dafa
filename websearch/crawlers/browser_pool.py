"""공유 Playwright 브라우저 풀.

브라우저 프로세스는 하나만 띄워 공유하고, 세션마다 페르소나가 적용된 격리 컨텍스트를 발급합니다.
- 컨텍스트가 max_contexts개 발급되면 브라우저를 교체(rotation)합니다.
- 동시 요청이 여러 번 런치를 일으키지 않도록 진행 중인 런치 Future 하나를 공유합니다(single-flight).
"""

from __future__ import annotations

import asyncio
import platform
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Playwright

from websearch.core.config import settings
from websearch.core.logging import logger
from websearch.core.exceptions import BrowserException

from .personas import Persona


BrowserLauncher = Callable[[], Awaitable[Browser]]


class PoolState(str, Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    READY = "ready"
    ROTATING = "rotating"


def build_launch_args() -> list[str]:
    # headful Chrome에서는 자연스러운 지문을 위해 --disable-gpu 등 공격적인 옵션을 쓰지 않습니다.
    args: list[str] = [
        "--no-sandbox",
        "--disable-dev-shm-usage",
    ]

    if platform.system().lower() == "linux":
        args.append("--disable-setuid-sandbox")

    return args


class BrowserPool:
    """공유 브라우저 + 컨텍스트 발급 관리자

    Usage:
        pool = get_browser_pool()
        context = await pool.get_context(get_random_persona())
        try:
            page = await context.new_page()
            ...
        finally:
            await context.close()
    """

    def __init__(
        self,
        max_contexts: Optional[int] = None,
        launcher: Optional[BrowserLauncher] = None,
        *,
        channel: Optional[str] = None,
        headless: Optional[bool] = None,
    ) -> None:
        """
        Args:
            max_contexts: 브라우저 교체 임계값 (기본: settings.browser_max_contexts)
            launcher: 브라우저 생성 코루틴 (테스트에서 주입, 기본은 Playwright Chromium)
            channel: Chromium 채널 (기본 "chrome")
            headless: headless 여부 (기본 False, 서버에서는 Xvfb 사용)
        """
        self.max_contexts = max_contexts or settings.browser_max_contexts
        self.channel = channel if channel is not None else settings.browser_channel
        self.headless = settings.browser_headless if headless is None else headless

        self._launcher: BrowserLauncher = launcher or self._launch_chromium
        self._lock = asyncio.Lock()
        self._launch_future: Optional[asyncio.Future] = None
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context_count = 0
        self.launch_count = 0
        self.state = PoolState.IDLE

        logger.info(
            f"[BrowserPool] Initialized (channel={self.channel}, headless={self.headless}, "
            f"max_contexts={self.max_contexts})"
        )

    @property
    def context_count(self) -> int:
        return self._context_count

    @property
    def browser(self) -> Optional[Browser]:
        return self._browser

    async def get_context(self, persona: Persona) -> BrowserContext:
        """페르소나 지문이 적용된 격리 컨텍스트 발급"""
        browser = await self.get_browser()
        self._context_count += 1

        if settings.debug_browser_lifecycle:
            logger.debug(
                f"[BrowserPool] Context #{self._context_count}/{self.max_contexts} "
                f"(persona={persona.name})"
            )

        return await browser.new_context(
            user_agent=persona.user_agent,
            viewport={"width": persona.viewport.width, "height": persona.viewport.height},
            locale=persona.locale,
            timezone_id=persona.timezone_id,
            device_scale_factor=persona.device_scale_factor,
            has_touch=persona.has_touch,
            is_mobile=False,
            java_script_enabled=True,
        )

    async def get_browser(self) -> Browser:
        """건강한 공유 브라우저 반환 (필요 시 교체/런치)

        Raises:
            BrowserException: 브라우저 런치 실패 (대기 중인 모든 호출자에게 전파)
        """
        async with self._lock:
            browser = self._browser
            if (
                browser is not None
                and self._is_connected(browser)
                and self._context_count < self.max_contexts
            ):
                return browser

            if self._launch_future is None:
                if browser is not None:
                    self.state = PoolState.ROTATING
                    logger.info(
                        f"[BrowserPool] Rotating browser (contexts: {self._context_count}, "
                        f"connected: {self._is_connected(browser)})"
                    )
                    self._browser = None
                    await self._safe_close_browser(browser)

                self.state = PoolState.LAUNCHING
                self._launch_future = asyncio.ensure_future(self._launch())

            future = self._launch_future

        # 한 호출자의 취소가 공유 런치를 취소하지 않도록 shield
        return await asyncio.shield(future)

    async def _launch(self) -> Browser:
        try:
            browser = await self._launcher()
        except Exception as e:
            self.state = PoolState.IDLE
            logger.error(f"[BrowserPool] Failed to launch browser: {type(e).__name__}: {e}")
            if isinstance(e, BrowserException):
                raise
            raise BrowserException(f"Browser launch failed: {e}") from e
        finally:
            self._launch_future = None

        self._browser = browser
        self._context_count = 0
        self.launch_count += 1
        self.state = PoolState.READY
        logger.info(f"[BrowserPool] Browser launched (launch #{self.launch_count})")
        return browser

    async def _launch_chromium(self) -> Browser:
        logger.info(
            f"[BrowserPool] Launching new Chromium instance (channel: {self.channel}, headless: {self.headless})..."
        )
        if self._playwright is None:
            self._playwright = await async_playwright().start()

        launch_kwargs: Dict[str, Any] = {
            "headless": self.headless,
            "args": build_launch_args(),
        }
        if self.channel:
            launch_kwargs["channel"] = self.channel

        try:
            return await asyncio.wait_for(
                self._playwright.chromium.launch(**launch_kwargs),
                timeout=settings.browser_launch_timeout_s,
            )
        except Exception:
            logger.error(
                "[BrowserPool] Ensure 'google-chrome-stable' is installed and Xvfb is running (DISPLAY set) "
                "when headless is disabled."
            )
            raise

    @staticmethod
    def _is_connected(browser: Browser) -> bool:
        try:
            return bool(browser.is_connected())
        except Exception:
            return False

    async def _safe_close_browser(self, browser: Browser) -> None:
        try:
            await browser.close()
        except Exception as e:
            logger.warning(f"[BrowserPool] Error closing browser: {type(e).__name__}: {e}")

    async def close_all(self) -> None:
        """관리 중인 브라우저와 Playwright 드라이버 종료

        독립적으로 살아남은 프로세스 정리는 ProcessReaper 담당입니다.
        """
        logger.info("[BrowserPool] Shutting down...")
        async with self._lock:
            pending = self._launch_future
            if pending is not None:
                # 진행 중인 런치가 끝나야 그 브라우저까지 닫을 수 있음
                try:
                    await asyncio.shield(pending)
                except Exception as e:
                    logger.warning(f"[BrowserPool] Pending launch failed during shutdown: {type(e).__name__}: {e}")

            if self._browser is not None:
                await self._safe_close_browser(self._browser)
                self._browser = None
            if self._playwright is not None:
                try:
                    await self._playwright.stop()
                except Exception as e:
                    logger.warning(f"[BrowserPool] Error stopping Playwright: {type(e).__name__}: {e}")
                self._playwright = None
            self._context_count = 0
            self.state = PoolState.IDLE

    def stats(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "context_count": self._context_count,
            "max_contexts": self.max_contexts,
            "connected": self._browser is not None and self._is_connected(self._browser),
            "launch_count": self.launch_count,
        }

    def __repr__(self) -> str:
        return (
            f"BrowserPool(state={self.state.value}, contexts={self._context_count}/{self.max_contexts}, "
            f"launches={self.launch_count})"
        )


_shared_pool: Optional[BrowserPool] = None


def get_browser_pool() -> BrowserPool:
    global _shared_pool
    if _shared_pool is None:
        _shared_pool = BrowserPool()
    return _shared_pool


async def shutdown_browser_pool() -> None:
    global _shared_pool
    if _shared_pool is None:
        return
    await _shared_pool.close_all()
    _shared_pool = None
