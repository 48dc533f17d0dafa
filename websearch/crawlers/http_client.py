"""공유 HTTP 클라이언트 (curl_cffi)

- 요청마다 AsyncSession을 만들면 TLS/커넥션 오버헤드가 커서 프로세스 단위로 세션을 재사용합니다.
- 실패는 None 대신 구조화된 예외로 올려 에스컬레이션 규칙이 상태 코드/본문을 검사할 수 있게 합니다.
- 앱 종료 시 close()로 정리합니다.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from curl_cffi.requests import AsyncSession

from websearch.core.config import settings
from websearch.core.logging import logger, sanitize_for_log
from websearch.core.exceptions import (
    HttpStatusException,
    NetworkException,
    NetworkTimeoutException,
)


StatusPredicate = Callable[[int], bool]


def default_accept_status(status: int) -> bool:
    return status < 400


@dataclass
class HttpResponse:
    status: int
    text: str
    url: str


def _looks_like_timeout(error: Exception) -> bool:
    name = type(error).__name__.lower()
    text = str(error).lower()
    return "timeout" in name or "timed out" in text or "timeout" in text


class SharedHttpClient:
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._session: Optional[AsyncSession] = None

    async def _ensure_session(self) -> AsyncSession:
        async with self._lock:
            if self._session is not None:
                return self._session
            self._session = AsyncSession(
                impersonate=settings.http_impersonate,
                allow_redirects=True,
                max_clients=settings.http_max_clients,
                trust_env=False,
            )
            return self._session

    async def get(
        self,
        url: str,
        *,
        timeout_s: float,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
        accept_status: StatusPredicate = default_accept_status,
    ) -> HttpResponse:
        """GET 요청

        Raises:
            NetworkTimeoutException: 타임아웃
            HttpStatusException: accept_status가 거부한 상태 코드 (본문 포함)
            NetworkException: 그 외 연결 오류
        """
        sess = await self._ensure_session()
        try:
            resp = await asyncio.wait_for(
                sess.get(url, headers=headers, params=params, timeout=timeout_s, allow_redirects=True),
                timeout=timeout_s + 1.0,
            )
        except asyncio.TimeoutError as e:
            raise NetworkTimeoutException("http_get", int(timeout_s * 1000), {"url": url}) from e
        except Exception as e:
            logger.info(f"[HTTP_CLIENT] GET failed: {sanitize_for_log(url)} {type(e).__name__}: {e!r}")
            if _looks_like_timeout(e):
                raise NetworkTimeoutException("http_get", int(timeout_s * 1000), {"url": url}) from e
            raise NetworkException(url, f"{type(e).__name__}: {e}") from e

        status = getattr(resp, "status_code", 0) or 0
        text = getattr(resp, "text", "") or ""

        if not accept_status(status):
            raise HttpStatusException(url, status, text[:10000])

        # 초과분은 경고 후 절단, 예외 없음
        limit = settings.http_max_response_bytes
        if len(text) > limit:
            logger.warning(
                f"[HTTP_CLIENT] Response truncated: {sanitize_for_log(url)} ({len(text)} > {limit} chars)"
            )
            text = text[:limit]

        return HttpResponse(status=status, text=text, url=str(getattr(resp, "url", url) or url))

    async def close(self) -> None:
        async with self._lock:
            if self._session is None:
                return
            try:
                await self._session.close()
            except Exception as e:
                logger.warning(f"[HTTP_CLIENT] Failed to close session: {type(e).__name__}: {e}")
            self._session = None


_shared_http_client = SharedHttpClient()


def get_shared_http_client() -> SharedHttpClient:
    return _shared_http_client


async def shutdown_shared_http_client() -> None:
    await _shared_http_client.close()
