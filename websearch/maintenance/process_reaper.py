"""Process Reaper - 고아 Playwright Chrome 프로세스 정리

브라우저 close 경로를 거치지 못한 Chrome 프로세스(크래시, 강제 종료된 워커 등)를
주기적으로 찾아 종료합니다.
- Playwright 지문(command line에 playwright / user-data-dir=/tmp/playwright)이 있는 프로세스만 대상
- max_age_s 보다 오래된 프로세스만 대상
- 자기 자신 pid는 절대 대상이 아님
"""

from __future__ import annotations

import asyncio
import os
import time
from typing import Any, Dict, List, Optional

import psutil

from websearch.core.config import settings
from websearch.core.logging import logger


_PROCESS_ATTRS = ["pid", "name", "cmdline", "create_time"]
_CHROME_SIGNATURES = ("chrome", "chromium")
_PLAYWRIGHT_FINGERPRINTS = ("playwright", "user-data-dir=/tmp/playwright")


def _command_line(info: Dict[str, Any]) -> str:
    return " ".join(info.get("cmdline") or [])


def _is_chrome(info: Dict[str, Any]) -> bool:
    name = (info.get("name") or "").lower()
    cmdline = _command_line(info).lower()
    return any(sig in name or sig in cmdline for sig in _CHROME_SIGNATURES)


def _has_playwright_fingerprint(info: Dict[str, Any]) -> bool:
    cmdline = _command_line(info)
    return any(fp in cmdline for fp in _PLAYWRIGHT_FINGERPRINTS)


class ProcessReaper:
    """주기적 고아 브라우저 프로세스 정리기

    Usage:
        reaper = ProcessReaper(interval_s=300, max_age_s=1800)
        reaper.start()
        ...
        await reaper.stop()
    """

    def __init__(
        self,
        interval_s: Optional[float] = None,
        max_age_s: Optional[float] = None,
        verbose: Optional[bool] = None,
    ) -> None:
        self.interval_s = settings.gc_interval_s if interval_s is None else interval_s
        self.max_age_s = settings.gc_max_process_age_s if max_age_s is None else max_age_s
        self.verbose = settings.gc_verbose if verbose is None else verbose
        self.term_grace_s = 1.0

        self._task: Optional[asyncio.Task] = None
        self._started_at = time.monotonic()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            logger.info("[GC] Already running")
            return

        logger.info(f"[GC] Starting garbage collector (interval: {self.interval_s:.0f}s, maxAge: {self.max_age_s:.0f}s)")
        self._task = asyncio.create_task(self._run(), name="process-reaper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("[GC] Stopped garbage collector")

    async def _run(self) -> None:
        while True:
            await self.sweep()
            await asyncio.sleep(self.interval_s)

    def _list_chrome_processes(self) -> List[psutil.Process]:
        found: List[psutil.Process] = []
        for proc in psutil.process_iter(attrs=_PROCESS_ATTRS):
            try:
                if _is_chrome(proc.info):
                    found.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return found

    async def sweep(self) -> Dict[str, int]:
        """1회 정리

        Returns:
            {"killed": 종료한 수, "checked": 검사한 Chrome 프로세스 수}
        """
        try:
            # /proc 순회는 이벤트 루프 밖에서
            processes = await asyncio.to_thread(self._list_chrome_processes)
            if self.verbose:
                logger.info(f"[GC] Found {len(processes)} Chrome processes")

            own_pid = os.getpid()
            now = time.time()
            killed = 0

            for proc in processes:
                info = proc.info
                if info.get("pid") == own_pid:
                    continue

                age_s = now - (info.get("create_time") or now)
                if age_s <= self.max_age_s:
                    continue
                if not _has_playwright_fingerprint(info):
                    continue

                if self.verbose:
                    logger.info(f"[GC] Killing orphaned Chrome process {info.get('pid')} (age: {age_s / 60:.0f}min)")
                if await self._terminate(proc):
                    killed += 1

            if killed > 0:
                logger.info(f"[GC] Swept {killed} orphaned Chrome processes")

            return {"killed": killed, "checked": len(processes)}
        except Exception as e:
            logger.error(f"[GC] Error during garbage collection: {type(e).__name__}: {e}")
            return {"killed": 0, "checked": 0}

    async def _terminate(self, proc: psutil.Process) -> bool:
        """SIGTERM → 대기 → 살아있으면 SIGKILL. 이미 종료된 프로세스는 성공으로 간주"""
        try:
            proc.terminate()
            await asyncio.sleep(self.term_grace_s)
            if proc.is_running():
                proc.kill()
            return True
        except psutil.NoSuchProcess:
            return True
        except psutil.AccessDenied as e:
            logger.warning(f"[GC] Failed to kill process {proc.pid}: {e}")
            return False

    def _list_playwright_processes(self) -> List[psutil.Process]:
        own_pid = os.getpid()
        found: List[psutil.Process] = []
        for proc in psutil.process_iter(attrs=_PROCESS_ATTRS):
            try:
                if proc.info.get("pid") != own_pid and "playwright" in _command_line(proc.info):
                    found.append(proc)
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue
        return found

    async def kill_all_playwright(self) -> int:
        """나이와 무관하게 playwright가 언급된 모든 프로세스 종료 (비상 정리)"""
        try:
            targets = await asyncio.to_thread(self._list_playwright_processes)
        except Exception as e:
            logger.error(f"[GC] Emergency cleanup failed: {type(e).__name__}: {e}")
            return 0

        results = await asyncio.gather(*(self._terminate(p) for p in targets))
        killed = sum(1 for ok in results if ok)
        logger.info(f"[GC] Emergency cleanup: killed {killed} Playwright processes")
        return killed

    def _sample_resources(self) -> Dict[str, int]:
        try:
            chrome_count = len(self._list_chrome_processes())
        except Exception:
            chrome_count = 0

        try:
            memory_mb = round(psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024)
        except psutil.Error:
            memory_mb = 0

        return {"chrome_count": chrome_count, "memory_mb": memory_mb}

    async def get_stats(self) -> Dict[str, Any]:
        sample = await asyncio.to_thread(self._sample_resources)
        return {
            "running": self.running,
            **sample,
            "uptime_minutes": round((time.monotonic() - self._started_at) / 60),
        }


_shared_reaper: Optional[ProcessReaper] = None


def get_process_reaper() -> ProcessReaper:
    global _shared_reaper
    if _shared_reaper is None:
        _shared_reaper = ProcessReaper()
    return _shared_reaper


def start_process_reaper() -> ProcessReaper:
    reaper = get_process_reaper()
    reaper.start()
    return reaper
