"""백그라운드 유지보수 작업 (좀비 프로세스 정리)."""

from .process_reaper import ProcessReaper, get_process_reaper, start_process_reaper

__all__ = ["ProcessReaper", "get_process_reaper", "start_process_reaper"]
