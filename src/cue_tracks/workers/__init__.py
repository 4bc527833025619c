"""Worker thread management"""

from .processor import worker_thread, start_workers, stop_workers, run_job

__all__ = ["worker_thread", "start_workers", "stop_workers", "run_job"]
