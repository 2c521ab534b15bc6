"""Worker pool for detached background refreshes.

Stale-while-revalidate reads hand their refresh to this pool and return
immediately. Each task runs behind its own error boundary: a failing
refresh is counted and logged from the completion callback and never
reaches the caller that scheduled it.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Optional, Set

from ..constants import REFRESH_MAX_WORKERS


class WorkerPool:
    """Lazily started ThreadPoolExecutor with per-task failure isolation."""

    def __init__(self, max_workers: int = REFRESH_MAX_WORKERS, logger=None, name: str = "refresh"):
        """
        Initialize worker pool.

        Args:
            max_workers: Maximum number of concurrent refresh threads
            logger: Optional logger instance (falls back to the module logger)
            name: Thread name prefix
        """
        self.max_workers = max_workers
        self.name = name
        self.logger = logger or logging.getLogger(__name__)
        self.executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()
        self._pending: Set[Future] = set()
        self.stats = {
            "max_workers": max_workers,
            "total_submitted": 0,
            "total_completed": 0,
            "total_successful": 0,
            "total_failed": 0,
        }

    def submit(self, func: Callable, *args, **kwargs) -> Future:
        """
        Schedule func(*args, **kwargs) without waiting for it.

        Returns:
            Future for the task; its exception (if any) is already logged
        """
        with self._lock:
            if self.executor is None:
                self.executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix=self.name)
            self.stats["total_submitted"] += 1
            future = self.executor.submit(func, *args, **kwargs)
            self._pending.add(future)

        task_name = getattr(func, "__name__", repr(func))

        def _track_completion(f: Future):
            with self._lock:
                self._pending.discard(f)
                self.stats["total_completed"] += 1
            error = f.exception()
            with self._lock:
                if error is None:
                    self.stats["total_successful"] += 1
                else:
                    self.stats["total_failed"] += 1
            if error is not None:
                self.logger.error(f"Background task failed: {task_name}: {error}")

        future.add_done_callback(_track_completion)
        return future

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every submitted task has finished.

        Returns:
            True if nothing is left running
        """
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown worker pool.

        Args:
            wait: If True, block until all submitted tasks complete
        """
        with self._lock:
            executor, self.executor = self.executor, None
        if executor is not None:
            executor.shutdown(wait=wait)
            self.logger.info(
                f"Worker pool shutdown complete. Stats: "
                f"{self.stats['total_successful']} successful, "
                f"{self.stats['total_failed']} failed"
            )

    def get_stats(self) -> dict:
        with self._lock:
            return dict(self.stats)
