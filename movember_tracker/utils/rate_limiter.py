"""
Global rate limiter for polite upstream request throttling.

Subdomain probes, page fetches and background refreshes may run on
different threads; they all share one limiter keyed by upstream host so the
donation site never sees bursts from this process.

Usage:
    from movember_tracker.utils.rate_limiter import global_rate_limiter

    global_rate_limiter.wait("uk.movember.com", delay=0.5)
    response = requests.get(url)
"""

import threading
import time
from typing import Dict, Optional


class GlobalRateLimiter:
    """
    Thread-safe per-host rate limiter.

    Each host gets its own lock, so waiting on one host never blocks
    requests to another.
    """

    def __init__(self):
        self._locks: Dict[str, threading.Lock] = {}
        self._last_request: Dict[str, float] = {}
        self._master_lock = threading.Lock()

    def _get_host_lock(self, host: str) -> threading.Lock:
        with self._master_lock:
            if host not in self._locks:
                self._locks[host] = threading.Lock()
                self._last_request[host] = 0.0
            return self._locks[host]

    def wait(self, host: str, delay: float) -> float:
        """
        Block until a request to host is allowed.

        Args:
            host: Upstream host or proxy name (e.g. "uk.movember.com")
            delay: Minimum seconds between requests to that host

        Returns:
            Seconds actually waited (0 if no wait needed)
        """
        lock = self._get_host_lock(host)

        with lock:
            elapsed = time.monotonic() - self._last_request[host]
            wait_time = max(0.0, delay - elapsed) if self._last_request[host] else 0.0
            if wait_time:
                time.sleep(wait_time)

            self._last_request[host] = time.monotonic()
            return wait_time

    def reset(self, host: Optional[str] = None):
        """
        Reset limiter state.

        Args:
            host: Specific host to reset, or None to reset all
        """
        with self._master_lock:
            if host:
                self._last_request[host] = 0.0
            else:
                self._last_request = {k: 0.0 for k in self._last_request}


# Singleton instance shared by every fetcher in the process
global_rate_limiter = GlobalRateLimiter()
