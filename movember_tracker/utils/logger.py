"""
Logging infrastructure for the donation tracker.

Provides:
- Structured logging with millisecond timestamps
- key=value suffixes for structured data
- File and console output
- Error, warning and cache-status tracking for run summaries
"""

import logging
import sys
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(filename)s:%(lineno)d | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S,%f"


class MillisecondsFormatter(logging.Formatter):
    """Formatter that includes milliseconds and aligns log levels."""

    def formatTime(self, record, datefmt=None):  # noqa: N802 - must match parent class method name
        ct = datetime.fromtimestamp(record.created)
        if datefmt and "%f" in datefmt:
            return ct.strftime(datefmt.replace(",%f", "")) + f",{int(record.msecs):03d}"
        if datefmt:
            return ct.strftime(datefmt)
        return ct.strftime("%Y-%m-%d %H:%M:%S") + f",{int(record.msecs):03d}"


def _with_data(message: str, data: Dict[str, Any]) -> str:
    if not data:
        return message
    formatted_data = " ".join(f"{k}={v}" for k, v in data.items())
    return f"{message} [{formatted_data}]"


class TrackerLogger:
    """
    Centralized logger for the acquisition pipeline with structured output.

    Components take an optional TrackerLogger and stay silent without one.
    """

    def __init__(
        self,
        name: str = "movember_tracker",
        log_level: str = "INFO",
        log_file: Optional[str] = None,
        log_dir: Optional[Path] = None,
    ):
        """
        Initialize the tracker logger.

        Args:
            name: Logger name
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
            log_file: Optional log file name
            log_dir: Directory for log files (defaults to logs/ next to the package)
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, log_level.upper()))
        self.logger.propagate = False

        if self.logger.handlers:
            self.logger.handlers.clear()

        formatter = MillisecondsFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, log_level.upper()))
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        if log_file:
            if log_dir is None:
                log_dir = Path(__file__).parent.parent.parent / "logs"
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / log_file

            file_handler = logging.FileHandler(log_path)
            file_handler.setLevel(logging.DEBUG)  # Everything goes to file
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

            self.info(f"Logging to file: {log_path}")

        self._tracking_lock = threading.Lock()  # get_data runs on several worker threads
        self.errors: List[dict] = []
        self.warnings: List[dict] = []

        # Cache status per get_data call
        self.cache_hits = 0
        self.cache_misses = 0
        self.cache_details: List[dict] = []

    def debug(self, message: str, **kwargs):
        self.logger.debug(_with_data(message, kwargs), stacklevel=2)

    def info(self, message: str, **kwargs):
        self.logger.info(_with_data(message, kwargs), stacklevel=2)

    def warning(self, message: str, **kwargs):
        """Log warning message and track for reporting."""
        message = _with_data(message, kwargs)
        self.logger.warning(message, stacklevel=2)
        with self._tracking_lock:
            self.warnings.append({"message": message, "timestamp": datetime.now().isoformat(), "data": kwargs})

    def error(self, message: str, exception: Optional[Exception] = None, **kwargs):
        """Log error message and track for reporting."""
        if exception:
            message = f"{message} | Exception: {exception}"
        message = _with_data(message, kwargs)

        self.logger.error(message, exc_info=exception is not None, stacklevel=2)
        with self._tracking_lock:
            self.errors.append(
                {
                    "message": message,
                    "exception": str(exception) if exception else None,
                    "timestamp": datetime.now().isoformat(),
                    "data": kwargs,
                }
            )

    def log_cache_status(self, identifier: str, page_type: str, status: str, age_seconds: Optional[float] = None):
        """
        Record the cache outcome of one get_data call.

        Args:
            identifier: Member or team ID
            page_type: "member" or "team"
            status: HIT, MISS, STALE or LIVE
            age_seconds: Age of the served record, when one was served from cache
        """
        hit = status in ("HIT", "STALE")
        detail = {
            "identifier": identifier,
            "page_type": page_type,
            "status": status,
            "hit": hit,
            "timestamp": datetime.now().isoformat(),
        }
        if age_seconds is not None:
            detail["age_seconds"] = round(age_seconds, 1)

        with self._tracking_lock:
            if hit:
                self.cache_hits += 1
            else:
                self.cache_misses += 1
            self.cache_details.append(detail)

        msg = f"Cache {status} for {page_type} {identifier}"
        if age_seconds is not None:
            msg += f" (age: {round(age_seconds, 1)}s)"
        if hit:
            self.info(msg)
        else:
            self.debug(msg)

    def generate_summary(self) -> dict:
        """
        Aggregate cache and error statistics for the current run.

        Returns:
            dict with cache hit rate, per-status counts, errors and warnings
        """
        with self._tracking_lock:
            hits, misses = self.cache_hits, self.cache_misses
            details = list(self.cache_details)
            errors = list(self.errors)
            warnings = list(self.warnings)

        total = hits + misses
        hit_rate = (hits / total * 100) if total > 0 else 0.0

        by_status: Dict[str, int] = {}
        for detail in details:
            by_status[detail["status"]] = by_status.get(detail["status"], 0) + 1

        return {
            "cache": {
                "total_checks": total,
                "hits": hits,
                "misses": misses,
                "hit_rate_percent": round(hit_rate, 1),
                "by_status": by_status,
            },
            "errors": {"total": len(errors), "details": errors},
            "warnings": {"total": len(warnings), "details": warnings},
            "timestamp": datetime.now().isoformat(),
        }


# ============================================================================
# Global Logging Configuration
# ============================================================================


def configure_global_logging(log_level: str = "INFO"):
    """
    Configure root and third-party library logging with the unified format.

    Call this early in application startup so requests/urllib3 output lines
    up with the tracker's own log lines.

    Args:
        log_level: Logging level to apply globally (DEBUG, INFO, WARNING, ERROR)
    """
    level = getattr(logging, log_level.upper())
    formatter = MillisecondsFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    root_handler = logging.StreamHandler(sys.stdout)
    root_handler.setLevel(level)
    root_handler.setFormatter(formatter)
    root_logger.addHandler(root_handler)

    for lib_name in ["urllib3", "requests", "bs4"]:
        lib_logger = logging.getLogger(lib_name)
        lib_logger.handlers.clear()
        lib_logger.propagate = True
        # Connection pool chatter is only useful when debugging
        lib_logger.setLevel(level if level <= logging.DEBUG else logging.WARNING)
