"""
Error tracking for acquisition failures.

Keeps a bounded, most-recent-first log of failures for operational triage:
- Category and severity per failure
- Identifiers and subdomains stored as short SHA-256 hashes
- URLs reduced to scheme, host and path
- Messages redacted for emails/tokens/passwords and truncated
- Entries expire after a retention window
"""

import hashlib
import re
import threading
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional
from urllib.parse import urlsplit

from ..constants import ERROR_LOG_MAX_ENTRIES, ERROR_LOG_TTL_DAYS, ERROR_MESSAGE_MAX_LENGTH


class ErrorCategory(str, Enum):
    SCRAPING = "scraping"
    SUBDOMAIN = "subdomain"
    CACHE = "cache"
    NETWORK = "network"
    PARSING = "parsing"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


SENSITIVE_PATTERNS = [
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),  # Emails
    re.compile(
        r"\b(?:token|api[_-]?key|access[_-]?token|refresh[_-]?token|auth[_-]?token|bearer)\s*[:=]\s*['\"]?[A-Za-z0-9\-._~+/]+=*['\"]?",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:password|passwd|pwd|secret)\s*[:=]\s*['\"]?[^\s'\"]+['\"]?", re.IGNORECASE),
    re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}\b"),  # Card numbers
]


def hash_value(value: Optional[str]) -> str:
    """Short stable hash for identifiers that should not be stored in clear."""
    if not value:
        return ""
    return "hash_" + hashlib.sha256(value.encode("utf-8")).hexdigest()[:16]


def redact_sensitive(text: str) -> str:
    for pattern in SENSITIVE_PATTERNS:
        text = pattern.sub("[REDACTED]", text)
    return text


def sanitize_url(url: Optional[str]) -> Optional[str]:
    """Drop query string and fragment (member IDs travel in the query)."""
    if not url:
        return None
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return "[invalid-url]"
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


@dataclass
class ErrorInfo:
    """One tracked failure."""

    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    timestamp: datetime
    expires_at: datetime
    error_type: str = "Exception"
    message_hash: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        data["severity"] = self.severity.value
        data["timestamp"] = self.timestamp.isoformat()
        data["expires_at"] = self.expires_at.isoformat()
        return data


class ErrorTracker:
    """
    Bounded in-memory error log shared by pipeline components.

    Thread-safe: background refreshes report into the same tracker as
    foreground requests.
    """

    def __init__(
        self,
        max_errors: int = ERROR_LOG_MAX_ENTRIES,
        ttl_days: int = ERROR_LOG_TTL_DAYS,
        logger=None,
    ):
        self.max_errors = max_errors
        self.ttl = timedelta(days=ttl_days)
        self.logger = logger
        self._errors: Deque[ErrorInfo] = deque(maxlen=max_errors)
        self._lock = threading.Lock()

    def track(
        self,
        error: BaseException,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        identifier: Optional[str] = None,
        subdomain: Optional[str] = None,
        url: Optional[str] = None,
        **metadata: Any,
    ) -> ErrorInfo:
        """
        Record a failure with sanitized context.

        Args:
            error: The exception raised
            category: Pipeline area the failure belongs to
            severity: Operational severity
            identifier: Member or team ID (stored hashed)
            subdomain: Subdomain in use (stored hashed)
            url: Attempted URL (query string dropped)
            **metadata: Extra context such as status codes or counts

        Returns:
            The stored ErrorInfo
        """
        raw_message = str(error) or type(error).__name__
        message = redact_sensitive(raw_message)
        if len(message) > ERROR_MESSAGE_MAX_LENGTH:
            message = message[:ERROR_MESSAGE_MAX_LENGTH] + "..."

        context: Dict[str, Any] = dict(metadata)
        if identifier:
            context["identifier"] = hash_value(identifier)
        if subdomain:
            context["subdomain"] = hash_value(subdomain)
        if url:
            context["url"] = sanitize_url(url)

        now = datetime.now(timezone.utc)
        info = ErrorInfo(
            message=message,
            category=category,
            severity=severity,
            timestamp=now,
            expires_at=now + self.ttl,
            error_type=type(error).__name__,
            message_hash=hash_value(raw_message) if message != raw_message else None,
            context=context,
        )

        with self._lock:
            self._prune(now)
            self._errors.appendleft(info)

        if self.logger:
            self.logger.debug(
                f"Tracked {category.value} error: {message}",
                severity=severity.value,
                error_type=info.error_type,
            )
        return info

    def _prune(self, now: datetime):
        while self._errors and self._errors[-1].expires_at <= now:
            self._errors.pop()

    def get_errors(self, category: Optional[ErrorCategory] = None) -> List[ErrorInfo]:
        """Unexpired errors, most recent first, optionally filtered by category."""
        with self._lock:
            self._prune(datetime.now(timezone.utc))
            errors = list(self._errors)
        if category is not None:
            errors = [e for e in errors if e.category == category]
        return errors

    def get_summary(self) -> Dict[str, Any]:
        errors = self.get_errors()
        by_category: Dict[str, int] = {}
        by_severity: Dict[str, int] = {}
        for info in errors:
            by_category[info.category.value] = by_category.get(info.category.value, 0) + 1
            by_severity[info.severity.value] = by_severity.get(info.severity.value, 0) + 1
        return {
            "total": len(errors),
            "by_category": by_category,
            "by_severity": by_severity,
            "recent": [info.to_dict() for info in errors[:10]],
        }

    def clear(self):
        with self._lock:
            self._errors.clear()
