"""Formatting helpers for log lines."""


def format_duration(ms: float) -> str:
    """
    Human-readable duration.

    Examples:
        format_duration(150000) -> "2m 30s (150000ms)"
        format_duration(45000) -> "45s (45000ms)"
    """
    ms = int(round(ms))
    seconds = int(ms / 1000 + 0.5)
    minutes, remaining = divmod(seconds, 60)
    if minutes > 0:
        return f"{minutes}m {remaining}s ({ms}ms)"
    return f"{seconds}s ({ms}ms)"
