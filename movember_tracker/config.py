"""
Central configuration for paths and upstream endpoints.

Local files (JSON cache records) are stored in ~/.movember-tracker/.

Configure via environment variables (a .env file is loaded by track.py):
  - MOVEMBER_TRACKER_DATA_DIR (default: ~/.movember-tracker)
  - MOVEMBER_PROXY_URL (default: unset, pages are fetched directly)
  - MOVEMBER_LOG_LEVEL (default: INFO)
  - MOVEMBER_RATE_LIMIT_DELAY (default: 0.5 seconds)
  - MOVEMBER_REQUEST_TIMEOUT (default: 30 seconds)
  - MOVEMBER_OVERRIDES_FILE (default: unset, YAML member overrides)
"""

import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional

import yaml

from .constants import (
    DEFAULT_RATE_LIMIT_DELAY_SECONDS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    MEMBER_SUBDOMAIN_OVERRIDES,
)

logger = logging.getLogger(__name__)


def get_data_dir() -> Path:
    """
    Get the local data directory path for cache files.

    Uses MOVEMBER_TRACKER_DATA_DIR environment variable if set, otherwise
    defaults to ~/.movember-tracker/

    Returns:
        Path to data directory
    """
    env_path = os.environ.get("MOVEMBER_TRACKER_DATA_DIR")
    if env_path:
        return Path(env_path).expanduser().resolve()
    return Path.home() / ".movember-tracker"


def get_cache_dir() -> Path:
    """Get the donation cache directory."""
    return get_data_dir() / "cache"


def get_proxy_url() -> Optional[str]:
    """Get the forwarding proxy base URL, or None to fetch pages directly."""
    proxy_url = os.environ.get("MOVEMBER_PROXY_URL", "").strip()
    return proxy_url.rstrip("/") or None


def get_log_level() -> str:
    return os.environ.get("MOVEMBER_LOG_LEVEL", "INFO").upper()


def get_rate_limit_delay() -> float:
    return float(os.environ.get("MOVEMBER_RATE_LIMIT_DELAY", DEFAULT_RATE_LIMIT_DELAY_SECONDS))


def get_request_timeout() -> float:
    return float(os.environ.get("MOVEMBER_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT_SECONDS))


def load_member_overrides(path: Optional[Path] = None) -> Mapping[str, str]:
    """
    Build the immutable member override table.

    Starts from the static MEMBER_SUBDOMAIN_OVERRIDES and layers entries from
    a YAML file on top. The file looks like:

        member_overrides:
          "14810348": uk

    Args:
        path: YAML file to read (defaults to MOVEMBER_OVERRIDES_FILE)

    Returns:
        Read-only mapping of member ID to subdomain
    """
    overrides = dict(MEMBER_SUBDOMAIN_OVERRIDES)

    if path is None:
        env_path = os.environ.get("MOVEMBER_OVERRIDES_FILE")
        path = Path(env_path).expanduser() if env_path else None

    if path is not None:
        if not path.exists():
            logger.warning(f"Overrides file not found at {path}, using built-in overrides only")
        else:
            with open(path) as f:
                raw = yaml.safe_load(f) or {}
            for identifier, subdomain in (raw.get("member_overrides") or {}).items():
                overrides[str(identifier).strip()] = str(subdomain).strip().lower()
            logger.info(f"Loaded {len(overrides)} member subdomain overrides from {path}")

    return MappingProxyType(overrides)
