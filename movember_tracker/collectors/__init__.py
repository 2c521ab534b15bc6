"""
Collectors for Movember donation pages.

This module provides:
- Page fetching through the forwarding proxy or directly
- Subdomain (country edition) resolution
- The acquisition orchestrator with retries and a stale-while-revalidate cache front
"""

from .base import (
    AcquisitionError,
    ExtractionError,
    FetchResult,
    PageNotFoundError,
    TransportError,
)
from .network import PageFetcher, build_page_url, extract_subdomain_from_url
from .orchestrator import AcquisitionOrchestrator, CacheStatus, DataResponse, build_pipeline
from .subdomain import SubdomainResolver, detect_subdomain_from_html

__all__ = [
    "AcquisitionError",
    "ExtractionError",
    "FetchResult",
    "PageNotFoundError",
    "TransportError",
    "PageFetcher",
    "build_page_url",
    "extract_subdomain_from_url",
    "AcquisitionOrchestrator",
    "CacheStatus",
    "DataResponse",
    "build_pipeline",
    "SubdomainResolver",
    "detect_subdomain_from_html",
]
