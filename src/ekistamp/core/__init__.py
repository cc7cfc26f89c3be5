"""Core stamp scraper functionality."""

from .config import BASE_URL, Settings
from .exceptions import (
    ExtractionError,
    FetchError,
    JobNotFoundError,
    JobQueueError,
    JobStoreError,
    RateLimitedError,
    StampScraperError,
    TransientFetchError,
)
from .fetcher import PageFetcher, RequestThrottle, get_throttle
from .models import (
    CanonicalStation,
    Coordinates,
    JobStatus,
    LocationInfo,
    MatchResult,
    MatchType,
    NearbyStation,
    NormalizedStamp,
    ScrapedPage,
    ScrapedStamp,
    ScrapeResult,
    StampShape,
    StampStatus,
)
from .normalizer import normalize_stamp, normalize_stamps

__all__ = [
    "BASE_URL",
    "CanonicalStation",
    "Coordinates",
    "ExtractionError",
    "FetchError",
    "JobNotFoundError",
    "JobQueueError",
    "JobStatus",
    "JobStoreError",
    "LocationInfo",
    "MatchResult",
    "MatchType",
    "NearbyStation",
    "NormalizedStamp",
    "PageFetcher",
    "RateLimitedError",
    "RequestThrottle",
    "ScrapeResult",
    "ScrapedPage",
    "ScrapedStamp",
    "Settings",
    "StampScraperError",
    "StampShape",
    "StampStatus",
    "TransientFetchError",
    "get_throttle",
    "normalize_stamp",
    "normalize_stamps",
]
