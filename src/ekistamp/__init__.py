"""Ekistamp

Scrapes the station stamp catalog into a durable crawl queue and links each
scraped location to a canonical railway station.
"""

__version__ = "0.1.0"

from .core.models import LocationInfo, MatchResult, ScrapedPage, ScrapeResult
from .crawler import JobQueue, StampScraperRunner
from .matching import StationMatcher

__all__ = [
    "JobQueue",
    "LocationInfo",
    "MatchResult",
    "ScrapeResult",
    "ScrapedPage",
    "StampScraperRunner",
    "StationMatcher",
]
