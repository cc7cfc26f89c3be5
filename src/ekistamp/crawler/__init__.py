"""Crawling: page extraction, job queue and crawl loop."""

from .extractor import extract_links, parse_availability, parse_coordinates, parse_detail
from .job_queue import JobQueue
from .runner import BatchResult, StampScraperRunner

__all__ = [
    "BatchResult",
    "JobQueue",
    "StampScraperRunner",
    "extract_links",
    "parse_availability",
    "parse_coordinates",
    "parse_detail",
]
