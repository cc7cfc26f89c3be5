"""Persistence for crawl jobs."""

from .models import MAX_ATTEMPTS, Base, CrawlJob, utcnow
from .session import create_session_factory

__all__ = ["MAX_ATTEMPTS", "Base", "CrawlJob", "create_session_factory", "utcnow"]
