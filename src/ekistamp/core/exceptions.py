"""Custom exceptions for the stamp catalog scraper."""


class StampScraperError(Exception):
    """Base exception for stamp scraper errors."""

    pass


class FetchError(StampScraperError):
    """Raised when a page cannot be fetched."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class TransientFetchError(FetchError):
    """Raised on network or transport failures that may succeed on retry."""

    pass


class RateLimitedError(FetchError):
    """Raised when the origin server answers with HTTP 429."""

    def __init__(self, url: str, retry_after: float | None = None):
        message = "Rate limited by server"
        if retry_after is not None:
            message += f", retry after {retry_after:g}s"
        super().__init__(url, message)
        self.retry_after = retry_after


class ExtractionError(StampScraperError):
    """Raised when fetched markup is not a stamp detail page."""

    pass


class JobQueueError(StampScraperError):
    """Base exception for crawl job queue errors."""

    pass


class JobStoreError(JobQueueError):
    """Raised when the job store cannot be reached or updated."""

    pass


class JobNotFoundError(JobQueueError):
    """Raised when a crawl job id does not exist."""

    pass
