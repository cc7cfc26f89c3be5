"""Rate-limited, retrying page fetcher for the stamp catalog site."""

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import requests
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .config import Settings
from .exceptions import FetchError, RateLimitedError, TransientFetchError

logger = logging.getLogger(__name__)

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")
TRANSIENT_STATUS_CODES = frozenset({500, 502, 503, 504})

# Transport failures, including a response cut off mid-body
TRANSIENT_REQUEST_ERRORS = (
    requests.ConnectionError,
    requests.Timeout,
    requests.exceptions.ChunkedEncodingError,
    requests.exceptions.ContentDecodingError,
)


class RequestThrottle:
    """Serialises requests and enforces a pause between them.

    Only one request may be in flight at a time. The next request starts no
    earlier than ``min_interval`` seconds after the previous one finished,
    whether it succeeded or not.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_finished: float | None = None

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold the request slot for the duration of one request."""
        with self._lock:
            if self._last_finished is not None:
                remaining = self._last_finished + self.min_interval - self._clock()
                if remaining > 0:
                    logger.debug(f"Throttling for {remaining:.2f}s")
                    self._sleep(remaining)
            try:
                yield
            finally:
                self._last_finished = self._clock()


# Process-wide throttle shared by every fetcher
_throttle: RequestThrottle | None = None
_throttle_lock = threading.Lock()


def get_throttle(min_interval: float = 2.0) -> RequestThrottle:
    """Get the process-wide request throttle.

    The interval only applies when the throttle is first created.
    """
    global _throttle
    if _throttle is None:
        with _throttle_lock:
            if _throttle is None:  # Double-check locking pattern
                _throttle = RequestThrottle(min_interval=min_interval)
    return _throttle


def parse_retry_after(value: str | None) -> float | None:
    """Parse a ``Retry-After`` header into seconds.

    Args:
        value: Header value, either delta seconds or an HTTP date

    Returns:
        Seconds to wait, or None if the header is missing or malformed
    """
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class PageFetcher:
    """Fetches HTML pages one at a time, politely."""

    def __init__(
        self,
        settings: Settings | None = None,
        session: requests.Session | None = None,
        throttle: RequestThrottle | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the fetcher.

        Args:
            settings: Timeouts, retry policy and User-Agent
            session: HTTP session to use (a new one by default)
            throttle: Request throttle (the process-wide one by default)
            sleep: Sleep function used between retries
        """
        self.settings = settings or Settings()
        self.throttle = throttle or get_throttle(self.settings.min_request_interval)
        self._sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": self.settings.user_agent,
                "Accept": "text/html,application/xhtml+xml;q=0.9",
                "Accept-Language": "ja,en;q=0.5",
            }
        )

    def fetch(self, url: str) -> str:
        """Fetch a page and return its HTML.

        Transient failures are retried with exponential backoff. Rate-limit
        responses are never retried here.

        Args:
            url: Absolute page URL

        Returns:
            Decoded HTML text

        Raises:
            TransientFetchError: If every attempt failed transiently
            RateLimitedError: If the server answered with HTTP 429
            FetchError: On any other failure
        """
        retries = self.settings.retry_attempts
        initial_wait = self.settings.retry_initial_wait
        retrying = Retrying(
            stop=stop_after_attempt(retries + 1),
            wait=wait_exponential(
                multiplier=initial_wait, max=initial_wait * 2 ** max(retries - 1, 0)
            ),
            retry=retry_if_exception_type(TransientFetchError),
            sleep=self._sleep,
            reraise=True,
        )

        html = ""
        for attempt in retrying:
            with attempt:
                html = self._fetch_once(url, attempt.retry_state.attempt_number)
        return html

    def _fetch_once(self, url: str, attempt: int) -> str:
        """Issue a single GET request inside the throttle slot."""
        started = time.monotonic()
        with self.throttle.slot():
            try:
                response = self.session.get(url, timeout=self.settings.request_timeout)
            except TRANSIENT_REQUEST_ERRORS as e:
                logger.warning(f"GET {url} attempt={attempt} outcome=transport_error error={e}")
                raise TransientFetchError(url, f"Transport error: {e}") from e
            except requests.RequestException as e:
                logger.warning(f"GET {url} attempt={attempt} outcome=request_error error={e}")
                raise FetchError(url, f"Request failed: {e}") from e

        status = response.status_code
        elapsed = time.monotonic() - started
        logger.info(f"GET {url} attempt={attempt} status={status} elapsed={elapsed:.2f}s")

        if status == 429:
            raise RateLimitedError(url, parse_retry_after(response.headers.get("Retry-After")))
        if status in TRANSIENT_STATUS_CODES:
            raise TransientFetchError(url, f"HTTP {status}")
        if status >= 400:
            raise FetchError(url, f"HTTP {status}")

        content_type = response.headers.get("Content-Type", "")
        media_type = content_type.split(";")[0].strip().lower()
        if media_type and media_type not in HTML_CONTENT_TYPES:
            raise FetchError(url, f"Unexpected content type: {media_type}")

        # requests falls back to ISO-8859-1 without a charset, which garbles Japanese
        if "charset" not in content_type.lower():
            response.encoding = response.apparent_encoding or "utf-8"
        return response.text
