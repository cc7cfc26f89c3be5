"""Runtime configuration for the stamp scraper."""

import os
from datetime import timedelta
from typing import Any

from pydantic import BaseModel, Field

ENV_PREFIX = "EKISTAMP_"

BASE_URL = "https://stamp.funakiya.com"
USER_AGENT = "Mozilla/5.0 (compatible; EkistampBot/1.0; +https://github.com/ekistamp)"


class Settings(BaseModel):
    """Tunables for fetching, queueing and scheduling."""

    base_url: str = Field(BASE_URL, description="Absolute prefix of crawlable pages")
    database_url: str = Field(
        "sqlite:///data/ekistamp.db", description="SQLAlchemy URL of the job store"
    )
    user_agent: str = Field(USER_AGENT, description="User-Agent sent with requests")

    # Fetcher
    request_timeout: float = Field(30.0, gt=0, description="Request timeout (s)")
    min_request_interval: float = Field(
        2.0, ge=0, description="Minimum pause between two requests (s)"
    )
    retry_attempts: int = Field(
        3, ge=0, description="Retries after the first attempt on transient errors"
    )
    retry_initial_wait: float = Field(
        1.0, ge=0, description="First exponential backoff wait (s)"
    )

    # Job queue
    max_attempts: int = Field(3, ge=1, description="Attempts before a job is exhausted")
    failure_backoff: timedelta = Field(
        timedelta(minutes=5), description="Delay before a failed job is retried"
    )
    recrawl_after: timedelta = Field(
        timedelta(days=30), description="Age after which completed pages are re-crawled"
    )
    stale_lease_after: timedelta = Field(
        timedelta(minutes=30),
        description="Age after which an in_progress job is considered orphaned",
    )
    batch_size: int = Field(10, ge=1, description="Jobs leased per batch")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None, **overrides: Any) -> "Settings":
        """Build settings from ``EKISTAMP_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``
            **overrides: Explicit values that win over the environment

        Returns:
            Validated settings
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name, field in cls.model_fields.items():
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is None or raw == "":
                continue
            # Durations may be given as plain seconds
            if field.annotation is timedelta and _is_number(raw):
                values[name] = timedelta(seconds=float(raw))
            else:
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)


def _is_number(text: str) -> bool:
    try:
        float(text)
    except ValueError:
        return False
    return True
