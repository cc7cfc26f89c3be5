"""Durable crawl job queue with bounded retries and scheduled re-crawls."""

import logging
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..core.config import Settings
from ..core.exceptions import JobNotFoundError, JobStoreError
from ..core.models import JobStatus, ScrapeResult
from ..db.models import CrawlJob, utcnow

logger = logging.getLogger(__name__)

LEASE_EXPIRED_ERROR = "lease expired"

PENDING = JobStatus.PENDING.value
IN_PROGRESS = JobStatus.IN_PROGRESS.value
COMPLETED = JobStatus.COMPLETED.value
FAILED = JobStatus.FAILED.value


class JobQueue:
    """Tracks the crawl state of every discovered URL.

    Every operation runs in its own transaction. Leasing only selects jobs;
    callers claim a job with ``mark_in_progress`` before working on it.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the queue.

        Args:
            session_factory: Factory for job store sessions
            settings: Retry, backoff and re-crawl policy
            clock: Returns the current naive UTC time
        """
        self._session_factory = session_factory
        self.settings = settings or Settings()
        self._clock = clock

    @property
    def max_attempts(self) -> int:
        return self.settings.max_attempts

    @contextmanager
    def _transaction(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            raise JobStoreError(f"Job store operation failed: {e}") from e

    def upsert_urls(self, urls: Iterable[str]) -> list[CrawlJob]:
        """Insert jobs for URLs not seen before.

        Args:
            urls: Discovered page URLs (duplicates allowed)

        Returns:
            Only the newly created jobs; existing jobs are left untouched
        """
        unique = list(dict.fromkeys(url.strip() for url in urls if url and url.strip()))
        if not unique:
            return []

        now = self._clock()
        created: list[CrawlJob] = []
        with self._transaction() as session:
            existing: set[str] = set()
            for start in range(0, len(unique), 500):
                chunk = unique[start : start + 500]
                existing.update(
                    session.scalars(select(CrawlJob.url).where(CrawlJob.url.in_(chunk)))
                )

            for url in unique:
                if url in existing:
                    continue
                created.append(
                    CrawlJob(
                        url=url,
                        status=PENDING,
                        attempt_count=0,
                        created_at=now,
                        updated_at=now,
                    )
                )
            session.add_all(created)
            session.flush()

        logger.info(f"Upserted {len(unique)} URLs, {len(created)} new")
        return created

    def lease_batch(self, limit: int = 10) -> list[CrawlJob]:
        """Select up to ``limit`` jobs that are due for processing.

        Pending and retryable failed jobs come first (oldest created first),
        then completed jobs due for a re-crawl (oldest scraped first).
        """
        if limit <= 0:
            return []

        now = self._clock()
        with self._transaction() as session:
            stmt = (
                select(CrawlJob)
                .where(
                    or_(
                        CrawlJob.status == PENDING,
                        and_(
                            CrawlJob.status == FAILED,
                            CrawlJob.attempt_count < self.max_attempts,
                        ),
                    ),
                    or_(
                        CrawlJob.next_eligible_at.is_(None),
                        CrawlJob.next_eligible_at < now,
                    ),
                )
                .order_by(CrawlJob.created_at, CrawlJob.id)
                .limit(limit)
            )
            jobs = list(session.scalars(stmt))

            remaining = limit - len(jobs)
            if remaining > 0:
                jobs.extend(self._select_recrawl(session, remaining, now))

        return jobs

    def due_for_recrawl(self, limit: int = 10) -> list[CrawlJob]:
        """Completed jobs whose last scrape is older than the re-crawl interval."""
        with self._transaction() as session:
            return self._select_recrawl(session, limit, self._clock())

    def _select_recrawl(self, session: Session, limit: int, now: datetime) -> list[CrawlJob]:
        cutoff = now - self.settings.recrawl_after
        stmt = (
            select(CrawlJob)
            .where(CrawlJob.status == COMPLETED, CrawlJob.last_scraped_at < cutoff)
            .order_by(CrawlJob.last_scraped_at, CrawlJob.id)
            .limit(limit)
        )
        return list(session.scalars(stmt))

    def mark_in_progress(self, job_id: int) -> CrawlJob:
        """Claim a job: status in_progress and one more attempt."""
        now = self._clock()
        return self._update(
            job_id,
            status=IN_PROGRESS,
            attempt_count=CrawlJob.attempt_count + 1,
            leased_at=now,
            updated_at=now,
        )

    def mark_completed(self, job_id: int, payload: str) -> CrawlJob:
        """Record a successful scrape and its payload."""
        now = self._clock()
        return self._update(
            job_id,
            status=COMPLETED,
            last_scraped_at=now,
            payload=payload,
            last_error=None,
            next_eligible_at=None,
            leased_at=None,
            updated_at=now,
        )

    def mark_failed(
        self, job_id: int, error: str, retry_after: float | None = None
    ) -> CrawlJob:
        """Record a failure and hold the job back for the backoff period.

        Args:
            job_id: Job to update
            error: Error text to store
            retry_after: Server-requested delay in seconds, if longer than the
                regular backoff

        Returns:
            The updated job
        """
        now = self._clock()
        backoff = self.settings.failure_backoff
        if retry_after is not None:
            backoff = max(backoff, timedelta(seconds=retry_after))

        job = self._update(
            job_id,
            status=FAILED,
            last_error=error,
            next_eligible_at=now + backoff,
            leased_at=None,
            updated_at=now,
        )

        if job.is_exhausted(self.max_attempts):
            logger.warning(
                f"Job {job_id} exceeded max attempts ({self.max_attempts}), giving up: {job.url}"
            )
        return job

    def reset(self, job_id: int) -> CrawlJob:
        """Return a job to pending with its counters cleared."""
        return self._update(
            job_id,
            status=PENDING,
            attempt_count=0,
            last_error=None,
            next_eligible_at=None,
            leased_at=None,
            updated_at=self._clock(),
        )

    def recover_stale(self) -> int:
        """Fail in_progress jobs whose lease is older than the stale threshold.

        A crashed worker leaves its job in_progress forever; failing it makes
        the job eligible again, still bounded by the attempt limit.

        Returns:
            Number of recovered jobs
        """
        now = self._clock()
        cutoff = now - self.settings.stale_lease_after
        with self._transaction() as session:
            result = session.execute(
                update(CrawlJob)
                .where(
                    CrawlJob.status == IN_PROGRESS,
                    or_(CrawlJob.leased_at.is_(None), CrawlJob.leased_at < cutoff),
                )
                .values(
                    status=FAILED,
                    last_error=LEASE_EXPIRED_ERROR,
                    next_eligible_at=None,
                    leased_at=None,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            recovered = result.rowcount or 0

        if recovered:
            logger.warning(f"Recovered {recovered} stale in_progress jobs")
        return recovered

    def stats(self) -> dict[str, int]:
        """Count jobs per status, plus exhausted failed jobs."""
        counts = {status.value: 0 for status in JobStatus}
        with self._transaction() as session:
            rows = session.execute(
                select(CrawlJob.status, func.count()).group_by(CrawlJob.status)
            )
            for status, count in rows:
                counts[status] = count
            counts["exhausted"] = session.scalar(
                select(func.count()).select_from(CrawlJob).where(self._exhausted_clause())
            ) or 0
        return counts

    def list_exhausted(self, limit: int | None = None) -> list[CrawlJob]:
        """Failed jobs that need a manual reset."""
        with self._transaction() as session:
            stmt = select(CrawlJob).where(self._exhausted_clause()).order_by(CrawlJob.id)
            if limit is not None:
                stmt = stmt.limit(limit)
            return list(session.scalars(stmt))

    def get(self, job_id: int) -> CrawlJob:
        with self._transaction() as session:
            job = session.get(CrawlJob, job_id)
            if job is None:
                raise JobNotFoundError(f"No crawl job with id {job_id}")
            return job

    def get_by_url(self, url: str) -> CrawlJob | None:
        with self._transaction() as session:
            return session.scalar(select(CrawlJob).where(CrawlJob.url == url))

    def iter_results(self) -> Iterator[tuple[CrawlJob, ScrapeResult]]:
        """Decoded payloads of every completed job."""
        with self._transaction() as session:
            jobs = list(
                session.scalars(
                    select(CrawlJob)
                    .where(CrawlJob.status == COMPLETED, CrawlJob.payload.is_not(None))
                    .order_by(CrawlJob.id)
                )
            )
        for job in jobs:
            yield job, ScrapeResult.model_validate_json(job.payload or "{}")

    def _exhausted_clause(self) -> Any:
        return and_(CrawlJob.status == FAILED, CrawlJob.attempt_count >= self.max_attempts)

    def _update(self, job_id: int, **values: Any) -> CrawlJob:
        """Apply one UPDATE to a job and return the fresh row."""
        with self._transaction() as session:
            result = session.execute(
                update(CrawlJob)
                .where(CrawlJob.id == job_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            job = None
            if result.rowcount:
                job = session.get(CrawlJob, job_id, populate_existing=True)
            if job is None:
                raise JobNotFoundError(f"No crawl job with id {job_id}")
            return job
