"""Crawl loop composing fetcher, extractor, normalizer and job queue."""

import logging
import threading
from dataclasses import dataclass

from ..core.config import Settings
from ..core.exceptions import JobStoreError, RateLimitedError
from ..core.fetcher import PageFetcher
from ..core.models import ScrapeResult
from ..core.normalizer import normalize_stamps
from ..db.models import CrawlJob
from .extractor import extract_links, parse_detail
from .job_queue import JobQueue

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome counts of one batch run."""

    leased: int = 0
    completed: int = 0
    failed: int = 0

    def __add__(self, other: "BatchResult") -> "BatchResult":
        return BatchResult(
            leased=self.leased + other.leased,
            completed=self.completed + other.completed,
            failed=self.failed + other.failed,
        )


class StampScraperRunner:
    """Drives discovery and sequential processing of crawl jobs."""

    def __init__(
        self,
        fetcher: PageFetcher,
        queue: JobQueue,
        settings: Settings | None = None,
    ):
        self.fetcher = fetcher
        self.queue = queue
        self.settings = settings or queue.settings

    def discover_urls(self, index_url: str) -> list[str]:
        """Fetch an index page and enqueue every detail page it links to.

        Args:
            index_url: Index page URL

        Returns:
            URLs that were not queued before
        """
        markup = self.fetcher.fetch(index_url)
        links = extract_links(markup, base_url=self.settings.base_url)
        created = self.queue.upsert_urls(links)
        logger.info(f"Discovered {len(links)} links on {index_url}, {len(created)} new")
        return [job.url for job in created]

    def process_job(self, job: CrawlJob) -> ScrapeResult:
        """Scrape one job's page and record the outcome.

        Raises:
            JobStoreError: If the outcome cannot be recorded
            StampScraperError: The fetch or extraction failure, after it was
                recorded on the job
        """
        self.queue.mark_in_progress(job.id)

        try:
            markup = self.fetcher.fetch(job.url)
            page = parse_detail(markup, job.url)
            result = ScrapeResult(page=page, stamps=normalize_stamps(page.stamps))
        except JobStoreError:
            raise
        except RateLimitedError as e:
            self.queue.mark_failed(job.id, str(e), retry_after=e.retry_after)
            raise
        except Exception as e:
            self.queue.mark_failed(job.id, f"{type(e).__name__}: {e}")
            raise

        self.queue.mark_completed(job.id, result.model_dump_json())
        logger.info(f"Scraped {job.url}: {result.page}")
        return result

    def run_batch(self, batch_size: int | None = None) -> BatchResult:
        """Lease one batch and process it job by job.

        A failing job never stops the batch; job store errors do.
        """
        batch_size = batch_size or self.settings.batch_size
        self.queue.recover_stale()
        jobs = self.queue.lease_batch(batch_size)
        result = BatchResult(leased=len(jobs))

        for job in jobs:
            try:
                self.process_job(job)
                result.completed += 1
            except JobStoreError:
                logger.error(f"Job store failure while processing job {job.id}")
                raise
            except Exception as e:
                logger.warning(f"Job {job.id} failed ({job.url}): {e}")
                result.failed += 1

        if jobs:
            logger.info(
                f"Batch done: leased={result.leased} completed={result.completed} "
                f"failed={result.failed}"
            )
        return result

    def run_until_empty(
        self,
        batch_size: int | None = None,
        stop_event: threading.Event | None = None,
        max_batches: int | None = None,
    ) -> BatchResult:
        """Run batches until a lease comes back empty.

        Args:
            batch_size: Jobs per batch
            stop_event: Checked between batches; set it to stop early
            max_batches: Upper bound on batches in this drain

        Returns:
            Totals over every batch
        """
        total = BatchResult()
        batches = 0
        while max_batches is None or batches < max_batches:
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested, ending drain")
                break

            result = self.run_batch(batch_size)
            if result.leased == 0:
                break
            total += result
            batches += 1

        logger.info(
            f"Drain finished after {batches} batches: completed={total.completed} "
            f"failed={total.failed}"
        )
        return total

    def run_with_schedule(
        self,
        interval: float,
        stop_event: threading.Event | None = None,
        max_cycles: int | None = None,
        batch_size: int | None = None,
    ) -> int:
        """Drain the queue, wait ``interval`` seconds, and repeat.

        Cancellation through ``stop_event`` takes effect between batches and
        during the wait, never in the middle of a fetch.

        Returns:
            Number of completed cycles
        """
        stop_event = stop_event or threading.Event()
        cycles = 0
        while not stop_event.is_set():
            self.run_until_empty(batch_size=batch_size, stop_event=stop_event)
            cycles += 1
            self.get_stats()

            if max_cycles is not None and cycles >= max_cycles:
                break
            logger.info(f"Cycle {cycles} done, next run in {interval:g}s")
            if stop_event.wait(interval):
                break

        return cycles

    def get_stats(self) -> dict[str, int]:
        """Queue counts per status."""
        stats = self.queue.stats()
        logger.info("Queue stats: " + ", ".join(f"{k}={v}" for k, v in stats.items()))
        return stats
