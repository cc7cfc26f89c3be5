"""ORM models for the crawl job store."""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..core.models import JobStatus

MAX_ATTEMPTS = 3


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class CrawlJob(Base):
    """Crawl lifecycle of one discovered page URL."""

    __tablename__ = "scrape_job"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    url: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING.value, index=True
    )  # pending, in_progress, completed, failed
    attempt_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    last_scraped_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_eligible_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    leased_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[str | None] = mapped_column(Text, nullable=True)  # ScrapeResult JSON

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("ix_scrape_job_schedule", "status", "next_eligible_at"),
        CheckConstraint(
            "status IN ('pending', 'in_progress', 'completed', 'failed')",
            name="scrape_job_status_check",
        ),
    )

    @property
    def job_status(self) -> JobStatus:
        return JobStatus(self.status)

    def is_exhausted(self, max_attempts: int = MAX_ATTEMPTS) -> bool:
        """A failed job that used up its attempts; only a reset revives it."""
        return self.status == JobStatus.FAILED.value and self.attempt_count >= max_attempts

    def __repr__(self) -> str:
        return (
            f"CrawlJob(id={self.id}, url={self.url!r}, status={self.status}, "
            f"attempts={self.attempt_count})"
        )
