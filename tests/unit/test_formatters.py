"""Unit tests for CLI formatters."""

import json
from io import StringIO
from unittest.mock import patch

from rich.console import Console

from ekistamp.cli.formatters import (
    format_jobs_table,
    format_match_json,
    format_match_table,
    format_page_detailed,
    format_stats_table,
)
from ekistamp.core.models import (
    LocationInfo,
    MatchResult,
    MatchType,
    NormalizedStamp,
    ScrapedPage,
    ScrapeResult,
    StampShape,
)
from ekistamp.db.models import CrawlJob

PAGE_URL = "https://stamp.funakiya.com/tokyo.html"


class TestFormatters:
    """Test CLI formatters."""

    def setup_method(self):
        """Set up test fixtures."""
        self.page = ScrapedPage(
            location=LocationInfo(name="東京駅", company_name="JR東日本", page_url=PAGE_URL)
        )
        self.result = ScrapeResult(
            page=self.page,
            stamps=[
                NormalizedStamp(
                    title="東京駅",
                    size="直径6cm",
                    color="赤",
                    shape=StampShape.CIRCLE,
                    size_cm="6cm",
                    color_en="red",
                )
            ],
        )
        self.match = MatchResult(
            station_id=1130101,
            match_type=MatchType.EXACT_NAME,
            confidence=1.0,
            matched_name="東京",
        )

    def render(self, func, *args, **kwargs):
        console = Console(file=StringIO(), width=120)
        with patch("ekistamp.cli.formatters.console", console):
            func(*args, **kwargs)
            return console.file.getvalue()

    def test_format_stats_table(self):
        output = self.render(
            format_stats_table, {"pending": 3, "completed": 7, "exhausted": 1}
        )

        assert "Crawl Queue" in output
        assert "pending" in output
        assert "7" in output

    def test_format_jobs_table(self):
        job = CrawlJob(
            id=5, url=PAGE_URL, status="failed", attempt_count=3, last_error="HTTP 404"
        )

        output = self.render(format_jobs_table, [job], title="Exhausted Jobs")

        assert "Exhausted Jobs" in output
        assert "HTTP 404" in output

    def test_format_page_detailed(self):
        output = self.render(format_page_detailed, self.page, self.result)

        assert "JR東日本" in output
        assert "6cm" in output
        assert "red" in output

    def test_format_page_without_stamps(self):
        output = self.render(format_page_detailed, self.page)

        assert "No stamps on this page" in output

    def test_format_match_table(self):
        output = self.render(format_match_table, [(self.result, self.match)])

        assert "Station Matches" in output
        assert "exact_name" in output
        assert "1.00" in output

    def test_format_match_json(self):
        data = json.loads(format_match_json([(self.result, self.match)]))

        assert data == [
            {
                "page_url": PAGE_URL,
                "location": "東京駅",
                "station_id": 1130101,
                "match_type": "exact_name",
                "confidence": 1.0,
                "matched_name": "東京",
            }
        ]
