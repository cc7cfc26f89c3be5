"""Output formatters for CLI display."""

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..core.models import MatchResult, ScrapedPage, ScrapeResult
from ..db.models import CrawlJob

console = Console()


def format_stats_table(stats: dict[str, int]) -> None:
    """Display queue counts per status as a rich table."""
    table = Table(title="Crawl Queue", show_header=True, header_style="bold magenta")
    table.add_column("Status", style="cyan", no_wrap=True)
    table.add_column("Jobs", style="green", justify="right")

    for status, count in stats.items():
        style = "red" if status == "exhausted" and count else None
        table.add_row(status, str(count), style=style)

    console.print(table)


def format_jobs_table(jobs: list[CrawlJob], title: str = "Jobs") -> None:
    """Display crawl jobs as a rich table."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("URL", style="blue")
    table.add_column("Status", style="green")
    table.add_column("Attempts", justify="right")
    table.add_column("Last Error", style="red")

    for job in jobs:
        table.add_row(
            str(job.id), job.url, job.status, str(job.attempt_count), job.last_error or "-"
        )

    console.print(table)


def format_page_detailed(page: ScrapedPage, result: ScrapeResult | None = None) -> None:
    """Display a scraped page with its stamps."""
    location = page.location
    summary_text = f"""[bold]Name:[/bold] {location.name}
[bold]Kana:[/bold] {location.name_kana or '-'}
[bold]English:[/bold] {location.name_en or '-'}
[bold]Address:[/bold] {location.address or '-'}
[bold]Postal Code:[/bold] {location.postal_code or '-'}
[bold]Company:[/bold] {location.company_name or '-'}"""
    if location.coordinates:
        summary_text += (
            f"\n[bold]Coordinates:[/bold] {location.coordinates.lat}, "
            f"{location.coordinates.lon}"
        )

    console.print(Panel(summary_text, title="Location", border_style="blue"))

    stamps = result.stamps if result is not None else page.stamps
    if not stamps:
        console.print("[dim]No stamps on this page[/dim]")
        return

    table = Table(title="Stamps", show_header=True, header_style="bold blue")
    table.add_column("Title", style="cyan")
    table.add_column("Status", style="yellow")
    table.add_column("Size", style="green")
    table.add_column("Color", style="magenta")
    table.add_column("Location", style="dim")

    for stamp in stamps:
        size = getattr(stamp, "size_cm", None) or stamp.size or "-"
        color = getattr(stamp, "color_en", None) or stamp.color or "-"
        table.add_row(
            stamp.title, stamp.status.value, size, color, stamp.location_note or "-"
        )

    console.print(table)


def format_match_table(matches: list[tuple[ScrapeResult, MatchResult]]) -> None:
    """Display station matches as a rich table."""
    table = Table(title="Station Matches", show_header=True, header_style="bold magenta")
    table.add_column("Location", style="cyan")
    table.add_column("Station", style="green")
    table.add_column("Station ID", justify="right")
    table.add_column("Type", style="yellow")
    table.add_column("Confidence", justify="right")

    for result, match in matches:
        table.add_row(
            result.page.location.name,
            match.matched_name or "-",
            str(match.station_id) if match.station_id is not None else "-",
            match.match_type.value,
            f"{match.confidence:.2f}",
        )

    console.print(table)


def format_match_json(matches: list[tuple[ScrapeResult, MatchResult]]) -> str:
    """Format station matches as JSON."""
    data = [
        {
            "page_url": result.page.location.page_url,
            "location": result.page.location.name,
            **match.model_dump(mode="json"),
        }
        for result, match in matches
    ]
    return json.dumps(data, ensure_ascii=False, indent=2)
