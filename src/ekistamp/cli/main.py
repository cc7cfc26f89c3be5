"""CLI main entry point for the stamp catalog scraper."""

import logging
import signal
import sys
import threading
from typing import Any, NoReturn

import click
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from ..core import PageFetcher, Settings, StampScraperError
from ..core.models import ScrapeResult
from ..core.normalizer import normalize_stamps
from ..crawler import JobQueue, StampScraperRunner, parse_detail
from ..db import create_session_factory
from ..matching import InMemoryStationStore, StationMatcher, match_results
from .formatters import (
    format_jobs_table,
    format_match_json,
    format_match_table,
    format_page_detailed,
    format_stats_table,
)

console = Console()
error_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, rich_tracebacks=True)],
        force=True,
    )


def _queue(ctx: click.Context) -> JobQueue:
    settings: Settings = ctx.obj["settings"]
    return JobQueue(create_session_factory(settings.database_url), settings)


def _runner(ctx: click.Context) -> StampScraperRunner:
    settings: Settings = ctx.obj["settings"]
    return StampScraperRunner(PageFetcher(settings), _queue(ctx), settings)


def _fail(e: Exception) -> NoReturn:
    error_console.print(f"[red]Error:[/red] {e}")
    sys.exit(1)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--database-url",
    envvar="EKISTAMP_DATABASE_URL",
    help="SQLAlchemy URL of the crawl job store",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, database_url: str | None, verbose: bool) -> None:
    """Ekistamp - Scrape station stamps and link them to stations."""
    setup_logging(verbose)
    try:
        settings = Settings.from_env(database_url=database_url)
    except ValidationError as e:
        error_console.print(f"[red]Invalid configuration:[/red] {e}")
        sys.exit(1)
    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("index_urls", nargs=-1, required=True)
@click.pass_context
def discover(ctx: click.Context, index_urls: tuple[str, ...]) -> None:
    """Queue every detail page linked from the given index pages.

    Examples:
        ekistamp discover https://stamp.funakiya.com/line/yamanote.html
    """
    try:
        runner = _runner(ctx)
        total = 0
        for index_url in index_urls:
            with console.status(f"[bold green]Discovering pages on {index_url}..."):
                new_urls = runner.discover_urls(index_url)
            console.print(f"{index_url}: [green]{len(new_urls)}[/green] new pages queued")
            total += len(new_urls)
        console.print(f"[bold]Total new pages:[/bold] {total}")
    except StampScraperError as e:
        _fail(e)


@cli.command()
@click.option("--batch-size", "-b", type=int, help="Jobs leased per batch")
@click.option("--once", is_flag=True, help="Run a single batch instead of draining")
@click.pass_context
def run(ctx: click.Context, batch_size: int | None, once: bool) -> None:
    """Process queued jobs until none are eligible.

    Examples:
        ekistamp run
        ekistamp run --once --batch-size 5
    """
    try:
        runner = _runner(ctx)
        if once:
            result = runner.run_batch(batch_size)
        else:
            result = runner.run_until_empty(batch_size)
        console.print(
            f"[bold]Leased:[/bold] {result.leased}  "
            f"[green]Completed:[/green] {result.completed}  "
            f"[red]Failed:[/red] {result.failed}"
        )
    except StampScraperError as e:
        _fail(e)


@cli.command()
@click.option(
    "--interval", "-i", type=float, default=3600.0, help="Seconds between drain cycles"
)
@click.option("--max-cycles", type=int, help="Stop after this many cycles")
@click.option("--batch-size", "-b", type=int, help="Jobs leased per batch")
@click.pass_context
def schedule(
    ctx: click.Context, interval: float, max_cycles: int | None, batch_size: int | None
) -> None:
    """Drain the queue on a recurring schedule until interrupted."""
    stop_event = threading.Event()

    def request_stop(signum: int, frame: Any) -> None:
        error_console.print("[yellow]Stopping after the current job...[/yellow]")
        stop_event.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    try:
        cycles = _runner(ctx).run_with_schedule(
            interval, stop_event=stop_event, max_cycles=max_cycles, batch_size=batch_size
        )
        console.print(f"[bold]Cycles completed:[/bold] {cycles}")
    except StampScraperError as e:
        _fail(e)


@cli.command()
@click.option("--exhausted", is_flag=True, help="Also list jobs that ran out of attempts")
@click.pass_context
def stats(ctx: click.Context, exhausted: bool) -> None:
    """Show crawl queue counts per status."""
    try:
        queue = _queue(ctx)
        format_stats_table(queue.stats())
        if exhausted:
            format_jobs_table(queue.list_exhausted(), title="Exhausted Jobs")
    except StampScraperError as e:
        _fail(e)


@cli.command()
@click.argument("job_id", type=int, required=False)
@click.option("--url", help="Reset the job for this URL instead of an id")
@click.pass_context
def reset(ctx: click.Context, job_id: int | None, url: str | None) -> None:
    """Return a job to pending with its attempts cleared.

    Examples:
        ekistamp reset 42
        ekistamp reset --url https://stamp.funakiya.com/tokyo.html
    """
    if (job_id is None) == (url is None):
        raise click.UsageError("Give either JOB_ID or --url")

    try:
        queue = _queue(ctx)
        if job_id is None:
            found = queue.get_by_url(url or "")
            if found is None:
                error_console.print(f"[red]Error:[/red] No crawl job for {url}")
                sys.exit(1)
            job_id = found.id
        job = queue.reset(job_id)
        console.print(f"[green]Reset job {job.id}:[/green] {job.url}")
    except StampScraperError as e:
        _fail(e)


@cli.command()
@click.argument("url")
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["detailed", "json"]),
    default="detailed",
    help="Output format",
)
@click.pass_context
def parse(ctx: click.Context, url: str, output_format: str) -> None:
    """Fetch and parse one detail page without touching the job store."""
    try:
        with console.status(f"[bold green]Fetching {url}..."):
            markup = PageFetcher(ctx.obj["settings"]).fetch(url)
        page = parse_detail(markup, url)
        result = ScrapeResult(page=page, stamps=normalize_stamps(page.stamps))
    except StampScraperError as e:
        _fail(e)

    if output_format == "json":
        click.echo(result.model_dump_json(indent=2))
    else:
        format_page_detailed(page, result)


@cli.command()
@click.option(
    "--stations",
    "-s",
    "stations_path",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="JSON file with canonical stations",
)
@click.option(
    "--format",
    "-f",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def match(ctx: click.Context, stations_path: str, output_format: str) -> None:
    """Match every scraped page to a canonical station.

    Examples:
        ekistamp match --stations data/stations.json
        ekistamp match -s data/stations.json --format json
    """
    try:
        with console.status("[bold green]Loading stations..."):
            store = InMemoryStationStore.from_json(stations_path)
        results = [result for _job, result in _queue(ctx).iter_results()]
    except (OSError, ValueError, StampScraperError) as e:
        _fail(e)

    matches = match_results(StationMatcher(store), results)
    if output_format == "json":
        click.echo(format_match_json(matches))
    else:
        format_match_table(matches)


if __name__ == "__main__":
    cli()
