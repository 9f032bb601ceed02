import asyncio
import json
import logging
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

import typer

from config import settings
from core import marketplace, reddit
from core.errors import ScraperError
from core.transport import default_transport

log = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    help="Marketplace listing and Reddit thread scraper",
)

_file_handler: RotatingFileHandler | None = None


def configure_logging() -> None:
    global _file_handler

    log_dir = settings.log_dir
    log_dir.mkdir(parents=True, exist_ok=True)

    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(level=log_level, format=log_format)

    file_handler = RotatingFileHandler(
        log_dir / "marketplace-reddit-watcher.log",
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(log_format))
    file_handler.setLevel(log_level)

    root = logging.getLogger()
    # one rotating file handler per process, replaced on reconfiguration
    if _file_handler is not None:
        root.removeHandler(_file_handler)
        _file_handler.close()
    root.addHandler(file_handler)
    _file_handler = file_handler


def _to_jsonable(value: Any) -> Any:
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


def _run(coro) -> None:
    async def runner():
        try:
            return await coro
        finally:
            await default_transport.aclose()

    try:
        result = asyncio.run(runner())
    except ScraperError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    typer.echo(json.dumps(_to_jsonable(result), indent=2, ensure_ascii=False))


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL"),
):
    if log_level:
        settings.log_level = log_level
    configure_logging()


@app.command("search")
def search_command(
    query: str = typer.Argument(..., help="Search keywords"),
    location: Optional[str] = typer.Option(None, "--location", "-l"),
    min_price: Optional[float] = typer.Option(None, "--min-price", min=0),
    max_price: Optional[float] = typer.Option(None, "--max-price", min=0),
    radius: Optional[str] = typer.Option(None, "--radius", help="e.g. 10mi"),
    limit: int = typer.Option(20, "--limit", "-n", min=1),
):
    """Search marketplace listings."""
    _run(
        marketplace.search(
            query,
            location=location,
            min_price=min_price,
            max_price=max_price,
            radius=radius,
            limit=limit,
        )
    )


@app.command("listing")
def listing_command(listing_id: str = typer.Argument(...)):
    """Fetch one marketplace listing with full details."""
    _run(marketplace.get_listing_details(listing_id))


@app.command("categories")
def categories_command(location: Optional[str] = typer.Option(None, "--location", "-l")):
    """List marketplace categories."""
    _run(marketplace.get_categories(location))


@app.command("new-listings")
def new_listings_command(
    query: str = typer.Argument(...),
    since_hours: float = typer.Option(1, "--since-hours", min=0),
    limit: int = typer.Option(20, "--limit", "-n", min=1),
):
    """Listings posted within the last few hours, newest first."""
    _run(marketplace.get_new_listings(query, since_hours, limit))


@app.command("reddit-search")
def reddit_search_command(
    query: str = typer.Argument(...),
    subreddit: str = typer.Option("all", "--subreddit", "-s"),
    sort: str = typer.Option("relevance", "--sort"),
    time: str = typer.Option("week", "--time", "-t"),
    limit: int = typer.Option(25, "--limit", "-n", min=1),
):
    """Search Reddit posts."""
    _run(reddit.search_posts(query, scope=subreddit, sort=sort, time=time, limit=limit))


@app.command("trending")
def trending_command(
    country: str = typer.Option("US", "--country", "-c"),
    limit: int = typer.Option(25, "--limit", "-n", min=1),
):
    """Ranked posts from r/popular."""
    _run(reddit.get_trending(country, limit))


@app.command("subreddit-top")
def subreddit_top_command(
    subreddit: str = typer.Argument(...),
    time: str = typer.Option("day", "--time", "-t"),
    limit: int = typer.Option(25, "--limit", "-n", min=1),
):
    """Top posts of a subreddit."""
    _run(reddit.get_subreddit_top(subreddit, time, limit))


@app.command("thread")
def thread_command(
    thread_id: str = typer.Argument(..., help="Post id, with or without t3_ prefix"),
    sort: str = typer.Option("best", "--sort"),
):
    """A post with its flattened comment tree."""
    _run(reddit.get_thread(thread_id, sort))


if __name__ == "__main__":
    app()
