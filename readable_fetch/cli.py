"""
Command-line interface for readable-fetch.

Uses Typer to provide a thin CLI over ArticleService. Supports loading
.env files for service API keys.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console

from .config import load_config
from .core.errors import ValidationError
from .core.types import SOURCE_FETCH_FAST
from .core.urls import cache_key, extract_article_url, parse_request_url
from .runner import ArticleService
from .utils.logging import setup_logging

try:
    from dotenv import load_dotenv
except Exception:  # noqa: BLE001
    load_dotenv = None

app = typer.Typer(add_completion=False)
console = Console()


@app.command()
def get(
    url: str = typer.Argument(..., help="Article URL (or text containing one)."),
    source: str = typer.Option(
        SOURCE_FETCH_FAST,
        "--source",
        "-s",
        help="Source kind: fetch-fast, fetch-slow, wayback or jina.ai.",
    ),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
    as_json: bool = typer.Option(False, "--json", help="Print the full response envelope as JSON."),
    log_level: str | None = typer.Option(None, "--log-level", help="Logging level."),
):
    """Fetch an article and print it.

    Exits with status 1 when the response is an error envelope.
    """
    if load_dotenv is not None:
        load_dotenv()

    cfg = load_config(str(config) if config else None)
    if log_level:
        cfg.logging.level = log_level
    setup_logging(cfg.logging)

    response = asyncio.run(ArticleService(cfg).get_article(url, source))
    if as_json:
        console.print_json(json.dumps(response.body, ensure_ascii=False))
    elif response.ok:
        article = response.body["article"]
        console.print(f"[bold]{article['title']}[/bold]")
        console.print(f"{article['siteName']} - {article['length']} chars - {response.body['cacheURL']}")
        console.print()
        console.print(article["textContent"])
    else:
        console.print(f"[red]{response.body['type']}[/red] ({response.status_code}): {response.body['error']}")

    if not response.ok:
        raise typer.Exit(code=1)


@app.command()
def normalize(
    url: str = typer.Argument(..., help="Article URL (or text containing one)."),
    source: str = typer.Option(SOURCE_FETCH_FAST, "--source", "-s"),
):
    """Print the canonical URL and the cache key for url."""
    try:
        article_url = parse_request_url(url)
    except ValidationError as exc:
        console.print(f"[red]{exc.type}[/red]: {exc.message}")
        raise typer.Exit(code=1)
    console.print(extract_article_url(article_url))
    console.print(cache_key(source, article_url))


@app.command()
def meta(
    url: str = typer.Argument(..., help="Article URL."),
    source: str = typer.Option(SOURCE_FETCH_FAST, "--source", "-s"),
    config: Path | None = typer.Option(None, "--config", "-c", exists=True),
):
    """Print the cached metadata record for url, if any."""
    cfg = load_config(str(config) if config else None)
    try:
        key = cache_key(source, parse_request_url(url))
    except ValidationError as exc:
        console.print(f"[red]{exc.type}[/red]: {exc.message}")
        raise typer.Exit(code=1)

    metadata = ArticleService(cfg).cache.read_metadata(key)
    if metadata is None:
        console.print(f"No cached metadata for {key}")
        raise typer.Exit(code=1)
    console.print_json(metadata.model_dump_json(by_alias=True))


if __name__ == "__main__":
    app()
