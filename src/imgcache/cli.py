"""Click CLI for imgcache — fetch, resize and inspect cached images."""

from __future__ import annotations

import asyncio
import datetime
import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from imgcache.config.hierarchy import load_config
from imgcache.errors.exceptions import ImgCacheError
from imgcache.images.manager import ImageCacheManager
from imgcache.types import DownloadProgress, FileInfo

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _parse_headers(values: tuple[str, ...]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected NAME:VALUE, got '{value}'", param_hint="--header")
        headers[name.strip()] = content.strip()
    return headers


def _manager(cache_dir: str | None) -> ImageCacheManager:
    return ImageCacheManager(config=load_config(cache_dir=cache_dir))


@click.group()
@click.version_option(package_name="imgcache")
def cli() -> None:
    """imgcache — cached remote images, resized on demand."""


@cli.command()
@click.argument("url")
@click.option("--key", type=str, default=None, help="Cache key (defaults to the URL).")
@click.option("-w", "--max-width", type=click.IntRange(min=1), default=None)
@click.option("-h", "--max-height", type=click.IntRange(min=1), default=None)
@click.option("-H", "--header", "headers", multiple=True, help="Request header NAME:VALUE.")
@click.option("--progress", is_flag=True, default=False, help="Show download progress.")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def get(
    url: str,
    key: str | None,
    max_width: int | None,
    max_height: int | None,
    headers: tuple[str, ...],
    progress: bool,
    cache_dir: str | None,
    verbose: int,
) -> None:
    """Fetch URL through the cache, resized to fit the given bounds."""
    _setup_logging(verbose)
    request_headers = _parse_headers(headers)
    manager = _manager(cache_dir)

    async def _run() -> FileInfo | None:
        last: FileInfo | None = None
        try:
            async for response in manager.get_image_file(
                url,
                key=key,
                headers=request_headers or None,
                with_progress=progress,
                max_width=max_width,
                max_height=max_height,
            ):
                if isinstance(response, DownloadProgress):
                    _print_progress(response)
                else:
                    last = response
        finally:
            await manager.close()
        return last

    try:
        result = asyncio.run(_run())
    except ImgCacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if result is None:
        error_console.print("[red]Error:[/red] no file was produced")
        sys.exit(1)

    console.print(str(result.file), soft_wrap=True)
    if verbose >= 1:
        _print_file_info(result)


@cli.command()
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
def stats(cache_dir: str | None) -> None:
    """Show cache statistics."""
    manager = _manager(cache_dir)
    try:
        cache_stats = manager.stats()
    finally:
        asyncio.run(manager.close())

    table = Table(title="Cache Statistics")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Directory", str(manager.store.directory))
    table.add_row("Entries", str(cache_stats.entries))
    table.add_row("Size", f"{cache_stats.size_mb:.2f} MB")
    console.print(table)


@cli.command()
@click.argument("key")
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
def remove(key: str, cache_dir: str | None) -> None:
    """Remove one cached file by key."""
    manager = _manager(cache_dir)

    async def _run() -> bool:
        try:
            return await manager.remove_file(key)
        finally:
            await manager.close()

    if asyncio.run(_run()):
        console.print(f"[green]Removed {key}[/green]")
    else:
        error_console.print(f"[yellow]Not cached:[/yellow] {key}")
        sys.exit(1)


@cli.command()
@click.option("--cache-dir", type=click.Path(file_okay=False), default=None)
@click.confirmation_option(prompt="Remove every cached file?")
def clear(cache_dir: str | None) -> None:
    """Empty the cache."""
    manager = _manager(cache_dir)

    async def _run() -> None:
        try:
            await manager.empty_cache()
        finally:
            await manager.close()

    asyncio.run(_run())
    console.print("[green]Cache cleared.[/green]")


def _print_progress(progress: DownloadProgress) -> None:
    if progress.total_size:
        error_console.print(
            f"{progress.downloaded}/{progress.total_size} bytes ({progress.progress:.0%})"
        )
    else:
        error_console.print(f"{progress.downloaded} bytes")


def _print_file_info(info: FileInfo) -> None:
    valid_till = datetime.datetime.fromtimestamp(info.valid_till).isoformat(timespec="seconds")
    table = Table(title="File")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Path", str(info.file))
    table.add_row("Source", info.source.value)
    table.add_row("Valid till", valid_till)
    table.add_row("Original URL", info.original_url)
    console.print(table)


if __name__ == "__main__":
    cli()
