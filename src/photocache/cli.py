"""Click CLI for photocache: thumbnails, storage compression and cache upkeep."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from photocache.cache.stats import CacheStats
from photocache.config.loader import load_settings_yaml
from photocache.config.schema import CacheSettings
from photocache.core import PhotoCacheService
from photocache.errors.exceptions import PhotoCacheError
from photocache.imaging.compress import encode_jpeg, encode_png
from photocache.imaging.storage import prepare_for_storage
from photocache.utils.image import detect_format, format_file_size, load_image

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, default_level: str = "WARNING") -> None:
    """Configure logging from -v flags, falling back to the configured level."""
    level = logging.getLevelName(default_level.upper())
    if not isinstance(level, int):
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


def _load_settings(config_path: str | None, **overrides) -> CacheSettings:
    if config_path:
        settings = load_settings_yaml(config_path)
        updates = {k: v for k, v in overrides.items() if v is not None}
        return CacheSettings.model_validate({**settings.model_dump(), **updates})
    return CacheSettings.load(**overrides)


def _fail(message: str) -> NoReturn:
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def _read_input(path: str) -> bytes:
    try:
        return load_image(path)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))


config_option = click.option(
    "--config", "config_path", type=click.Path(exists=True, dir_okay=False),
    help="Settings YAML (overrides the config hierarchy).",
)
disk_dir_option = click.option(
    "--disk-dir", type=click.Path(file_okay=False), default=None, help="Disk cache directory."
)
verbose_option = click.option(
    "-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)."
)


@click.group()
@click.version_option(package_name="photocache")
def cli() -> None:
    """photocache: two-tier image cache and downsampler for progress photos."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), required=True,
              help="Where to write the thumbnail.")
@click.option("--width", type=float, required=True, help="Width in points.")
@click.option("--height", type=float, required=True, help="Height in points.")
@click.option("--scale", type=float, default=None, help="Display scale (default from config).")
@click.option("--id", "cache_id", type=str, default=None,
              help="Entity identifier used as the cache key base.")
@config_option
@disk_dir_option
@verbose_option
def thumbnail(
    input_path: str,
    output: str,
    width: float,
    height: float,
    scale: float | None,
    cache_id: str | None,
    config_path: str | None,
    disk_dir: str | None,
    verbose: int,
) -> None:
    """Downsample a photo through the cache and save it."""
    settings = _load_settings(config_path, disk_dir=disk_dir)
    _setup_logging(verbose, settings.log_level)
    data = _read_input(input_path)

    async def _run() -> None:
        with PhotoCacheService(settings) as service:
            image = await service.thumbnail(data, width, height, cache_id=cache_id, scale=scale)
            out = Path(output)
            encoded = (
                encode_png(image)
                if out.suffix.lower() == ".png"
                else encode_jpeg(image, settings.thumbnail_quality)
            )
            out.write_bytes(encoded)
            console.print(
                f"[green]Written to {out}[/green] "
                f"({image.width}x{image.height}, {format_file_size(len(encoded))})"
            )
            if verbose >= 1:
                _print_stats(await service.stats())

    try:
        asyncio.run(_run())
    except PhotoCacheError as e:
        _fail(e.message)


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), required=True,
              help="Where to write the compressed JPEG.")
@click.option("--max-bytes", type=int, default=None, help="Byte budget (default 2,000,000).")
@click.option("--max-dimension", type=int, default=None, help="Longest side in pixels.")
@config_option
@verbose_option
def compress(
    input_path: str,
    output: str,
    max_bytes: int | None,
    max_dimension: int | None,
    config_path: str | None,
    verbose: int,
) -> None:
    """Compress a captured photo for storage."""
    settings = _load_settings(
        config_path, max_photo_bytes=max_bytes, max_photo_dimension=max_dimension
    )
    _setup_logging(verbose, settings.log_level)
    data = _read_input(input_path)
    fmt = detect_format(data)

    try:
        result = prepare_for_storage(
            data,
            max_bytes=settings.max_photo_bytes,
            max_dimension=settings.max_photo_dimension,
            min_quality=settings.min_quality,
            max_quality=settings.max_quality,
            iterations=settings.search_iterations,
        )
    except PhotoCacheError as e:
        _fail(e.message)

    Path(output).write_bytes(result.data)
    colour = "green" if result.within_budget else "yellow"
    console.print(
        f"[{colour}]Written to {output}[/{colour}] "
        f"{format_file_size(len(data))} → {format_file_size(result.size_bytes)} "
        f"at quality {result.quality:.2f}"
    )
    if not result.within_budget:
        error_console.print(
            f"[yellow]Still over budget of {format_file_size(settings.max_photo_bytes)} "
            f"at the lowest quality.[/yellow]"
        )
    if verbose >= 1:
        error_console.print(
            f"Source format: {fmt.value if fmt else 'unknown'}, "
            f"encode attempts: {result.attempts}"
        )


def _print_stats(stats: CacheStats) -> None:
    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    mem = stats.memory
    table.add_row("Memory entries", f"{mem.entries} / {mem.count_limit}")
    table.add_row(
        "Memory cost (MB)", f"{mem.cost_bytes / (1024 * 1024):.1f} / {mem.cost_limit_mb:.0f}"
    )
    table.add_row("Disk entries", str(stats.disk_entries))
    table.add_row(
        "Disk size (MB)",
        f"{stats.disk_size_mb:.1f} / {stats.disk_budget_bytes / (1024 * 1024):.0f}",
    )
    table.add_row("Memory hits", str(stats.memory_hits))
    table.add_row("Disk hits", str(stats.disk_hits))
    table.add_row("Downsamples", str(stats.downsamples))
    table.add_row("Decode failures", str(stats.decode_failures))
    table.add_row("Hit rate", f"{stats.hit_rate:.1%}")

    console.print(table)


@cli.group()
def cache() -> None:
    """Cache management commands."""


@cache.command("stats")
@config_option
@disk_dir_option
@verbose_option
def cache_stats(config_path: str | None, disk_dir: str | None, verbose: int) -> None:
    """Show cache statistics."""
    settings = _load_settings(config_path, disk_dir=disk_dir)
    _setup_logging(verbose, settings.log_level)

    async def _run() -> CacheStats:
        with PhotoCacheService(settings) as service:
            return await service.stats()

    try:
        stats = asyncio.run(_run())
    except PhotoCacheError as e:
        _fail(e.message)
    _print_stats(stats)


@cache.command("clear")
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
@config_option
@disk_dir_option
def cache_clear(config_path: str | None, disk_dir: str | None) -> None:
    """Clear both cache tiers."""
    settings = _load_settings(config_path, disk_dir=disk_dir)

    async def _run() -> None:
        with PhotoCacheService(settings) as service:
            await service.clear_all()

    try:
        asyncio.run(_run())
    except PhotoCacheError as e:
        _fail(e.message)
    console.print("[green]Cache cleared.[/green]")


@cache.command("invalidate")
@click.argument("entity_ids", nargs=-1, required=True)
@click.option("--scale", type=float, default=None, help="Display scale the thumbnails used.")
@config_option
@disk_dir_option
@verbose_option
def cache_invalidate(
    entity_ids: tuple[str, ...],
    scale: float | None,
    config_path: str | None,
    disk_dir: str | None,
    verbose: int,
) -> None:
    """Remove cached thumbnails of the given photo ids."""
    settings = _load_settings(config_path, disk_dir=disk_dir)
    _setup_logging(verbose, settings.log_level)

    with PhotoCacheService(settings) as service:
        future = service.invalidate(entity_ids, scale=scale)
        removed = future.result() if future is not None else 0

    console.print(f"[green]Invalidated {len(entity_ids)} ids ({removed} disk entries).[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
