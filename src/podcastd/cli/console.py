"""Shared console utilities for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TypeVar

import typer
from rich.console import Console
from rich.table import Table

from podcastd.config import ConfigError, PodcastdConfig, load_config
from podcastd.store import EntityStore

_T = TypeVar("_T")

# Shared console instance for all CLI commands
console = Console()


def error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[red]{msg}[/red]")


def warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[yellow]{msg}[/yellow]")


def success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[green]{msg}[/green]")


def dim(msg: str) -> None:
    """Print a dimmed message."""
    console.print(f"[dim]{msg}[/dim]")


def create_table(
    title: str,
    columns: list[tuple[str, str | dict]],
) -> Table:
    """Create a styled table with consistent formatting.

    Args:
        title: Table title.
        columns: List of (name, style) or (name, kwargs_dict) tuples.
    """
    table = Table(title=title)
    for name, style_or_kwargs in columns:
        if isinstance(style_or_kwargs, dict):
            table.add_column(name, **style_or_kwargs)
        else:
            table.add_column(name, style=style_or_kwargs)
    return table


def load_config_or_exit(path: Path | None = None) -> PodcastdConfig:
    try:
        return load_config(path)
    except (FileNotFoundError, ConfigError) as e:
        error(str(e))
        raise typer.Exit(1) from None


@asynccontextmanager
async def open_cli_store(config: PodcastdConfig) -> AsyncIterator[EntityStore]:
    from podcastd.runtime import open_store

    store = await open_store(config)
    try:
        yield store
    finally:
        await store.close()


def run_with_store(
    config: PodcastdConfig, fn: Callable[[EntityStore], Awaitable[_T]]
) -> _T:
    """Open the configured store, run ``fn`` against it, close it."""

    async def runner() -> _T:
        async with open_cli_store(config) as store:
            return await fn(store)

    return asyncio.run(runner())
