"""Shared helpers for composing CLI command contexts.

Each command builds an :class:`AuctionService` on the configured SQLite
database, runs one coroutine against it and shuts it down again, which
flushes queued notifications before the process exits.
"""

from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, ContextManager, TypeVar

import click
from rich.console import Console

from bidhouse.app.config import get_bidding_settings
from bidhouse.domain.errors import BiddingError
from bidhouse.infrastructure.db import SqliteAuctionStore, get_connection
from bidhouse.services import AuctionService

T = TypeVar("T")

console = Console()


@dataclass(frozen=True)
class CLIContext:
    """Container for CLI dependencies and configuration paths."""

    db_path: Path
    connection_factory: Callable[[], ContextManager[sqlite3.Connection]]

    def build_service(self) -> AuctionService:
        settings = get_bidding_settings()
        return AuctionService(
            SqliteAuctionStore(self.connection_factory),
            max_conflict_retries=settings.max_conflict_retries,
            notification_max_attempts=settings.notification_max_attempts,
            notification_backoff_seconds=settings.notification_retry_backoff_seconds,
        )

    def run(self, fn: Callable[[AuctionService], Awaitable[T]]) -> T:
        """Run ``fn`` against a started service inside a fresh event loop."""

        async def runner() -> T:
            service = self.build_service()
            await service.start()
            try:
                return await fn(service)
            finally:
                await service.aclose()

        return asyncio.run(runner())


def build_cli_context(db_path: str | Path | None = None) -> CLIContext:
    """Build the CLI context with the resolved database path."""

    resolved_db_path = (
        Path(db_path).expanduser()
        if db_path is not None
        else get_bidding_settings().db_path
    )

    def connection_factory() -> ContextManager[sqlite3.Connection]:
        return get_connection(resolved_db_path)

    return CLIContext(db_path=resolved_db_path, connection_factory=connection_factory)


def resolve_context(ctx: click.Context, db_path: str | None) -> CLIContext:
    ctx.ensure_object(dict)
    cli_context = build_cli_context(db_path)
    ctx.obj["cli_context"] = cli_context
    return cli_context


def fail(ctx: click.Context, exc: BiddingError) -> None:
    """Print a bidding error and exit with status 1."""

    console.print(f"[red]{exc}[/red] [dim]({exc.kind})[/dim]")
    ctx.exit(1)


db_option = click.option(
    "--db",
    "db_path",
    default=None,
    help="Path to the SQLite database (defaults to the configured path).",
)
