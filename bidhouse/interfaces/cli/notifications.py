"""Notification inbox commands."""

from __future__ import annotations

import click
from rich.table import Table

from bidhouse.domain.errors import BiddingError

from .context import CLIContext, console, db_option, fail, resolve_context


@click.group()
@db_option
@click.pass_context
def notifications(ctx: click.Context, db_path: str | None) -> None:
    """Read a user's notifications."""

    resolve_context(ctx, db_path)


@notifications.command("list")
@click.option("--user", "user_id", required=True)
@click.option("--unread", "unread_only", is_flag=True, help="Only unread ones.")
@click.pass_context
def list_cmd(ctx: click.Context, user_id: str, unread_only: bool) -> None:
    """List notifications, newest first."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    try:
        items = cli_context.run(
            lambda service: service.list_notifications(user_id, unread_only)
        )
    except BiddingError as exc:
        fail(ctx, exc)
        return

    if not items:
        console.print("[yellow]No notifications.[/yellow]")
        return
    table = Table(title=f"Notifications for {user_id}")
    table.add_column("", width=1)
    table.add_column("Type", no_wrap=True)
    table.add_column("Message", overflow="fold")
    table.add_column("ID", overflow="fold")
    for item in items:
        table.add_row("" if item.read else "*", item.type, item.message, item.id)
    console.print(table)


@notifications.command("read")
@click.argument("ids", nargs=-1, required=True)
@click.pass_context
def read_cmd(ctx: click.Context, ids: tuple[str, ...]) -> None:
    """Mark notifications IDS as read."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    try:
        updated = cli_context.run(
            lambda service: service.mark_notifications_read(list(ids))
        )
    except BiddingError as exc:
        fail(ctx, exc)
        return
    console.print(f"[green]Marked {updated} notification(s) read.[/green]")
