"""Auction management CLI for Bidhouse."""

from __future__ import annotations

from datetime import datetime, timezone

import click
from rich.table import Table

from bidhouse.domain.errors import BiddingError
from bidhouse.services.auctions import AUCTION_STATUS_FILTERS

from .context import CLIContext, console, db_option, fail, resolve_context


def _money(value) -> str:
    return "-" if value is None else f"${value}"


@click.group()
@db_option
@click.pass_context
def auction(ctx: click.Context, db_path: str | None) -> None:
    """Create and inspect auctions."""

    resolve_context(ctx, db_path)


@auction.command("create")
@click.option("--seller", "seller_id", required=True, help="Seller user id.")
@click.option("--title", required=True)
@click.option("--description", default=None)
@click.option("--starting-price", required=True, help="Starting price, e.g. 100.")
@click.option("--increment", "bid_increment", required=True, help="Minimum raise.")
@click.option(
    "--start",
    "start_time",
    default=None,
    help="ISO-8601 start time (default: now).",
)
@click.option("--hours", "duration_hours", type=float, required=True)
@click.pass_context
def create_cmd(
    ctx: click.Context,
    seller_id: str,
    title: str,
    description: str | None,
    starting_price: str,
    bid_increment: str,
    start_time: str | None,
    duration_hours: float,
) -> None:
    """Create a new auction."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    start = start_time or datetime.now(timezone.utc).isoformat()
    try:
        created = cli_context.run(
            lambda service: service.create_auction(
                seller_id=seller_id,
                title=title,
                description=description,
                starting_price=starting_price,
                bid_increment=bid_increment,
                start_time=start,
                duration_hours=duration_hours,
            )
        )
    except BiddingError as exc:
        fail(ctx, exc)
        return
    console.print(f"[green]Created auction[/green] {created.id} ({created.state})")


@auction.command("list")
@click.option(
    "--status",
    "status_filter",
    type=click.Choice(AUCTION_STATUS_FILTERS),
    default="active",
    show_default=True,
)
@click.pass_context
def list_cmd(ctx: click.Context, status_filter: str) -> None:
    """List auctions, newest first."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    try:
        auctions = cli_context.run(lambda service: service.list_auctions(status_filter))
    except BiddingError as exc:
        fail(ctx, exc)
        return

    if not auctions:
        console.print("[yellow]No auctions found.[/yellow]")
        return

    table = Table(title="Auctions")
    table.add_column("Title", style="bold")
    table.add_column("State", no_wrap=True)
    table.add_column("Highest bid", justify="right")
    table.add_column("Ends")
    table.add_column("ID", overflow="fold")
    for item in auctions:
        table.add_row(
            item.title,
            item.state,
            _money(item.current_highest_bid),
            item.end_time.strftime("%Y-%m-%d %H:%M"),
            item.id,
        )
    console.print(table)


@auction.command("show")
@click.argument("auction_id")
@click.pass_context
def show_cmd(ctx: click.Context, auction_id: str) -> None:
    """Show one auction and its bids."""

    cli_context: CLIContext = ctx.obj["cli_context"]
    try:
        snapshot = cli_context.run(lambda service: service.snapshot(auction_id))
    except BiddingError as exc:
        fail(ctx, exc)
        return

    item = snapshot.auction
    console.print(f"[bold]{item.title}[/bold] ({item.state})")
    if item.description:
        console.print(item.description)
    console.print(f"Seller: {item.seller_id}")
    console.print(f"Highest bid: {_money(item.current_highest_bid)}")
    console.print(f"Minimum next bid: {_money(item.minimum_bid)}")
    console.print(f"Decision: {item.seller_decision}")

    if not snapshot.bids:
        console.print("[yellow]No bids yet.[/yellow]")
        return
    table = Table(title="Bids")
    table.add_column("Bidder")
    table.add_column("Amount", justify="right")
    table.add_column("Placed")
    for bid_item in snapshot.bids:
        table.add_row(
            bid_item.bidder_id,
            _money(bid_item.amount),
            bid_item.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)
