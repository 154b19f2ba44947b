"""Bid placement and seller decision commands."""

from __future__ import annotations

import click

from bidhouse.domain.errors import BiddingError

from .context import CLIContext, console, db_option, fail, resolve_context


@click.command()
@db_option
@click.argument("auction_id")
@click.option("--bidder", "bidder_id", required=True, help="Bidding user id.")
@click.option("--amount", required=True, help="Bid amount, e.g. 110 or 110.50.")
@click.pass_context
def bid(ctx: click.Context, db_path: str | None, auction_id: str, bidder_id: str, amount: str) -> None:
    """Place a bid on AUCTION_ID."""

    cli_context: CLIContext = resolve_context(ctx, db_path)
    try:
        result = cli_context.run(
            lambda service: service.place_bid(auction_id, bidder_id, amount)
        )
    except BiddingError as exc:
        fail(ctx, exc)
        return
    console.print(
        f"[green]Bid of ${result.bid.amount} accepted.[/green] "
        f"Next minimum: ${result.auction.minimum_bid}"
    )


@click.command()
@db_option
@click.argument("auction_id")
@click.option("--accept/--reject", "accepted", required=True)
@click.pass_context
def decide(ctx: click.Context, db_path: str | None, auction_id: str, accepted: bool) -> None:
    """Accept or reject the highest bid on an ended AUCTION_ID."""

    cli_context: CLIContext = resolve_context(ctx, db_path)
    try:
        result = cli_context.run(lambda service: service.decide(auction_id, accepted))
    except BiddingError as exc:
        fail(ctx, exc)
        return
    console.print(
        f"[green]Bid of ${result.current_highest_bid} {result.seller_decision}.[/green]"
    )
