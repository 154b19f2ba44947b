"""Time-based auction lifecycle.

``settle`` is the only place that knows how wall-clock time moves an auction
from ``pending`` to ``active`` to ``ended``. It is pure: callers persist the
result themselves through a conditional state update.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from .models import Auction, AuctionState


def initial_state(start_time: datetime, now: datetime) -> AuctionState:
    """State for a newly created auction."""
    return AuctionState.ACTIVE if start_time <= now else AuctionState.PENDING


def settled_state(auction: Auction, now: datetime) -> AuctionState:
    state = auction.state
    if state is AuctionState.PENDING and now >= auction.start_time:
        state = AuctionState.ACTIVE
    if state is AuctionState.ACTIVE and now >= auction.end_time:
        state = AuctionState.ENDED
    return state


def settle(auction: Auction, now: datetime) -> Auction:
    """Return ``auction`` with its state corrected for ``now``.

    A pending auction whose whole window has elapsed goes straight to
    ``ended`` so that settling twice at the same instant is a no-op.
    """
    state = settled_state(auction, now)
    if state is auction.state:
        return auction
    return replace(auction, state=state)


def is_forward(from_state: AuctionState, to_state: AuctionState) -> bool:
    return to_state.rank > from_state.rank


__all__ = ["initial_state", "is_forward", "settle", "settled_state"]
