"""Business rules for bids and seller decisions.

Both checks take an already settled auction and raise the matching
``BiddingError`` subclass; they never touch storage.
"""

from __future__ import annotations

from decimal import Decimal

from .errors import (AlreadyDecidedError, AuctionNotActiveError,
                     AuctionNotEndedError, BidTooLowError, NoBidsError,
                     SellerCannotBidError)
from .models import Auction, AuctionState


def check_bid(auction: Auction, bidder_id: str, amount: Decimal) -> Decimal:
    """Validate a bid against the auction and return the minimum that applied.

    A bid exactly equal to the minimum is admissible.
    """
    if auction.state is not AuctionState.ACTIVE:
        raise AuctionNotActiveError(auction.id, auction.state.value)
    if bidder_id == auction.seller_id:
        raise SellerCannotBidError()
    minimum = auction.minimum_bid
    if amount < minimum:
        raise BidTooLowError(amount, minimum)
    return minimum


def check_decision(auction: Auction) -> None:
    if auction.state is not AuctionState.ENDED:
        raise AuctionNotEndedError(auction.id, auction.state.value)
    if not auction.has_bids:
        raise NoBidsError()
    if auction.is_decided:
        raise AlreadyDecidedError(auction.seller_decision.value)


__all__ = ["check_bid", "check_decision"]
