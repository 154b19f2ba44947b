"""
Centralized DTOs returned by the Bidhouse services.

Amounts are ``Decimal`` and serialise to JSON strings (``"110.00"``) so no
precision is lost on the wire.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from bidhouse.domain.models import Auction, Bid, Notification


# --- Auction DTOs ---
class AuctionDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    seller_id: str
    title: str
    description: str | None = None
    starting_price: Decimal
    bid_increment: Decimal
    start_time: datetime
    end_time: datetime
    duration_hours: float
    state: str
    current_highest_bid: Decimal | None = None
    current_highest_bidder_id: str | None = None
    seller_decision: str = "undecided"
    accepted: bool | None = None
    minimum_bid: Decimal
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, auction: Auction) -> "AuctionDTO":
        return cls(
            id=auction.id,
            seller_id=auction.seller_id,
            title=auction.title,
            description=auction.description,
            starting_price=auction.starting_price,
            bid_increment=auction.bid_increment,
            start_time=auction.start_time,
            end_time=auction.end_time,
            duration_hours=auction.duration_hours,
            state=auction.state.value,
            current_highest_bid=auction.current_highest_bid,
            current_highest_bidder_id=auction.current_highest_bidder_id,
            seller_decision=auction.seller_decision.value,
            accepted=auction.seller_decision.accepted,
            minimum_bid=auction.minimum_bid,
            created_at=auction.created_at,
        )


# --- Bid DTOs ---
class BidDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    auction_id: str
    bidder_id: str
    amount: Decimal
    created_at: datetime

    @classmethod
    def from_domain(cls, bid: Bid) -> "BidDTO":
        return cls(
            id=bid.id,
            auction_id=bid.auction_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            created_at=bid.created_at,
        )


class BidResultDTO(BaseModel):
    """Outcome of an admitted bid: the bid and the authoritative auction."""

    model_config = ConfigDict(extra="forbid")

    bid: BidDTO
    auction: AuctionDTO


# --- Notification DTOs ---
class NotificationDTO(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    user_id: str
    auction_id: str
    type: str
    message: str
    read: bool = False
    created_at: datetime

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationDTO":
        return cls(
            id=notification.id,
            user_id=notification.user_id,
            auction_id=notification.auction_id,
            type=notification.type.value,
            message=notification.message,
            read=notification.read,
            created_at=notification.created_at,
        )


__all__ = ["AuctionDTO", "BidDTO", "BidResultDTO", "NotificationDTO"]
