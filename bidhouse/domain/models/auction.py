"""Auction and bid domain models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from ..money import decimal_or_none


class AuctionState(str, Enum):
    """Lifecycle states of an auction. Transitions only move forward."""

    PENDING = "pending"
    ACTIVE = "active"
    ENDED = "ended"

    @classmethod
    def from_string(cls, value: str | None) -> "AuctionState":
        if not value:
            return cls.PENDING
        return cls(value.lower().strip())

    @property
    def rank(self) -> int:
        return _STATE_ORDER.index(self)


_STATE_ORDER = (AuctionState.PENDING, AuctionState.ACTIVE, AuctionState.ENDED)


class SellerDecision(str, Enum):
    """Tri-state seller verdict on the highest bid of an ended auction."""

    UNDECIDED = "undecided"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @classmethod
    def from_string(cls, value: str | None) -> "SellerDecision":
        if not value:
            return cls.UNDECIDED
        return cls(value.lower().strip())

    @classmethod
    def from_flag(cls, accepted: bool) -> "SellerDecision":
        return cls.ACCEPTED if accepted else cls.REJECTED

    @property
    def accepted(self) -> bool | None:
        """Boolean view: True/False once decided, None while undecided."""
        if self is SellerDecision.UNDECIDED:
            return None
        return self is SellerDecision.ACCEPTED


def parse_datetime(value: object) -> datetime | None:
    """Parse stored ISO-8601 text into an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def compute_end_time(start_time: datetime, duration_hours: float) -> datetime:
    return start_time + timedelta(hours=duration_hours)


@dataclass(frozen=True)
class Auction:
    """Domain model representing an auction, the aggregate root.

    Instances are immutable; the lifecycle engine and the store return
    updated copies rather than mutating in place.
    """

    id: str
    seller_id: str
    title: str
    starting_price: Decimal
    bid_increment: Decimal
    start_time: datetime
    end_time: datetime
    duration_hours: float
    state: AuctionState = AuctionState.PENDING
    description: str | None = None
    current_highest_bid: Decimal | None = None
    current_highest_bidder_id: str | None = None
    seller_decision: SellerDecision = SellerDecision.UNDECIDED
    created_at: datetime | None = None

    @property
    def has_bids(self) -> bool:
        return self.current_highest_bid is not None

    @property
    def is_active(self) -> bool:
        return self.state is AuctionState.ACTIVE

    @property
    def is_ended(self) -> bool:
        return self.state is AuctionState.ENDED

    @property
    def is_decided(self) -> bool:
        return self.seller_decision is not SellerDecision.UNDECIDED

    @property
    def minimum_bid(self) -> Decimal:
        """Smallest amount the next bid may carry."""
        if self.current_highest_bid is None:
            return self.starting_price
        return self.current_highest_bid + self.bid_increment

    @classmethod
    def from_dict(cls, data: dict) -> "Auction":
        """Create an Auction from a dictionary (e.g., from database row)."""
        start_time = parse_datetime(data.get("start_time"))
        end_time = parse_datetime(data.get("end_time"))
        if start_time is None or end_time is None:
            raise ValueError(f"Auction row {data.get('id')!r} has no valid window")
        return cls(
            id=str(data["id"]),
            seller_id=str(data["seller_id"]),
            title=str(data.get("title") or ""),
            description=data.get("description"),
            starting_price=decimal_or_none(data.get("starting_price")) or Decimal("0"),
            bid_increment=decimal_or_none(data.get("bid_increment")) or Decimal("0"),
            start_time=start_time,
            end_time=end_time,
            duration_hours=float(data.get("duration_hours") or 0),
            state=AuctionState.from_string(data.get("state")),
            current_highest_bid=decimal_or_none(data.get("current_highest_bid")),
            current_highest_bidder_id=data.get("current_highest_bidder_id"),
            seller_decision=SellerDecision.from_string(data.get("seller_decision")),
            created_at=parse_datetime(data.get("created_at")),
        )


@dataclass(frozen=True)
class Bid:
    """An admitted bid. Bids are append-only and never change."""

    id: str
    auction_id: str
    bidder_id: str
    amount: Decimal
    created_at: datetime

    @classmethod
    def from_dict(cls, data: dict) -> "Bid":
        created_at = parse_datetime(data.get("created_at"))
        if created_at is None:
            raise ValueError(f"Bid row {data.get('id')!r} has no creation time")
        return cls(
            id=str(data["id"]),
            auction_id=str(data["auction_id"]),
            bidder_id=str(data["bidder_id"]),
            amount=Decimal(str(data["amount"])),
            created_at=created_at,
        )


__all__ = [
    "Auction",
    "AuctionState",
    "Bid",
    "SellerDecision",
    "compute_end_time",
    "parse_datetime",
]
