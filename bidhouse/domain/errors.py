"""Error taxonomy shared by the domain, the store and the services.

Every error carries a stable ``kind`` string. The HTTP layer maps kinds to
status codes and the CLI prints them, so callers never need to match on
message text.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class BiddingError(Exception):
    """Base class for all errors raised by the bidding core."""

    kind = "bidding_error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return cls.kind.replace("_", " ")

    @property
    def details(self) -> dict[str, Any]:
        """Extra structured fields exposed to API clients."""
        return {}


class AuctionNotFoundError(BiddingError):
    kind = "not_found"

    def __init__(self, auction_id: str) -> None:
        self.auction_id = auction_id
        super().__init__(f"Auction '{auction_id}' not found")


class ValidationError(BiddingError):
    """Missing or malformed input, such as a non-positive amount."""

    kind = "validation"


class AdmissionError(BiddingError):
    """A business rule rejected a bid."""


class AuctionNotActiveError(AdmissionError):
    kind = "auction_not_active"

    def __init__(self, auction_id: str, state: str) -> None:
        self.auction_id = auction_id
        self.state = state
        super().__init__(f"Auction is not active (state: {state})")

    @property
    def details(self) -> dict[str, Any]:
        return {"state": self.state}


class SellerCannotBidError(AdmissionError):
    kind = "seller_cannot_bid"

    def __init__(self) -> None:
        super().__init__("Sellers cannot bid on their own auctions")


class BidTooLowError(AdmissionError):
    kind = "bid_too_low"

    def __init__(self, amount: Decimal, minimum_bid: Decimal) -> None:
        self.amount = amount
        self.minimum_bid = minimum_bid
        super().__init__(f"Bid must be at least ${minimum_bid}")

    @property
    def details(self) -> dict[str, Any]:
        return {"minimum_bid": str(self.minimum_bid)}


class DecisionError(BiddingError):
    """A business rule rejected a seller decision."""


class AuctionNotEndedError(DecisionError):
    kind = "auction_not_ended"

    def __init__(self, auction_id: str, state: str) -> None:
        self.auction_id = auction_id
        self.state = state
        super().__init__(f"Auction has not ended yet (state: {state})")

    @property
    def details(self) -> dict[str, Any]:
        return {"state": self.state}


class NoBidsError(DecisionError):
    kind = "no_bids"

    def __init__(self) -> None:
        super().__init__("Auction ended without bids; there is nothing to decide")


class AlreadyDecidedError(DecisionError):
    kind = "already_decided"

    def __init__(self, decision: str) -> None:
        self.decision = decision
        super().__init__(f"Seller decision already recorded ({decision})")

    @property
    def details(self) -> dict[str, Any]:
        return {"decision": self.decision}


class ConflictError(BiddingError):
    """Lost the per-auction race; retry with freshly loaded state."""

    kind = "conflict"


class StoreUnavailableError(BiddingError):
    """Transient infrastructure failure; the operation did not happen."""

    kind = "store_unavailable"


class NotificationDeliveryFailedError(BiddingError):
    """A notification could not be stored after all retries. Never surfaced."""

    kind = "notification_delivery_failed"


__all__ = [
    "AdmissionError",
    "AlreadyDecidedError",
    "AuctionNotActiveError",
    "AuctionNotEndedError",
    "AuctionNotFoundError",
    "BidTooLowError",
    "BiddingError",
    "ConflictError",
    "DecisionError",
    "NoBidsError",
    "NotificationDeliveryFailedError",
    "SellerCannotBidError",
    "StoreUnavailableError",
    "ValidationError",
]
