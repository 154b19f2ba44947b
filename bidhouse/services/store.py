"""The narrow storage interface the bidding core depends on.

:class:`bidhouse.infrastructure.db.store.SqliteAuctionStore` is the shipped
implementation. Methods are synchronous; services call them from worker
threads. Infrastructure failures surface as ``StoreUnavailableError``.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Protocol

from bidhouse.domain.models import Auction, AuctionState, Bid, Notification


class AuctionStore(Protocol):
    def ensure_schema(self) -> None: ...

    def create_auction(self, auction: Auction) -> Auction: ...

    def get_auction(self, auction_id: str) -> Auction:
        """Return the auction or raise ``AuctionNotFoundError``."""
        ...

    def list_auctions(self, state: AuctionState | None = None) -> list[Auction]: ...

    def update_auction_state(
        self, auction_id: str, from_state: AuctionState, to_state: AuctionState
    ) -> bool:
        """Conditional transition; False when the stored state is not ``from_state``."""
        ...

    def admit_bid_atomic(
        self,
        auction_id: str,
        bidder_id: str,
        amount: Decimal,
        expected_prior_highest: Decimal | None,
        *,
        created_at: datetime | None = None,
    ) -> Bid:
        """Insert the bid and raise the highest bid, or raise ``ConflictError``."""
        ...

    def list_bids(self, auction_id: str) -> list[Bid]: ...

    def record_decision(self, auction_id: str, accepted: bool) -> Auction: ...

    def insert_notification(self, notification: Notification) -> bool: ...

    def list_notifications(
        self, user_id: str, unread_only: bool = False
    ) -> list[Notification]: ...

    def mark_read(self, ids: Iterable[str]) -> int: ...


__all__ = ["AuctionStore"]
