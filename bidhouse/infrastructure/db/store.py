"""SQLite implementation of the auction store.

Every public method opens its own connection through the connection factory,
so the store is safe to call from worker threads (``asyncio.to_thread``).
Writers run inside ``BEGIN IMMEDIATE`` transactions; any ``sqlite3`` failure
is rolled back and surfaced as :class:`StoreUnavailableError`.
"""

from __future__ import annotations

import sqlite3
import threading
import uuid
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Callable, Iterable, Iterator

from bidhouse.domain.errors import (AuctionNotFoundError, ConflictError,
                                    StoreUnavailableError)
from bidhouse.domain.models import (Auction, AuctionState, Bid, Notification,
                                    SellerDecision)
from bidhouse.domain.money import CENT
from bidhouse.infrastructure.observability import get_logger

from .connection import DatabaseError, get_connection, to_iso, transaction
from .repositories import (AuctionRepository, BidRepository,
                           NotificationRepository)
from .schema import ensure_schema

ConnectionFactory = Callable[[], AbstractContextManager[sqlite3.Connection]]

logger = get_logger(__name__)


def amount_to_text(amount: Decimal | None) -> str | None:
    """Canonical stored form of an amount (two fractional digits)."""
    if amount is None:
        return None
    return str(amount.quantize(CENT))


class SqliteAuctionStore:
    def __init__(self, connection_factory: ConnectionFactory) -> None:
        self._connection_factory = connection_factory
        self._schema_ready = False
        self._schema_lock = threading.Lock()

    @classmethod
    def from_sqlite_path(cls, db_path: str | Path) -> "SqliteAuctionStore":
        def connection_factory() -> AbstractContextManager[sqlite3.Connection]:
            return get_connection(db_path)

        return cls(connection_factory)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            with self._connection_factory() as conn:
                if not self._schema_ready:
                    with self._schema_lock:
                        if not self._schema_ready:
                            ensure_schema(conn)
                            self._schema_ready = True
                yield conn
        except (sqlite3.Error, DatabaseError) as exc:
            logger.error("Auction store failure: %s", exc)
            raise StoreUnavailableError(f"Auction store unavailable: {exc}") from exc

    def ensure_schema(self) -> None:
        with self._connect():
            pass

    # ------------------------------------------------------------------
    # Auctions
    # ------------------------------------------------------------------

    def create_auction(self, auction: Auction) -> Auction:
        created_at = auction.created_at or datetime.now(timezone.utc)
        row = {
            "id": auction.id,
            "seller_id": auction.seller_id,
            "title": auction.title,
            "description": auction.description,
            "starting_price": amount_to_text(auction.starting_price),
            "bid_increment": amount_to_text(auction.bid_increment),
            "start_time": to_iso(auction.start_time),
            "end_time": to_iso(auction.end_time),
            "duration_hours": auction.duration_hours,
            "state": auction.state.value,
            "seller_decision": auction.seller_decision.value,
            "created_at": to_iso(created_at),
        }
        with self._connect() as conn, transaction(conn):
            AuctionRepository(conn).insert(row)
            stored = AuctionRepository(conn).get(auction.id)
        return Auction.from_dict(stored)

    def get_auction(self, auction_id: str) -> Auction:
        with self._connect() as conn:
            row = AuctionRepository(conn).get(auction_id)
        if row is None:
            raise AuctionNotFoundError(auction_id)
        return Auction.from_dict(row)

    def list_auctions(self, state: AuctionState | None = None) -> list[Auction]:
        with self._connect() as conn:
            rows = AuctionRepository(conn).list(state.value if state else None)
        return [Auction.from_dict(row) for row in rows]

    def update_auction_state(
        self, auction_id: str, from_state: AuctionState, to_state: AuctionState
    ) -> bool:
        """Move ``from_state -> to_state``; False if the stored state differs."""
        with self._connect() as conn, transaction(conn):
            return AuctionRepository(conn).update_state(
                auction_id, from_state.value, to_state.value
            )

    # ------------------------------------------------------------------
    # Bids
    # ------------------------------------------------------------------

    def admit_bid_atomic(
        self,
        auction_id: str,
        bidder_id: str,
        amount: Decimal,
        expected_prior_highest: Decimal | None,
        *,
        created_at: datetime | None = None,
    ) -> Bid:
        """Insert a bid and raise the highest bid in one transaction.

        Raises:
            ConflictError: if the stored highest bid is no longer
                ``expected_prior_highest`` or the auction is no longer active.
            AuctionNotFoundError: if the auction does not exist.
        """
        bid_id = uuid.uuid4().hex
        created = to_iso(created_at or datetime.now(timezone.utc))
        amount_text = amount_to_text(amount)
        with self._connect() as conn, transaction(conn):
            auctions = AuctionRepository(conn)
            swapped = auctions.apply_bid(
                auction_id,
                bidder_id,
                amount_text,
                amount_to_text(expected_prior_highest),
            )
            if not swapped:
                if not auctions.exists(auction_id):
                    raise AuctionNotFoundError(auction_id)
                raise ConflictError(
                    f"Auction '{auction_id}' changed while the bid was evaluated"
                )
            BidRepository(conn).insert(bid_id, auction_id, bidder_id, amount_text, created)
        return Bid.from_dict(
            {
                "id": bid_id,
                "auction_id": auction_id,
                "bidder_id": bidder_id,
                "amount": amount_text,
                "created_at": created,
            }
        )

    def list_bids(self, auction_id: str) -> list[Bid]:
        """Bids of an auction, newest first."""
        with self._connect() as conn:
            rows = BidRepository(conn).list_for_auction(auction_id)
        return [Bid.from_dict(row) for row in rows]

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def record_decision(self, auction_id: str, accepted: bool) -> Auction:
        decision = SellerDecision.from_flag(accepted)
        with self._connect() as conn, transaction(conn):
            auctions = AuctionRepository(conn)
            if not auctions.record_decision(auction_id, decision.value):
                if not auctions.exists(auction_id):
                    raise AuctionNotFoundError(auction_id)
                raise ConflictError(
                    f"Auction '{auction_id}' is no longer open for a decision"
                )
            row = auctions.get(auction_id)
        return Auction.from_dict(row)

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def insert_notification(self, notification: Notification) -> bool:
        """Store a notification; inserting the same id twice is a no-op."""
        row = {
            "id": notification.id,
            "user_id": notification.user_id,
            "auction_id": notification.auction_id,
            "type": notification.type.value,
            "message": notification.message,
            "read": notification.read,
            "created_at": to_iso(notification.created_at),
        }
        with self._connect() as conn, transaction(conn):
            return NotificationRepository(conn).insert(row)

    def list_notifications(
        self, user_id: str, unread_only: bool = False
    ) -> list[Notification]:
        with self._connect() as conn:
            rows = NotificationRepository(conn).list_for_user(user_id, unread_only)
        return [Notification.from_dict(row) for row in rows]

    def mark_read(self, ids: Iterable[str]) -> int:
        with self._connect() as conn, transaction(conn):
            return NotificationRepository(conn).mark_read(ids)


__all__ = ["ConnectionFactory", "SqliteAuctionStore", "amount_to_text"]
