"""Auction service facade used by the HTTP API and the CLI."""

from __future__ import annotations

import uuid
from datetime import datetime
from pathlib import Path
from typing import Iterable

from bidhouse.domain import lifecycle
from bidhouse.domain.errors import ValidationError
from bidhouse.domain.models import Auction, AuctionState, compute_end_time
from bidhouse.domain.models.auction import parse_datetime
from bidhouse.domain.money import parse_amount
from bidhouse.infrastructure.db.store import SqliteAuctionStore

from .admission import BidAdmissionController
from .base import BaseService
from .broadcast import BroadcastFanout
from .clock import Clock, SystemClock
from .decisions import DecisionController
from .dto import AuctionDTO, BidDTO, BidResultDTO, NotificationDTO
from .messages import AuctionSnapshotMessage
from .notifications import NotificationDispatcher, NotificationOutbox
from .serialization import KeyedLock
from .settlement import SettlementService
from .store import AuctionStore

AUCTION_STATUS_FILTERS = ("active", "pending", "ended", "all")


class AuctionService(BaseService):
    """Entry point for every auction-touching operation.

    Each read settles the auctions it returns, so callers always see the
    state the clock implies. Bids and decisions go through their
    controllers, which share one per-auction ``KeyedLock``.
    """

    def __init__(
        self,
        store: AuctionStore,
        *,
        clock: Clock | None = None,
        fanout: BroadcastFanout | None = None,
        outbox: NotificationOutbox | None = None,
        max_conflict_retries: int = 3,
        notification_max_attempts: int = 5,
        notification_backoff_seconds: float = 0.1,
        broadcast_timeout_seconds: float = 5.0,
    ) -> None:
        super().__init__(store)
        self.clock = clock or SystemClock()
        self.fanout = fanout or BroadcastFanout(
            send_timeout_seconds=broadcast_timeout_seconds
        )
        self.outbox = outbox or NotificationOutbox(
            store,
            max_attempts=notification_max_attempts,
            retry_backoff_seconds=notification_backoff_seconds,
        )
        self.dispatcher = NotificationDispatcher()
        self.locks = KeyedLock()
        self.settlement = SettlementService(
            store,
            clock=self.clock,
            dispatcher=self.dispatcher,
            outbox=self.outbox,
            fanout=self.fanout,
        )
        collaborators = dict(
            clock=self.clock,
            locks=self.locks,
            settlement=self.settlement,
            dispatcher=self.dispatcher,
            outbox=self.outbox,
            fanout=self.fanout,
        )
        self.admission = BidAdmissionController(
            store, max_conflict_retries=max_conflict_retries, **collaborators
        )
        self.decisions = DecisionController(store, **collaborators)

    @classmethod
    def from_sqlite_path(cls, db_path: str | Path, **kwargs) -> "AuctionService":
        return cls(SqliteAuctionStore.from_sqlite_path(db_path), **kwargs)

    async def start(self) -> None:
        await self._run(self.store.ensure_schema)
        await self.outbox.start()

    async def aclose(self) -> None:
        await self.outbox.stop()

    # ------------------------------------------------------------------
    # Auctions
    # ------------------------------------------------------------------

    async def create_auction(
        self,
        *,
        seller_id: str,
        title: str,
        starting_price: object,
        bid_increment: object,
        start_time: object,
        duration_hours: object,
        description: str | None = None,
    ) -> AuctionDTO:
        seller_id = _required(seller_id, "seller_id")
        title = _required(title, "title")
        start = parse_datetime(start_time)
        if start is None:
            raise ValidationError("start_time must be an ISO-8601 date and time")
        hours = _positive_hours(duration_hours)
        try:
            end = compute_end_time(start, hours)
        except OverflowError:
            raise ValidationError("duration_hours is too large") from None
        now = self.clock.now()
        auction = Auction(
            id=uuid.uuid4().hex,
            seller_id=seller_id,
            title=title,
            description=(description or "").strip() or None,
            starting_price=parse_amount(
                starting_price, field="starting_price", allow_zero=True
            ),
            bid_increment=parse_amount(bid_increment, field="bid_increment"),
            start_time=start,
            end_time=end,
            duration_hours=hours,
            state=lifecycle.initial_state(start, now),
            created_at=now,
        )
        stored = await self._run(self.store.create_auction, auction)
        self._logger.info("Auction %s created by %s", stored.id, seller_id)
        # A window that already elapsed settles straight away.
        stored = await self.settlement.settle(stored, now)
        return AuctionDTO.from_domain(stored)

    async def get_auction(self, auction_id: str) -> AuctionDTO:
        return AuctionDTO.from_domain(await self.settlement.load(auction_id))

    async def list_auctions(self, status: str = "active") -> list[AuctionDTO]:
        status = (status or "active").lower()
        if status not in AUCTION_STATUS_FILTERS:
            raise ValidationError(
                f"status must be one of {', '.join(AUCTION_STATUS_FILTERS)}"
            )
        stored = await self._run(self.store.list_auctions)
        settled = await self.settlement.settle_all(stored)
        if status != "all":
            wanted = AuctionState(status)
            settled = [auction for auction in settled if auction.state is wanted]
        return [AuctionDTO.from_domain(auction) for auction in settled]

    async def snapshot(self, auction_id: str) -> AuctionSnapshotMessage:
        auction = await self.settlement.load(auction_id)
        bids = await self._run(self.store.list_bids, auction_id)
        return AuctionSnapshotMessage(
            auction=AuctionDTO.from_domain(auction),
            bids=[BidDTO.from_domain(bid) for bid in bids],
        )

    # ------------------------------------------------------------------
    # Bids and decisions
    # ------------------------------------------------------------------

    async def list_bids(self, auction_id: str) -> list[BidDTO]:
        await self._run(self.store.get_auction, auction_id)
        bids = await self._run(self.store.list_bids, auction_id)
        return [BidDTO.from_domain(bid) for bid in bids]

    async def place_bid(
        self, auction_id: str, bidder_id: str, amount: object
    ) -> BidResultDTO:
        result = await self.admission.admit(auction_id, bidder_id, amount)
        return BidResultDTO(
            bid=BidDTO.from_domain(result.bid),
            auction=AuctionDTO.from_domain(result.auction),
        )

    async def decide(self, auction_id: str, accepted: bool) -> AuctionDTO:
        if not isinstance(accepted, bool):
            raise ValidationError("accepted must be true or false")
        return AuctionDTO.from_domain(await self.decisions.decide(auction_id, accepted))

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def list_notifications(
        self, user_id: str, unread_only: bool = False
    ) -> list[NotificationDTO]:
        user_id = _required(user_id, "user_id")
        await self.outbox.drain()
        notifications = await self._run(
            self.store.list_notifications, user_id, unread_only
        )
        return [NotificationDTO.from_domain(n) for n in notifications]

    async def mark_notifications_read(self, ids: Iterable[str]) -> int:
        if ids is None or isinstance(ids, (str, bytes)):
            raise ValidationError("ids must be a list of notification ids")
        id_list = [str(i).strip() for i in ids if str(i).strip()]
        if not id_list:
            raise ValidationError("ids must contain at least one notification id")
        await self.outbox.drain()
        return await self._run(self.store.mark_read, id_list)


def _required(value: object, field: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def _positive_hours(value: object) -> float:
    if value is None or isinstance(value, bool):
        raise ValidationError("duration_hours is required")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError("duration_hours must be a number") from None
    if not 0 < hours < float("inf"):
        raise ValidationError("duration_hours must be positive")
    return hours


__all__ = ["AUCTION_STATUS_FILTERS", "AuctionService"]
