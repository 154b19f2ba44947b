"""Bid admission: the single path by which a bid becomes the highest bid."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal

from bidhouse.domain.errors import (BiddingError, ConflictError,
                                    ValidationError)
from bidhouse.domain.models import Auction, Bid
from bidhouse.domain.money import parse_amount
from bidhouse.domain.rules import check_bid
from bidhouse.infrastructure.observability import (Timer, log_context,
                                                   record_bid,
                                                   record_bid_conflict,
                                                   trace_span)
from bidhouse.infrastructure.observability.metrics import \
    BID_ADMISSION_DURATION

from .base import BaseService
from .broadcast import BroadcastFanout
from .clock import Clock
from .dto import AuctionDTO, BidDTO
from .messages import BidPlacedMessage
from .notifications import NotificationDispatcher, NotificationOutbox
from .serialization import KeyedLock
from .settlement import SettlementService
from .store import AuctionStore


@dataclass(frozen=True)
class AdmissionResult:
    bid: Bid
    auction: Auction
    previous_bidder_id: str | None
    minimum_bid: Decimal


class BidAdmissionController(BaseService):
    """Admit or reject bids, one auction at a time.

    Each admission runs under the auction's key in ``locks``: load, settle,
    check the rules, then a compare-and-swap write through
    ``store.admit_bid_atomic``. A lost swap is retried against freshly loaded
    state up to ``max_conflict_retries`` times. Notification records and the
    ``bid_placed`` broadcast are produced before the key is released.

    Once handed to :meth:`admit`, a bid runs to completion even if the
    caller is cancelled; the outcome is visible through the store.
    """

    def __init__(
        self,
        store: AuctionStore,
        *,
        clock: Clock,
        locks: KeyedLock,
        settlement: SettlementService,
        dispatcher: NotificationDispatcher,
        outbox: NotificationOutbox,
        fanout: BroadcastFanout,
        max_conflict_retries: int = 3,
    ) -> None:
        super().__init__(store)
        self.clock = clock
        self.locks = locks
        self.settlement = settlement
        self.dispatcher = dispatcher
        self.outbox = outbox
        self.fanout = fanout
        self.max_conflict_retries = max(0, max_conflict_retries)

    async def admit(
        self,
        auction_id: str,
        bidder_id: str,
        amount: object,
        now: datetime | None = None,
    ) -> AdmissionResult:
        bidder_id = (bidder_id or "").strip()
        if not bidder_id:
            record_bid(ValidationError.kind)
            raise ValidationError("bidder_id is required")
        try:
            value = parse_amount(amount)
        except ValidationError:
            record_bid(ValidationError.kind)
            raise

        task = asyncio.ensure_future(self._admit(auction_id, bidder_id, value, now))
        task.add_done_callback(self._finished)
        return await asyncio.shield(task)

    async def _admit(
        self,
        auction_id: str,
        bidder_id: str,
        amount: Decimal,
        now: datetime | None,
    ) -> AdmissionResult:
        async with self.locks.hold(auction_id):
            with log_context(auction_id=auction_id, bidder_id=bidder_id), trace_span(
                "bid_admission", auction_id=auction_id, bidder_id=bidder_id
            ), Timer(BID_ADMISSION_DURATION, help_text="Bid admission duration in seconds"):
                try:
                    result = await self._admit_with_retries(
                        auction_id, bidder_id, amount, now
                    )
                except BiddingError as exc:
                    record_bid(exc.kind)
                    self._logger.info("Bid of %s rejected: %s", amount, exc)
                    raise
                record_bid("admitted")
                self._logger.info(
                    "Bid %s of %s admitted (minimum was %s)",
                    result.bid.id,
                    amount,
                    result.minimum_bid,
                )
                await self._announce(result)
                return result

    async def _admit_with_retries(
        self,
        auction_id: str,
        bidder_id: str,
        amount: Decimal,
        now: datetime | None,
    ) -> AdmissionResult:
        conflicts = 0
        while True:
            at = now or self.clock.now()
            auction = await self.settlement.load(auction_id, at)
            minimum = check_bid(auction, bidder_id, amount)
            try:
                bid = await self._run(
                    self.store.admit_bid_atomic,
                    auction_id,
                    bidder_id,
                    amount,
                    auction.current_highest_bid,
                    created_at=at,
                )
            except ConflictError:
                record_bid_conflict()
                conflicts += 1
                if conflicts > self.max_conflict_retries:
                    raise
                self._logger.warning(
                    "Bid lost a store race, retrying (%d/%d)",
                    conflicts,
                    self.max_conflict_retries,
                )
                continue
            updated = replace(
                auction,
                current_highest_bid=bid.amount,
                current_highest_bidder_id=bidder_id,
            )
            return AdmissionResult(
                bid=bid,
                auction=updated,
                previous_bidder_id=auction.current_highest_bidder_id,
                minimum_bid=minimum,
            )

    async def _announce(self, result: AdmissionResult) -> None:
        auction_id = result.auction.id
        self.outbox.enqueue(
            self.dispatcher.for_admission(
                result.auction,
                result.bid,
                result.previous_bidder_id,
                result.bid.created_at,
            )
        )
        await self._isolated(
            "broadcast bid",
            self._broadcast(result),
            auction_id=auction_id,
        )

    async def _broadcast(self, result: AdmissionResult) -> None:
        bids = await self._run(self.store.list_bids, result.auction.id)
        await self.fanout.publish(
            result.auction.id,
            BidPlacedMessage(
                auction=AuctionDTO.from_domain(result.auction),
                bid=BidDTO.from_domain(result.bid),
                bids=[BidDTO.from_domain(bid) for bid in bids],
            ),
        )


__all__ = ["AdmissionResult", "BidAdmissionController"]
