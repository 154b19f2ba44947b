"""Seller accept/reject of the highest bid on an ended auction."""

from __future__ import annotations

import asyncio
from datetime import datetime

from bidhouse.domain.errors import BiddingError, ConflictError
from bidhouse.domain.models import Auction
from bidhouse.domain.rules import check_decision
from bidhouse.infrastructure.observability import (log_context,
                                                   record_decision, trace_span)

from .base import BaseService
from .broadcast import BroadcastFanout
from .clock import Clock
from .dto import AuctionDTO
from .messages import AuctionDecidedMessage
from .notifications import NotificationDispatcher, NotificationOutbox
from .serialization import KeyedLock
from .settlement import SettlementService
from .store import AuctionStore


class DecisionController(BaseService):
    """Record a seller decision exactly once per auction.

    Shares the per-auction key with bid admission. The store write is
    conditional on the decision still being undecided, so a second decision
    that slips past the key still ends in ``AlreadyDecidedError``.
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
    ) -> None:
        super().__init__(store)
        self.clock = clock
        self.locks = locks
        self.settlement = settlement
        self.dispatcher = dispatcher
        self.outbox = outbox
        self.fanout = fanout

    async def decide(
        self, auction_id: str, accepted: bool, now: datetime | None = None
    ) -> Auction:
        task = asyncio.ensure_future(self._decide(auction_id, bool(accepted), now))
        task.add_done_callback(self._finished)
        return await asyncio.shield(task)

    async def _decide(
        self, auction_id: str, accepted: bool, now: datetime | None
    ) -> Auction:
        async with self.locks.hold(auction_id):
            with log_context(auction_id=auction_id, accepted=accepted), trace_span(
                "seller_decision", auction_id=auction_id, accepted=accepted
            ):
                at = now or self.clock.now()
                try:
                    auction = await self._record(auction_id, accepted, at)
                except BiddingError as exc:
                    record_decision(exc.kind)
                    self._logger.info("Decision rejected: %s", exc)
                    raise
                record_decision(auction.seller_decision.value)
                self._logger.info(
                    "Seller %s bid of %s",
                    auction.seller_decision.value,
                    auction.current_highest_bid,
                )
                self.outbox.enqueue(self.dispatcher.for_decision(auction, at))
                await self._isolated(
                    "broadcast decision",
                    self.fanout.publish(
                        auction_id,
                        AuctionDecidedMessage(
                            auction=AuctionDTO.from_domain(auction),
                            decision=auction.seller_decision.value,
                        ),
                    ),
                    auction_id=auction_id,
                )
                return auction

    async def _record(self, auction_id: str, accepted: bool, at: datetime) -> Auction:
        auction = await self.settlement.load(auction_id, at)
        check_decision(auction)
        try:
            return await self._run(self.store.record_decision, auction_id, accepted)
        except ConflictError:
            # Another process decided first; re-check to report why.
            fresh = await self._run(self.store.get_auction, auction_id)
            check_decision(fresh)
            raise


__all__ = ["DecisionController"]
