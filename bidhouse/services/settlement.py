"""Persisting lifecycle transitions and their side effects."""

from __future__ import annotations

from datetime import datetime

from bidhouse.domain import lifecycle
from bidhouse.domain.models import Auction
from bidhouse.infrastructure.observability import log_context, record_settlement

from .base import BaseService
from .broadcast import BroadcastFanout
from .clock import Clock
from .dto import AuctionDTO
from .messages import AuctionUpdatedMessage
from .notifications import NotificationDispatcher, NotificationOutbox
from .store import AuctionStore


class SettlementService(BaseService):
    """Brings stored auctions in line with the clock.

    The transition is written with a conditional state update. Only the
    caller whose update matched publishes ``auction_updated`` and, for a
    transition to ``ended``, queues the auction-ended notifications, so
    those happen once per auction however many callers settle concurrently.
    """

    def __init__(
        self,
        store: AuctionStore,
        *,
        clock: Clock,
        dispatcher: NotificationDispatcher,
        outbox: NotificationOutbox,
        fanout: BroadcastFanout,
    ) -> None:
        super().__init__(store)
        self.clock = clock
        self.dispatcher = dispatcher
        self.outbox = outbox
        self.fanout = fanout

    async def load(self, auction_id: str, now: datetime | None = None) -> Auction:
        """Fetch an auction and settle it. Raises ``AuctionNotFoundError``."""
        auction = await self._run(self.store.get_auction, auction_id)
        return await self.settle(auction, now)

    async def settle(self, auction: Auction, now: datetime | None = None) -> Auction:
        now = now or self.clock.now()
        target = lifecycle.settle(auction, now)
        if not lifecycle.is_forward(auction.state, target.state):
            return auction
        changed = await self._run(
            self.store.update_auction_state, auction.id, auction.state, target.state
        )
        if not changed:
            # Someone else moved it; states only go forward so this terminates.
            fresh = await self._run(self.store.get_auction, auction.id)
            return await self.settle(fresh, now)

        record_settlement(target.state.value)
        with log_context(auction_id=auction.id):
            self._logger.info(
                "Auction moved %s -> %s", auction.state.value, target.state.value
            )
            if target.is_ended:
                await self._isolated(
                    "queue auction-ended notifications",
                    self._queue_ended(target, now),
                    auction_id=auction.id,
                )
            await self._isolated(
                "broadcast auction update",
                self.fanout.publish(
                    auction.id,
                    AuctionUpdatedMessage(
                        auction=AuctionDTO.from_domain(target),
                        previous_state=auction.state.value,
                    ),
                ),
                auction_id=auction.id,
            )
        return target

    async def settle_all(
        self, auctions: list[Auction], now: datetime | None = None
    ) -> list[Auction]:
        now = now or self.clock.now()
        return [await self.settle(auction, now) for auction in auctions]

    async def _queue_ended(self, auction: Auction, now: datetime) -> None:
        self.outbox.enqueue(self.dispatcher.for_auction_ended(auction, now))


__all__ = ["SettlementService"]
