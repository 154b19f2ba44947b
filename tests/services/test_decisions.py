"""Tests for seller decisions on ended auctions."""

from __future__ import annotations

import asyncio
import gc
import sqlite3

import pytest

from bidhouse.domain.errors import (AlreadyDecidedError, AuctionNotEndedError,
                                    AuctionNotFoundError, NoBidsError,
                                    ValidationError)
from bidhouse.infrastructure.db import SqliteAuctionStore
from bidhouse.infrastructure.observability import get_registry
from bidhouse.infrastructure.observability.metrics import DECISIONS
from bidhouse.services import BroadcastFanout


class _RacingDecisionStore(SqliteAuctionStore):
    """Records a competing decision right before ours reaches the database."""

    def __init__(self, inner: SqliteAuctionStore, competing: bool) -> None:
        super().__init__(inner._connection_factory)
        self._competing = competing

    def record_decision(self, auction_id, accepted):
        if self._competing is not None:
            competing, self._competing = self._competing, None
            super().record_decision(auction_id, competing)
        return super().record_decision(auction_id, accepted)


class _ExplodingFanout(BroadcastFanout):
    async def publish(self, auction_id, event):
        raise RuntimeError("fanout is down")


class _NotificationlessStore(SqliteAuctionStore):
    def __init__(self, inner: SqliteAuctionStore) -> None:
        super().__init__(inner._connection_factory)
        self.broken = False

    def insert_notification(self, notification):
        if self.broken:
            raise sqlite3.OperationalError("database is locked")
        return super().insert_notification(notification)


async def _ended_auction_with_bids(service, open_auction, clock, *bids):
    auction = await open_auction(service)
    for bidder, amount in bids:
        await service.place_bid(auction.id, bidder, amount)
    clock.advance(hours=2)
    return auction


@pytest.mark.parametrize(
    "accepted, decision, kind",
    [(True, "accepted", "bid_accepted"), (False, "rejected", "bid_rejected")],
)
def test_decision_notifies_highest_bidder(
    make_service, open_auction, clock, accepted, decision, kind
):
    async def scenario():
        service = make_service()
        auction = await _ended_auction_with_bids(
            service, open_auction, clock, ("u1", "100"), ("u2", "120")
        )
        decided = await service.decide(auction.id, accepted)
        return (
            decided,
            await service.list_notifications("u2"),
            await service.list_notifications("u1"),
        )

    decided, winner_inbox, loser_inbox = asyncio.run(scenario())

    assert decided.state == "ended"
    assert decided.seller_decision == decision
    assert decided.accepted is accepted
    verdicts = [n for n in winner_inbox if n.type.startswith("bid_")]
    assert [n.type for n in verdicts] == [kind]
    assert "$120 " in verdicts[0].message
    assert all(not n.type.startswith("bid_") for n in loser_inbox)
    assert get_registry().counter(DECISIONS).get({"outcome": decision}) == 1


def test_second_decision_is_rejected(make_service, open_auction, clock):
    async def scenario():
        service = make_service()
        auction = await _ended_auction_with_bids(service, open_auction, clock, ("u1", "100"))
        await service.decide(auction.id, True)
        with pytest.raises(AlreadyDecidedError) as excinfo:
            await service.decide(auction.id, False)
        return excinfo.value, await service.get_auction(auction.id)

    error, auction = asyncio.run(scenario())

    assert error.decision == "accepted"
    assert auction.seller_decision == "accepted"


def test_concurrent_decisions_record_one(make_service, open_auction, clock):
    async def scenario():
        service = make_service()
        auction = await _ended_auction_with_bids(service, open_auction, clock, ("u1", "100"))
        outcomes = await asyncio.gather(
            service.decide(auction.id, True),
            service.decide(auction.id, False),
            return_exceptions=True,
        )
        return outcomes, await service.list_notifications("u1")

    outcomes, inbox = asyncio.run(scenario())

    assert outcomes[0].seller_decision == "accepted"
    assert isinstance(outcomes[1], AlreadyDecidedError)
    assert [n.type for n in inbox].count("bid_accepted") == 1
    assert "bid_rejected" not in [n.type for n in inbox]


def test_decision_recorded_elsewhere_first(make_service, open_auction, clock, db_path):
    store = _RacingDecisionStore(SqliteAuctionStore.from_sqlite_path(db_path), competing=False)

    async def scenario():
        service = make_service(store=store)
        auction = await _ended_auction_with_bids(service, open_auction, clock, ("u1", "100"))
        with pytest.raises(AlreadyDecidedError) as excinfo:
            await service.decide(auction.id, True)
        return excinfo.value, await service.get_auction(auction.id)

    error, auction = asyncio.run(scenario())

    assert error.decision == "rejected"
    assert auction.seller_decision == "rejected"


def test_active_auction_cannot_be_decided(make_service, open_auction):
    async def scenario():
        service = make_service()
        auction = await open_auction(service)
        await service.place_bid(auction.id, "u1", "100")
        await service.decide(auction.id, True)

    with pytest.raises(AuctionNotEndedError) as excinfo:
        asyncio.run(scenario())
    assert excinfo.value.state == "active"


def test_auction_without_bids_cannot_be_decided(make_service, open_auction, clock):
    async def scenario():
        service = make_service()
        auction = await _ended_auction_with_bids(service, open_auction, clock)
        await service.decide(auction.id, False)

    with pytest.raises(NoBidsError):
        asyncio.run(scenario())


def test_decision_input_checks(make_service):
    service = make_service()
    with pytest.raises(ValidationError):
        asyncio.run(service.decide("anything", "yes"))
    with pytest.raises(AuctionNotFoundError):
        asyncio.run(service.decide("missing", True))


def test_failing_broadcast_does_not_fail_decision(make_service, open_auction, clock):
    async def scenario():
        service = make_service(fanout=_ExplodingFanout())
        auction = await _ended_auction_with_bids(service, open_auction, clock, ("u1", "100"))
        decided = await service.decide(auction.id, True)
        return decided, await service.get_auction(auction.id)

    decided, stored = asyncio.run(scenario())

    assert decided.seller_decision == "accepted"
    assert stored.seller_decision == "accepted"


def test_failing_notification_storage_does_not_fail_decision(
    make_service, open_auction, clock, db_path
):
    store = _NotificationlessStore(SqliteAuctionStore.from_sqlite_path(db_path))

    async def scenario():
        service = make_service(store=store, notification_max_attempts=2)
        auction = await _ended_auction_with_bids(service, open_auction, clock, ("u1", "100"))
        await service.outbox.drain()
        store.broken = True
        decided = await service.decide(auction.id, False)
        await service.outbox.drain()
        store.broken = False
        return decided, await service.get_auction(auction.id), await service.list_notifications("u1")

    decided, stored, inbox = asyncio.run(scenario())

    assert decided.seller_decision == "rejected"
    assert stored.seller_decision == "rejected"
    assert "bid_rejected" not in [n.type for n in inbox]


def test_abandoned_failing_decision_is_not_reported_unretrieved(
    make_service, open_auction, clock
):
    async def scenario():
        loop = asyncio.get_running_loop()
        reports: list[dict] = []
        loop.set_exception_handler(lambda _loop, context: reports.append(context))
        service = make_service()
        auction = await _ended_auction_with_bids(service, open_auction, clock, ("u1", "100"))
        await service.decide(auction.id, True)

        caller = asyncio.create_task(service.decide(auction.id, False))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller
        for _ in range(200):
            rejected = get_registry().counter(DECISIONS).get({"outcome": "already_decided"})
            if rejected and len(service.locks) == 0:
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.01)
        del caller
        gc.collect()
        return reports, await service.get_auction(auction.id)

    reports, auction = asyncio.run(scenario())

    assert [r for r in reports if "exception" in r] == []
    assert auction.seller_decision == "accepted"
