"""End-to-end auction walkthroughs against the service facade."""

from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest

from bidhouse.domain.errors import (AlreadyDecidedError, BidTooLowError,
                                    SellerCannotBidError)


def test_opening_bids(make_service, open_auction):
    async def scenario():
        service = make_service()
        auction = await open_auction(service)
        with pytest.raises(BidTooLowError) as excinfo:
            await service.place_bid(auction.id, "alice", "90")
        assert excinfo.value.minimum_bid == Decimal("100.00")
        return await service.place_bid(auction.id, "alice", "100")

    result = asyncio.run(scenario())

    assert result.auction.current_highest_bid == Decimal("100.00")


def test_outbid_flow(make_service, open_auction):
    async def scenario():
        service = make_service()
        auction = await open_auction(service)
        await service.place_bid(auction.id, "alice", "100")
        with pytest.raises(BidTooLowError) as excinfo:
            await service.place_bid(auction.id, "bob", "105")
        assert str(excinfo.value) == "Bid must be at least $110.00"
        await service.place_bid(auction.id, "bob", "110")
        return (
            await service.list_notifications("alice"),
            await service.list_notifications("seller"),
        )

    alice_inbox, seller_inbox = asyncio.run(scenario())

    assert [n.type for n in alice_inbox] == ["outbid"]
    assert [n.type for n in seller_inbox] == ["new_bid", "new_bid"]


def test_end_and_decide(make_service, open_auction, clock):
    async def scenario():
        service = make_service()
        auction = await open_auction(service)
        await service.place_bid(auction.id, "alice", "100")
        await service.place_bid(auction.id, "bob", "110")
        clock.advance(hours=1)
        ended = await service.get_auction(auction.id)
        decided = await service.decide(auction.id, True)
        with pytest.raises(AlreadyDecidedError):
            await service.decide(auction.id, True)
        return (
            ended,
            decided,
            await service.list_notifications("bob"),
            await service.list_notifications("seller"),
        )

    ended, decided, bob_inbox, seller_inbox = asyncio.run(scenario())

    assert ended.state == "ended"
    assert decided.accepted is True
    assert "bid_accepted" in [n.type for n in bob_inbox]
    summaries = [n for n in seller_inbox if n.type == "auction_ended"]
    assert len(summaries) == 1
    assert "$110" in summaries[0].message


@pytest.mark.parametrize("amount", ["50", "100", "10000"])
def test_seller_never_bids(make_service, open_auction, amount):
    async def scenario():
        service = make_service()
        auction = await open_auction(service)
        await service.place_bid(auction.id, "seller", amount)

    with pytest.raises(SellerCannotBidError):
        asyncio.run(scenario())


@pytest.mark.parametrize(
    "first, second, admitted",
    [("150", "160", ["150.00", "160.00"]), ("160", "150", ["160.00"])],
)
def test_racing_bids_are_reevaluated(make_service, open_auction, first, second, admitted):
    async def scenario():
        service = make_service()
        auction = await open_auction(service)
        await service.place_bid(auction.id, "carol", "140")
        outcomes = await asyncio.gather(
            service.place_bid(auction.id, "alice", first),
            service.place_bid(auction.id, "bob", second),
            return_exceptions=True,
        )
        return outcomes, await service.get_auction(auction.id), await service.list_bids(auction.id)

    outcomes, auction, bids = asyncio.run(scenario())

    assert [str(b.amount) for b in reversed(bids)][1:] == admitted
    assert str(auction.current_highest_bid) == admitted[-1]
    errors = [o for o in outcomes if isinstance(o, Exception)]
    assert all(isinstance(e, BidTooLowError) for e in errors)
    assert len(errors) == 2 - len(admitted)
