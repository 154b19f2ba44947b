"""Tests for time-based auction settlement."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bidhouse.domain.lifecycle import (initial_state, is_forward, settle,
                                       settled_state)
from bidhouse.domain.models import Auction, AuctionState

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
END = START + timedelta(hours=1)


def _auction(state: AuctionState) -> Auction:
    return Auction(
        id="a1",
        seller_id="seller",
        title="Lamp",
        starting_price=Decimal("100.00"),
        bid_increment=Decimal("10.00"),
        start_time=START,
        end_time=END,
        duration_hours=1.0,
        state=state,
    )


class TestInitialState:
    def test_future_start_is_pending(self):
        assert initial_state(START, START - timedelta(seconds=1)) is AuctionState.PENDING

    def test_elapsed_start_is_active(self):
        assert initial_state(START, START) is AuctionState.ACTIVE


class TestSettle:
    @pytest.mark.parametrize(
        "state,now,expected",
        [
            (AuctionState.PENDING, START - timedelta(minutes=1), AuctionState.PENDING),
            (AuctionState.PENDING, START, AuctionState.ACTIVE),
            (AuctionState.ACTIVE, END - timedelta(seconds=1), AuctionState.ACTIVE),
            (AuctionState.ACTIVE, END, AuctionState.ENDED),
            (AuctionState.PENDING, END + timedelta(hours=1), AuctionState.ENDED),
            (AuctionState.ENDED, START - timedelta(days=1), AuctionState.ENDED),
        ],
    )
    def test_transitions(self, state, now, expected):
        assert settle(_auction(state), now).state is expected
        assert settled_state(_auction(state), now) is expected

    @pytest.mark.parametrize(
        "now",
        [START - timedelta(minutes=5), START, END, END + timedelta(days=3)],
    )
    def test_settle_is_idempotent(self, now):
        once = settle(_auction(AuctionState.PENDING), now)
        assert settle(once, now) == once

    def test_unchanged_auction_is_returned_as_is(self):
        auction = _auction(AuctionState.ACTIVE)
        assert settle(auction, START) is auction

    def test_settle_does_not_mutate_input(self):
        auction = _auction(AuctionState.ACTIVE)
        settle(auction, END)
        assert auction.state is AuctionState.ACTIVE


def test_is_forward():
    assert is_forward(AuctionState.PENDING, AuctionState.ACTIVE)
    assert is_forward(AuctionState.PENDING, AuctionState.ENDED)
    assert not is_forward(AuctionState.ENDED, AuctionState.ACTIVE)
    assert not is_forward(AuctionState.ACTIVE, AuctionState.ACTIVE)
