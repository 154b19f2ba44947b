"""Tests for the Auction, Bid and Notification domain models."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from bidhouse.domain.models import (Auction, AuctionState, Bid, Notification,
                                    NotificationType, SellerDecision,
                                    compute_end_time, parse_datetime)

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _auction(**overrides) -> Auction:
    fields = dict(
        id="a1",
        seller_id="seller",
        title="Lamp",
        starting_price=Decimal("100.00"),
        bid_increment=Decimal("10.00"),
        start_time=START,
        end_time=START + timedelta(hours=2),
        duration_hours=2.0,
        state=AuctionState.ACTIVE,
    )
    fields.update(overrides)
    return Auction(**fields)


class TestAuctionState:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("pending", AuctionState.PENDING),
            ("Active", AuctionState.ACTIVE),
            (" ended ", AuctionState.ENDED),
            (None, AuctionState.PENDING),
            ("", AuctionState.PENDING),
        ],
    )
    def test_from_string(self, value, expected):
        assert AuctionState.from_string(value) is expected

    def test_rank_orders_states(self):
        assert AuctionState.PENDING.rank < AuctionState.ACTIVE.rank < AuctionState.ENDED.rank


class TestSellerDecision:
    def test_from_flag(self):
        assert SellerDecision.from_flag(True) is SellerDecision.ACCEPTED
        assert SellerDecision.from_flag(False) is SellerDecision.REJECTED

    @pytest.mark.parametrize(
        "decision,expected",
        [
            (SellerDecision.UNDECIDED, None),
            (SellerDecision.ACCEPTED, True),
            (SellerDecision.REJECTED, False),
        ],
    )
    def test_accepted_view(self, decision, expected):
        assert decision.accepted is expected


class TestAuction:
    def test_minimum_bid_without_bids_is_starting_price(self):
        auction = _auction()
        assert auction.has_bids is False
        assert auction.minimum_bid == Decimal("100.00")

    def test_minimum_bid_with_bid_adds_increment(self):
        auction = _auction(
            current_highest_bid=Decimal("110.00"), current_highest_bidder_id="u1"
        )
        assert auction.has_bids is True
        assert auction.minimum_bid == Decimal("120.00")

    def test_state_flags(self):
        assert _auction().is_active is True
        ended = _auction(state=AuctionState.ENDED)
        assert ended.is_ended is True
        assert ended.is_active is False
        assert ended.is_decided is False
        decided = _auction(state=AuctionState.ENDED, seller_decision=SellerDecision.ACCEPTED)
        assert decided.is_decided is True

    def test_from_dict_parses_stored_row(self):
        auction = Auction.from_dict(
            {
                "id": "a1",
                "seller_id": "s1",
                "title": "Lamp",
                "description": None,
                "starting_price": "100.00",
                "bid_increment": "10.00",
                "start_time": "2024-01-01T12:00:00Z",
                "end_time": "2024-01-01T14:00:00Z",
                "duration_hours": 2.0,
                "state": "active",
                "current_highest_bid": "110.00",
                "current_highest_bidder_id": "u1",
                "seller_decision": "undecided",
                "created_at": "2024-01-01T11:00:00Z",
            }
        )
        assert auction.start_time == START
        assert auction.end_time == START + timedelta(hours=2)
        assert auction.state is AuctionState.ACTIVE
        assert auction.current_highest_bid == Decimal("110.00")
        assert auction.seller_decision is SellerDecision.UNDECIDED

    def test_from_dict_requires_window(self):
        with pytest.raises(ValueError):
            Auction.from_dict({"id": "a1", "seller_id": "s1", "start_time": None})

    def test_compute_end_time(self):
        assert compute_end_time(START, 1.5) == START + timedelta(minutes=90)


class TestParseDatetime:
    def test_naive_is_treated_as_utc(self):
        assert parse_datetime("2024-01-01T12:00:00") == START

    def test_offset_is_normalised(self):
        assert parse_datetime("2024-01-01T13:00:00+01:00") == START

    @pytest.mark.parametrize("value", [None, "", "not-a-date", 42])
    def test_invalid_values(self, value):
        assert parse_datetime(value) is None


def test_bid_and_notification_from_dict():
    bid = Bid.from_dict(
        {
            "id": "b1",
            "auction_id": "a1",
            "bidder_id": "u1",
            "amount": "110.00",
            "created_at": "2024-01-01T12:00:00Z",
        }
    )
    assert bid.amount == Decimal("110.00")

    notification = Notification.from_dict(
        {
            "id": "n1",
            "user_id": "s1",
            "auction_id": "a1",
            "type": "new_bid",
            "message": "hello",
            "read": 0,
            "created_at": "2024-01-01T12:00:00Z",
        }
    )
    assert notification.type is NotificationType.NEW_BID
    assert notification.read is False
