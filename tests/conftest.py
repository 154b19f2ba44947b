"""Shared fixtures: a fixed clock and services on a temporary database."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from bidhouse.infrastructure.db import SqliteAuctionStore
from bidhouse.infrastructure.observability import get_registry
from bidhouse.services import AuctionService, FixedClock

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(T0)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "bidhouse.db"


@pytest.fixture
def make_service(db_path: Path, clock: FixedClock):
    """Build an AuctionService on the temporary database.

    Pass ``store=`` to wrap the SQLite store in a test double.
    """

    def factory(store=None, **kwargs) -> AuctionService:
        kwargs.setdefault("notification_backoff_seconds", 0.001)
        return AuctionService(
            store or SqliteAuctionStore.from_sqlite_path(db_path),
            clock=clock,
            **kwargs,
        )

    return factory


@pytest.fixture
def open_auction():
    """Coroutine factory creating an auction that is active at ``T0``.

    Defaults: starting price 100, increment 10, started an hour before T0,
    ends an hour after it.
    """

    async def create(service: AuctionService, **overrides):
        fields = dict(
            seller_id="seller",
            title="Lamp",
            starting_price="100",
            bid_increment="10",
            start_time=T0 - timedelta(hours=1),
            duration_hours=2,
        )
        fields.update(overrides)
        return await service.create_auction(**fields)

    return create


@pytest.fixture(autouse=True)
def reset_metrics():
    get_registry().reset()
    yield
