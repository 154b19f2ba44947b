"""Shared FastAPI dependencies for Bidhouse application components."""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Annotated

from fastapi import Depends

from bidhouse.infrastructure.db import SqliteAuctionStore, get_connection
from bidhouse.services import AuctionService, BroadcastFanout, Clock

from .config import BiddingSettings

__all__ = [
    "AuctionServiceDep",
    "Runtime",
    "RuntimeDep",
    "get_auction_service",
    "get_runtime",
]


class Runtime:
    """Process-wide collaborators, created once and started by the lifespan."""

    def __init__(self, service: AuctionService) -> None:
        self.service = service

    @property
    def fanout(self) -> BroadcastFanout:
        return self.service.fanout

    @classmethod
    def from_settings(
        cls, settings: BiddingSettings, *, clock: Clock | None = None
    ) -> "Runtime":
        def connection_factory() -> AbstractContextManager:
            return get_connection(settings.db_path, timeout=settings.db_timeout_seconds)

        service = AuctionService(
            SqliteAuctionStore(connection_factory),
            clock=clock,
            max_conflict_retries=settings.max_conflict_retries,
            notification_max_attempts=settings.notification_max_attempts,
            notification_backoff_seconds=settings.notification_retry_backoff_seconds,
            broadcast_timeout_seconds=settings.broadcast_send_timeout_seconds,
        )
        return cls(service)

    async def start(self) -> None:
        await self.service.start()

    async def stop(self) -> None:
        await self.service.aclose()


def get_runtime() -> Runtime:
    """Placeholder overridden by :func:`bidhouse.app.api.create_app`."""
    raise RuntimeError("Bidhouse runtime is not configured")


def get_auction_service(runtime: Annotated[Runtime, Depends(get_runtime)]) -> AuctionService:
    return runtime.service


RuntimeDep = Annotated[Runtime, Depends(get_runtime)]
AuctionServiceDep = Annotated[AuctionService, Depends(get_auction_service)]
