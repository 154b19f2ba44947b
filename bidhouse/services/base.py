"""Base service class with shared store access and logging."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from bidhouse.domain.errors import BiddingError
from bidhouse.infrastructure.observability import get_logger, log_exception

from .store import AuctionStore

T = TypeVar("T")


class BaseService:
    """Base class for the asynchronous services.

    Store calls are blocking SQLite work, so they run in worker threads via
    :meth:`_run`; the event loop stays free for unrelated auctions.
    """

    def __init__(self, store: AuctionStore) -> None:
        self.store = store
        self._logger = get_logger(self.__class__.__module__)

    async def _run(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(fn, *args, **kwargs)

    def _finished(self, task: "asyncio.Future[Any]") -> None:
        # Retrieve the outcome so a shielded task whose caller went away
        # never warns as unhandled.
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, BiddingError):
            self._logger.debug("%s task ended with %r", self.__class__.__name__, exc)

    async def _isolated(self, what: str, awaitable: Awaitable[Any], **context: Any) -> None:
        """Await a side effect whose failure must not reach the caller."""
        try:
            await awaitable
        except Exception as exc:
            log_exception(self._logger, f"Failed to {what}", exc, **context)


__all__ = ["BaseService"]
