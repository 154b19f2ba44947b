"""Notification derivation and asynchronous delivery.

:class:`NotificationDispatcher` turns an admitted bid, a seller decision or
an auction reaching ``ended`` into notification records; it performs no
I/O. :class:`NotificationOutbox` persists those records from a background
task with bounded retries and then hands them to registered sinks.
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Iterable

from bidhouse.domain.errors import NotificationDeliveryFailedError
from bidhouse.domain.models import (Auction, Bid, Notification,
                                    NotificationType)
from bidhouse.domain.money import format_amount
from bidhouse.infrastructure.observability import (get_logger, log_exception,
                                                   record_notification)

from .store import AuctionStore

logger = get_logger(__name__)

NotificationSink = Callable[[Notification], Awaitable[None]]


def _new(
    user_id: str,
    auction: Auction,
    kind: NotificationType,
    message: str,
    now: datetime,
) -> Notification:
    return Notification(
        id=uuid.uuid4().hex,
        user_id=user_id,
        auction_id=auction.id,
        type=kind,
        message=message,
        created_at=now,
    )


class NotificationDispatcher:
    """Derives who must be told what. Never addresses the acting party."""

    def for_admission(
        self,
        auction: Auction,
        bid: Bid,
        previous_bidder_id: str | None,
        now: datetime,
    ) -> list[Notification]:
        amount = format_amount(bid.amount)
        records = [
            _new(
                auction.seller_id,
                auction,
                NotificationType.NEW_BID,
                f'New bid of ${amount} placed on "{auction.title}"',
                now,
            )
        ]
        if previous_bidder_id and previous_bidder_id != bid.bidder_id:
            records.append(
                _new(
                    previous_bidder_id,
                    auction,
                    NotificationType.OUTBID,
                    f'You have been outbid on "{auction.title}". '
                    f"New highest bid: ${amount}",
                    now,
                )
            )
        return records

    def for_decision(self, auction: Auction, now: datetime) -> list[Notification]:
        if auction.current_highest_bidder_id is None or auction.current_highest_bid is None:
            return []
        amount = format_amount(auction.current_highest_bid)
        if auction.seller_decision.accepted:
            kind = NotificationType.BID_ACCEPTED
            message = f'Your bid of ${amount} for "{auction.title}" has been accepted!'
        else:
            kind = NotificationType.BID_REJECTED
            message = f'Your bid of ${amount} for "{auction.title}" has been rejected.'
        return [_new(auction.current_highest_bidder_id, auction, kind, message, now)]

    def for_auction_ended(self, auction: Auction, now: datetime) -> list[Notification]:
        if auction.current_highest_bid is None or auction.current_highest_bidder_id is None:
            return [
                _new(
                    auction.seller_id,
                    auction,
                    NotificationType.AUCTION_ENDED,
                    f'Your auction "{auction.title}" ended with no bids.',
                    now,
                )
            ]
        amount = format_amount(auction.current_highest_bid)
        return [
            _new(
                auction.seller_id,
                auction,
                NotificationType.AUCTION_ENDED,
                f'Your auction "{auction.title}" ended with a final bid of ${amount}. '
                "You can accept or reject this bid from your auction page.",
                now,
            ),
            _new(
                auction.current_highest_bidder_id,
                auction,
                NotificationType.AUCTION_ENDED,
                f'Auction "{auction.title}" has ended and you have the highest bid '
                f"of ${amount}. The seller will accept or reject it.",
                now,
            ),
        ]


class NotificationOutbox:
    """Queue of notifications awaiting storage.

    ``enqueue`` never blocks and never fails the caller. A worker task
    started by :meth:`start` stores each record, retrying with exponential
    backoff; storage is idempotent by notification id. Once stored, each
    record is passed to every sink in a task of its own.
    """

    def __init__(
        self,
        store: AuctionStore,
        *,
        max_attempts: int = 5,
        retry_backoff_seconds: float = 0.1,
        sinks: Iterable[NotificationSink] = (),
    ) -> None:
        self.store = store
        self.max_attempts = max(1, max_attempts)
        self.retry_backoff_seconds = retry_backoff_seconds
        self._sinks: list[NotificationSink] = list(sinks)
        self._queue: asyncio.Queue[Notification] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._sink_tasks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def pending(self) -> int:
        return self._queue.qsize()

    def add_sink(self, sink: NotificationSink) -> None:
        self._sinks.append(sink)

    def enqueue(self, notifications: Iterable[Notification]) -> int:
        count = 0
        for notification in notifications:
            self._queue.put_nowait(notification)
            count += 1
        return count

    async def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run_worker(), name="notification-outbox")
        logger.debug("Notification outbox started")

    async def drain(self) -> None:
        """Wait until every queued notification has been handled.

        Without a running worker the queue is processed inline.
        """
        if self.running:
            await self._queue.join()
        else:
            while not self._queue.empty():
                notification = self._queue.get_nowait()
                try:
                    await self._deliver(notification)
                finally:
                    self._queue.task_done()
        if self._sink_tasks:
            await asyncio.gather(*list(self._sink_tasks), return_exceptions=True)

    async def stop(self) -> None:
        await self.drain()
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        logger.debug("Notification outbox stopped")

    async def _run_worker(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self._deliver(notification)
            finally:
                self._queue.task_done()

    async def _deliver(self, notification: Notification) -> bool:
        delay = self.retry_backoff_seconds
        for attempt in range(1, self.max_attempts + 1):
            try:
                inserted = await asyncio.to_thread(
                    self.store.insert_notification, notification
                )
            except Exception as exc:
                if attempt == self.max_attempts:
                    failure = NotificationDeliveryFailedError(
                        f"Notification {notification.id} not stored after "
                        f"{attempt} attempts: {exc}"
                    )
                    log_exception(
                        logger,
                        "Dropping notification",
                        failure,
                        notification_id=notification.id,
                        user_id=notification.user_id,
                        auction_id=notification.auction_id,
                    )
                    record_notification("failed")
                    return False
                record_notification("retried")
                logger.warning(
                    "Storing notification %s failed (attempt %d/%d): %s",
                    notification.id,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                await asyncio.sleep(delay)
                delay *= 2
                continue
            record_notification("stored")
            if inserted:
                self._fire_sinks(notification)
            return True
        return False

    def _fire_sinks(self, notification: Notification) -> None:
        for sink in self._sinks:
            task = asyncio.create_task(self._call_sink(sink, notification))
            self._sink_tasks.add(task)
            task.add_done_callback(self._sink_tasks.discard)

    async def _call_sink(self, sink: NotificationSink, notification: Notification) -> None:
        try:
            await sink(notification)
        except Exception as exc:
            log_exception(
                logger,
                "Notification sink failed",
                exc,
                notification_id=notification.id,
                user_id=notification.user_id,
            )


__all__ = ["NotificationDispatcher", "NotificationOutbox", "NotificationSink"]
