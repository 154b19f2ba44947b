"""Per-auction publish/subscribe fanout for real-time updates."""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

from bidhouse.infrastructure.observability import get_logger, record_broadcast

from .messages import BaseMessage
from .serialization import KeyedLock

logger = get_logger(__name__)


class Subscriber(Protocol):
    """Anything with an async ``send_json``; a Starlette WebSocket qualifies."""

    async def send_json(self, data: Any) -> None: ...


class BroadcastFanout:
    """Deliver events to the current subscribers of an auction channel.

    Publishes to one channel are serialized, so subscribers see a channel's
    events in publish order and each event at most once. A subscriber whose
    send raises or takes longer than ``send_timeout_seconds`` is dropped;
    it is expected to reconnect and reconcile from a fresh snapshot.
    ``publish`` never raises.
    """

    def __init__(self, *, send_timeout_seconds: float = 5.0) -> None:
        self.send_timeout_seconds = send_timeout_seconds
        self._channels: dict[str, list[Subscriber]] = {}
        self._locks = KeyedLock()

    def subscribe(self, auction_id: str, subscriber: Subscriber) -> None:
        members = self._channels.setdefault(auction_id, [])
        if subscriber not in members:
            members.append(subscriber)
            logger.debug("Subscriber joined auction %s (%d)", auction_id, len(members))

    def unsubscribe(self, auction_id: str, subscriber: Subscriber) -> None:
        members = self._channels.get(auction_id)
        if not members:
            return
        if subscriber in members:
            members.remove(subscriber)
        if not members:
            del self._channels[auction_id]

    def subscriber_count(self, auction_id: str | None = None) -> int:
        if auction_id is not None:
            return len(self._channels.get(auction_id, ()))
        return sum(len(members) for members in self._channels.values())

    async def publish(self, auction_id: str, event: BaseMessage | dict[str, Any]) -> int:
        """Send ``event`` to every subscriber of ``auction_id``.

        Returns the number of subscribers that received it.
        """
        data = event.to_wire() if isinstance(event, BaseMessage) else event
        async with self._locks.hold(auction_id):
            members = list(self._channels.get(auction_id, ()))
            delivered = 0
            for subscriber in members:
                try:
                    await asyncio.wait_for(
                        subscriber.send_json(data), timeout=self.send_timeout_seconds
                    )
                except asyncio.TimeoutError:
                    logger.warning(
                        "Dropping slow subscriber on auction %s after %.1fs",
                        auction_id,
                        self.send_timeout_seconds,
                    )
                    self.unsubscribe(auction_id, subscriber)
                    record_broadcast("dropped")
                except Exception as exc:
                    logger.warning(
                        "Dropping subscriber on auction %s: %s", auction_id, exc
                    )
                    self.unsubscribe(auction_id, subscriber)
                    record_broadcast("dropped")
                else:
                    delivered += 1
            if delivered:
                record_broadcast("delivered", delivered)
            return delivered


__all__ = ["BroadcastFanout", "Subscriber"]
