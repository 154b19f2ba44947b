"""Notification domain model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .auction import parse_datetime


class NotificationType(str, Enum):
    NEW_BID = "new_bid"
    OUTBID = "outbid"
    BID_ACCEPTED = "bid_accepted"
    BID_REJECTED = "bid_rejected"
    AUCTION_ENDED = "auction_ended"


@dataclass(frozen=True)
class Notification:
    """A message addressed to one user about one auction."""

    id: str
    user_id: str
    auction_id: str
    type: NotificationType
    message: str
    created_at: datetime
    read: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "Notification":
        created_at = parse_datetime(data.get("created_at"))
        if created_at is None:
            raise ValueError(f"Notification row {data.get('id')!r} has no creation time")
        return cls(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            auction_id=str(data["auction_id"]),
            type=NotificationType(data["type"]),
            message=str(data.get("message") or ""),
            created_at=created_at,
            read=bool(data.get("read")),
        )


__all__ = ["Notification", "NotificationType"]
