"""Real-time message types for Bidhouse.

Every event pushed to an auction channel shares one envelope::

    {
        "version": "1",
        "type": "<event_type>",
        "timestamp": "<ISO8601>",
        "payload": { ... }
    }

Event types:
    - connection_ready: subscriber attached
    - heartbeat: keep-alive
    - auction_snapshot: full state, sent on (re)connect
    - bid_placed: a bid was admitted
    - auction_decided: the seller accepted or rejected the highest bid
    - auction_updated: the auction changed lifecycle state

Payloads are dumped without dropping ``None`` fields so a snapshot always
carries every key, including an empty highest bid.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from .dto import AuctionDTO, BidDTO

MESSAGE_FORMAT_VERSION = "1"


class WireMessage(BaseModel):
    """Wire format for all real-time messages."""

    version: str = MESSAGE_FORMAT_VERSION
    type: str
    timestamp: str
    payload: dict[str, Any]


class BaseMessage(BaseModel):
    """Base class for all message payloads."""

    def to_wire(self) -> dict[str, Any]:
        return WireMessage(
            version=MESSAGE_FORMAT_VERSION,
            type=self._message_type,
            timestamp=datetime.now(timezone.utc).isoformat(),
            payload=self.model_dump(mode="json"),
        ).model_dump()

    @property
    def _message_type(self) -> str:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Connection messages
# ---------------------------------------------------------------------------


class ConnectionReadyMessage(BaseMessage):
    auction_id: str
    server_version: str
    message_format_version: str = MESSAGE_FORMAT_VERSION

    @property
    def _message_type(self) -> str:
        return "connection_ready"


class HeartbeatMessage(BaseMessage):
    @property
    def _message_type(self) -> str:
        return "heartbeat"


# ---------------------------------------------------------------------------
# Auction messages
# ---------------------------------------------------------------------------


class AuctionSnapshotMessage(BaseMessage):
    """Full auction state plus its bids, newest first."""

    auction: AuctionDTO
    bids: list[BidDTO] = Field(default_factory=list)

    @property
    def _message_type(self) -> str:
        return "auction_snapshot"


class BidPlacedMessage(BaseMessage):
    auction: AuctionDTO
    bid: BidDTO
    bids: list[BidDTO] = Field(default_factory=list)

    @property
    def _message_type(self) -> str:
        return "bid_placed"


class AuctionDecidedMessage(BaseMessage):
    auction: AuctionDTO
    decision: Literal["accepted", "rejected"]

    @property
    def _message_type(self) -> str:
        return "auction_decided"


class AuctionUpdatedMessage(BaseMessage):
    """Sent after a persisted lifecycle transition."""

    auction: AuctionDTO
    previous_state: str

    @property
    def _message_type(self) -> str:
        return "auction_updated"


# ---------------------------------------------------------------------------
# Factory and parsing
# ---------------------------------------------------------------------------


def create_message(message_type: str, **payload: Any) -> dict[str, Any]:
    """Create a wire-format message without instantiating a typed class."""
    return WireMessage(
        version=MESSAGE_FORMAT_VERSION,
        type=message_type,
        timestamp=datetime.now(timezone.utc).isoformat(),
        payload=payload,
    ).model_dump()


MESSAGE_TYPE_MAP: dict[str, type[BaseMessage]] = {
    "connection_ready": ConnectionReadyMessage,
    "heartbeat": HeartbeatMessage,
    "auction_snapshot": AuctionSnapshotMessage,
    "bid_placed": BidPlacedMessage,
    "auction_decided": AuctionDecidedMessage,
    "auction_updated": AuctionUpdatedMessage,
}


def parse_message(data: dict[str, Any]) -> BaseMessage | None:
    """Parse a wire-format message into a typed message object.

    Returns None for unknown types or payloads that fail validation.
    """
    msg_type = data.get("type")
    if msg_type not in MESSAGE_TYPE_MAP:
        return None
    try:
        return MESSAGE_TYPE_MAP[msg_type].model_validate(data.get("payload", {}))
    except ValidationError:
        return None


__all__ = [
    "AuctionDecidedMessage",
    "AuctionSnapshotMessage",
    "AuctionUpdatedMessage",
    "BaseMessage",
    "BidPlacedMessage",
    "ConnectionReadyMessage",
    "HeartbeatMessage",
    "MESSAGE_FORMAT_VERSION",
    "MESSAGE_TYPE_MAP",
    "WireMessage",
    "create_message",
    "parse_message",
]
