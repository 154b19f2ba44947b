from .auctions import AuctionRepository
from .base import BaseRepository
from .bids import BidRepository
from .notifications import NotificationRepository

__all__ = [
    "AuctionRepository",
    "BaseRepository",
    "BidRepository",
    "NotificationRepository",
]
