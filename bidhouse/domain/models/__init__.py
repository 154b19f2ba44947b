"""Domain models package.

This package contains domain model classes for Bidhouse.
"""

from .auction import (Auction, AuctionState, Bid, SellerDecision,
                      compute_end_time, parse_datetime)
from .notification import Notification, NotificationType

__all__ = [
    "Auction",
    "AuctionState",
    "Bid",
    "Notification",
    "NotificationType",
    "SellerDecision",
    "compute_end_time",
    "parse_datetime",
]
