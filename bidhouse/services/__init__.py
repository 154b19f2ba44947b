"""Application services for Bidhouse.

The services coordinate the domain rules with storage, notification
delivery and real-time fanout. :class:`AuctionService` is the facade used
by the API and the CLI.
"""

from .admission import AdmissionResult, BidAdmissionController
from .auctions import AuctionService
from .broadcast import BroadcastFanout
from .clock import Clock, FixedClock, SystemClock
from .decisions import DecisionController
from .dto import AuctionDTO, BidDTO, BidResultDTO, NotificationDTO
from .notifications import NotificationDispatcher, NotificationOutbox
from .serialization import KeyedLock
from .settlement import SettlementService
from .store import AuctionStore

__all__ = [
    "AdmissionResult",
    "AuctionDTO",
    "AuctionService",
    "AuctionStore",
    "BidAdmissionController",
    "BidDTO",
    "BidResultDTO",
    "BroadcastFanout",
    "Clock",
    "DecisionController",
    "FixedClock",
    "KeyedLock",
    "NotificationDTO",
    "NotificationDispatcher",
    "NotificationOutbox",
    "SettlementService",
    "SystemClock",
]
