"""
Core services for the freight brokerage.

Business logic layer containing:
- Loads: load lifecycle and bid ranking
- Bids: bid submission and review
- Bookings: capacity allocation under optimistic concurrency
- Transporters: carriers and their truck inventory
"""

from .loads import LoadRegistry
from .bids import BidLedger
from .bookings import BookingEngine
from .transporters import TransporterDirectory
from .inventory import TruckInventory
from .scoring import ScoringPolicy, ScoringWeights, ScoredBid
from .status import LoadAction, validate_transition, validate_booked_status
from .store import InMemoryStore, UnitOfWork, transaction

__all__ = [
    "LoadRegistry",
    "BidLedger",
    "BookingEngine",
    "TransporterDirectory",
    "TruckInventory",
    "ScoringPolicy",
    "ScoringWeights",
    "ScoredBid",
    "LoadAction",
    "validate_transition",
    "validate_booked_status",
    "InMemoryStore",
    "UnitOfWork",
    "transaction",
]
