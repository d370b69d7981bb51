"""
Domain models for the freight brokerage core.

Core business entities: loads, bids, bookings, transporters and their trucks.
All models use Pydantic for validation and serialization.
"""

from .load import Load, LoadStatus, WeightUnit
from .bid import Bid, BidStatus
from .booking import Booking, BookingStatus
from .transporter import Transporter, Truck, TruckRow, MAX_RATING
from .errors import (
    ErrorKind,
    BrokerError,
    NotFoundError,
    InvalidTransitionError,
    InsufficientCapacityError,
    ConflictError,
    StaleVersionError,
)

__all__ = [
    # Load
    "Load",
    "LoadStatus",
    "WeightUnit",
    # Bid
    "Bid",
    "BidStatus",
    # Booking
    "Booking",
    "BookingStatus",
    # Transporter
    "Transporter",
    "Truck",
    "TruckRow",
    "MAX_RATING",
    # Errors
    "ErrorKind",
    "BrokerError",
    "NotFoundError",
    "InvalidTransitionError",
    "InsufficientCapacityError",
    "ConflictError",
    "StaleVersionError",
]
