"""
Booking domain models.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class BookingStatus(str, Enum):
    """Booking status. CANCELLED is terminal."""

    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(BaseModel):
    """
    Accepted bid converted into allocated capacity against a load.

    A CONFIRMED booking holds `allocated_trucks` of the load's capacity and of
    the transporter's inventory until it is cancelled.
    """

    booking_id: UUID = Field(default_factory=uuid4)
    load_id: UUID
    bid_id: UUID
    transporter_id: UUID
    allocated_trucks: int = Field(ge=1)
    final_rate: Decimal = Field(gt=0)
    status: BookingStatus = BookingStatus.CONFIRMED
    booked_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}

    def is_active(self) -> bool:
        return self.status == BookingStatus.CONFIRMED
