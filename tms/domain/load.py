"""
Load domain models.

A load is a shipment request posted by a shipper that needs one or more trucks.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, model_validator


class WeightUnit(str, Enum):
    """Unit the shipper used to state the load weight."""

    KG = "KG"
    TON = "TON"

    def to_kg(self, weight: Decimal) -> Decimal:
        """Convert a weight in this unit to kilograms (metric ton)."""
        if self is WeightUnit.TON:
            return weight * 1000
        return weight


class LoadStatus(str, Enum):
    """
    Load lifecycle status.

    POSTED -> OPEN_FOR_BIDS on the first bid, BOOKED once no trucks remain,
    CANCELLED from anywhere except BOOKED.
    """

    POSTED = "POSTED"
    OPEN_FOR_BIDS = "OPEN_FOR_BIDS"
    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"


class Load(BaseModel):
    """
    Load aggregate.

    Owns the remaining-capacity counter and the status derived from it.
    `version` is the optimistic-concurrency stamp checked on every write.
    """

    load_id: UUID = Field(default_factory=uuid4)
    shipper_id: UUID
    pickup_location: str
    delivery_location: str
    weight: Decimal = Field(gt=0)
    weight_unit: WeightUnit = WeightUnit.KG
    cargo_type: str
    pickup_date: datetime
    delivery_date: datetime
    offered_price: Decimal = Field(gt=0)
    trucks_required: int = Field(ge=1)
    remaining_trucks: int = Field(ge=0)
    status: LoadStatus = LoadStatus.POSTED
    version: int = Field(default=0, ge=0)
    date_posted: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}

    @model_validator(mode="after")
    def check_remaining_trucks(self) -> "Load":
        if self.remaining_trucks > self.trucks_required:
            raise ValueError("remaining_trucks cannot exceed trucks_required")
        return self

    @property
    def weight_kg(self) -> Decimal:
        return self.weight_unit.to_kg(self.weight)

    @property
    def allocated_trucks(self) -> int:
        """Trucks already consumed by confirmed bookings."""
        return self.trucks_required - self.remaining_trucks
