"""
Transporter and truck inventory domain models.
"""

from uuid import UUID, uuid4

from pydantic import BaseModel, Field


MAX_RATING = 5.0


class Transporter(BaseModel):
    """Carrier company that bids on loads with its own trucks."""

    transporter_id: UUID = Field(default_factory=uuid4)
    company_name: str
    rating: float | None = Field(default=None, ge=0, le=MAX_RATING)  # None = unrated

    model_config = {"frozen": False}


class Truck(BaseModel):
    """
    One inventory row: `count` trucks of `truck_type` owned by a transporter.

    A transporter may hold several rows of the same type. Legacy rows can
    carry a null count, which reads as zero.
    """

    truck_id: UUID = Field(default_factory=uuid4)
    transporter_id: UUID
    truck_type: str
    count: int | None = 0

    model_config = {"frozen": False}

    @property
    def effective_count(self) -> int:
        return self.count if self.count is not None else 0


class TruckRow(BaseModel):
    """Inventory row supplied when replacing a transporter's trucks."""

    truck_type: str
    count: int = Field(ge=0)

    model_config = {"frozen": True}
