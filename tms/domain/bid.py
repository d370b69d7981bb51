"""
Bid domain models.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class BidStatus(str, Enum):
    """Bid status. ACCEPTED and REJECTED are terminal."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Bid(BaseModel):
    """A transporter's offer to haul some of a load's trucks at a rate."""

    bid_id: UUID = Field(default_factory=uuid4)
    load_id: UUID
    transporter_id: UUID
    proposed_rate: Decimal | None = Field(default=None, ge=0)
    trucks_offered: int = Field(ge=1)
    truck_type: str  # Free-form, e.g. "Flatbed", "Reefer"
    status: BidStatus = BidStatus.PENDING
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = {"frozen": False}
