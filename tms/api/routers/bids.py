"""
Bids API endpoints.
"""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from tms.domain import Bid, BidStatus
from tms.services import BidLedger
from tms.api.dependencies import get_bid_ledger

router = APIRouter()


class BidRequest(BaseModel):
    """Request to submit a bid."""

    load_id: UUID
    transporter_id: UUID
    proposed_rate: Decimal = Field(..., gt=0)
    trucks_offered: int = Field(..., ge=1)
    truck_type: str = Field(..., min_length=1)


@router.post("/", response_model=Bid, status_code=201)
async def submit_bid(
    request: BidRequest,
    ledger: Annotated[BidLedger, Depends(get_bid_ledger)],
):
    """
    Submit a bid on a load.

    The first bid on a POSTED load opens it for bidding.
    """
    return await ledger.submit_bid(**request.model_dump())


@router.get("/", response_model=list[Bid])
async def list_bids(
    ledger: Annotated[BidLedger, Depends(get_bid_ledger)],
    load_id: UUID | None = Query(default=None),
    transporter_id: UUID | None = Query(default=None),
    status: BidStatus | None = Query(default=None),
):
    """List bids in submission order, optionally filtered."""
    return await ledger.list_bids(
        load_id=load_id,
        transporter_id=transporter_id,
        status=status,
    )


@router.get("/{bid_id}", response_model=Bid)
async def get_bid(
    bid_id: UUID,
    ledger: Annotated[BidLedger, Depends(get_bid_ledger)],
):
    return await ledger.get_bid(bid_id)


@router.patch("/{bid_id}/reject", response_model=Bid)
async def reject_bid(
    bid_id: UUID,
    ledger: Annotated[BidLedger, Depends(get_bid_ledger)],
):
    return await ledger.reject_bid(bid_id)
