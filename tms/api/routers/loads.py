"""
Loads API endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from tms.domain import Bid, Load, LoadStatus, WeightUnit
from tms.services import LoadRegistry
from tms.api.dependencies import get_load_registry

router = APIRouter()


class LoadRequest(BaseModel):
    """Request to post a load."""

    shipper_id: UUID
    pickup_location: str = Field(..., min_length=1)
    delivery_location: str = Field(..., min_length=1)
    weight: Decimal = Field(..., gt=0)
    weight_unit: WeightUnit = WeightUnit.KG
    cargo_type: str = Field(..., min_length=1)
    pickup_date: datetime
    delivery_date: datetime
    offered_price: Decimal = Field(..., gt=0)
    trucks_required: int = Field(..., ge=1)


class LoadList(BaseModel):
    """Page of loads with the total number of matches."""

    loads: list[Load]
    total: int


class RankedBid(BaseModel):
    """Bid with its ranking score."""

    bid: Bid
    score: float


@router.post("/", response_model=Load, status_code=201)
async def create_load(
    request: LoadRequest,
    registry: Annotated[LoadRegistry, Depends(get_load_registry)],
):
    """Post a new load. It starts POSTED with all trucks remaining."""
    return await registry.create_load(**request.model_dump())


@router.get("/", response_model=LoadList)
async def list_loads(
    registry: Annotated[LoadRegistry, Depends(get_load_registry)],
    shipper_id: UUID | None = Query(default=None),
    status: LoadStatus | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
):
    """
    List loads in posting order.

    Optionally filter by shipper and status. `total` counts every matching
    load, not just the returned page.
    """
    loads = await registry.list_loads(
        shipper_id=shipper_id,
        status=status,
        limit=limit,
        offset=offset,
    )
    total = await registry.count_loads(shipper_id=shipper_id, status=status)
    return LoadList(loads=loads, total=total)


@router.get("/{load_id}", response_model=Load)
async def get_load(
    load_id: UUID,
    registry: Annotated[LoadRegistry, Depends(get_load_registry)],
):
    return await registry.get_load(load_id)


@router.patch("/{load_id}/cancel", response_model=Load)
async def cancel_load(
    load_id: UUID,
    registry: Annotated[LoadRegistry, Depends(get_load_registry)],
):
    """Cancel a load. Refused once the load is BOOKED."""
    return await registry.cancel_load(load_id)


@router.get("/{load_id}/best-bids", response_model=list[RankedBid])
async def get_best_bids(
    load_id: UUID,
    registry: Annotated[LoadRegistry, Depends(get_load_registry)],
):
    """
    Rank every bid on the load, best first.

    Score = 0.7 / proposed_rate + 0.3 * rating / 5.
    """
    ranked = await registry.get_best_bids(load_id)
    return [RankedBid(bid=s.bid, score=s.score) for s in ranked]
