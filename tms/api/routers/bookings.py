"""
Bookings API endpoints.
"""

from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from tms.domain import Booking, BookingStatus
from tms.services import BookingEngine
from tms.api.dependencies import get_booking_engine

router = APIRouter()


class BookingRequest(BaseModel):
    """Request to accept a bid as a booking."""

    load_id: UUID
    bid_id: UUID
    transporter_id: UUID
    allocated_trucks: int = Field(..., ge=1)
    final_rate: Decimal = Field(..., gt=0)


@router.post("/", response_model=Booking, status_code=201)
async def create_booking(
    request: BookingRequest,
    engine: Annotated[BookingEngine, Depends(get_booking_engine)],
):
    """
    Accept a bid and allocate trucks against the load.

    Returns 409 when the load changed concurrently; the request can be retried.
    """
    return await engine.create_booking(**request.model_dump())


@router.get("/", response_model=list[Booking])
async def list_bookings(
    engine: Annotated[BookingEngine, Depends(get_booking_engine)],
    load_id: UUID | None = Query(default=None),
    transporter_id: UUID | None = Query(default=None),
    status: BookingStatus | None = Query(default=None),
):
    return await engine.list_bookings(
        load_id=load_id,
        transporter_id=transporter_id,
        status=status,
    )


@router.get("/{booking_id}", response_model=Booking)
async def get_booking(
    booking_id: UUID,
    engine: Annotated[BookingEngine, Depends(get_booking_engine)],
):
    return await engine.get_booking(booking_id)


@router.patch("/{booking_id}/cancel", response_model=Booking)
async def cancel_booking(
    booking_id: UUID,
    engine: Annotated[BookingEngine, Depends(get_booking_engine)],
):
    """Cancel a booking and return its trucks to the load and the transporter."""
    return await engine.cancel_booking(booking_id)
