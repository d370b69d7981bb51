"""
Transporters API endpoints.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tms.domain import MAX_RATING, Transporter, Truck, TruckRow
from tms.services import TransporterDirectory
from tms.api.dependencies import get_transporter_directory

router = APIRouter()


class TransporterRequest(BaseModel):
    """Request to register a transporter."""

    company_name: str = Field(..., min_length=1)
    rating: float | None = Field(default=None, ge=0, le=MAX_RATING)


class UpdateTrucksRequest(BaseModel):
    """Full replacement of a transporter's truck inventory."""

    trucks: list[TruckRow]


@router.post("/", response_model=Transporter, status_code=201)
async def register_transporter(
    request: TransporterRequest,
    directory: Annotated[TransporterDirectory, Depends(get_transporter_directory)],
):
    return await directory.register_transporter(request.company_name, request.rating)


@router.get("/{transporter_id}", response_model=Transporter)
async def get_transporter(
    transporter_id: UUID,
    directory: Annotated[TransporterDirectory, Depends(get_transporter_directory)],
):
    return await directory.get_transporter(transporter_id)


@router.get("/{transporter_id}/trucks", response_model=list[Truck])
async def list_trucks(
    transporter_id: UUID,
    directory: Annotated[TransporterDirectory, Depends(get_transporter_directory)],
):
    return await directory.list_trucks(transporter_id)


@router.put("/{transporter_id}/trucks", response_model=Transporter)
async def update_trucks(
    transporter_id: UUID,
    request: UpdateTrucksRequest,
    directory: Annotated[TransporterDirectory, Depends(get_transporter_directory)],
):
    """Replace every truck row of the transporter with the given set."""
    return await directory.update_trucks(transporter_id, request.trucks)
