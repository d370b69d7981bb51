"""
Transporter Directory.

Registers transporters and maintains their truck inventory.
"""

from typing import Iterable
from uuid import UUID

import structlog

from tms.domain import NotFoundError, Transporter, Truck, TruckRow
from tms.services.inventory import TruckInventory
from tms.services.store import UnitOfWorkFactory, transaction

logger = structlog.get_logger(__name__)


class TransporterDirectory:
    """
    Service for transporters and their trucks.

    Usage:
        directory = TransporterDirectory(store.unit_of_work)
        t = await directory.register_transporter("Acme Haulage", rating=4.2)
        await directory.update_trucks(t.transporter_id, [TruckRow(truck_type="Flatbed", count=3)])
    """

    def __init__(self, uow_factory: UnitOfWorkFactory):
        self.uow_factory = uow_factory

    async def register_transporter(self, company_name: str, rating: float | None = None) -> Transporter:
        transporter = Transporter(company_name=company_name, rating=rating)
        async with transaction(self.uow_factory, "register_transporter") as uow:
            transporter = await uow.transporters.add(transporter)

        logger.info(
            "transporter_registered",
            transporter_id=str(transporter.transporter_id),
            company_name=company_name,
        )
        return transporter

    async def get_transporter(self, transporter_id: UUID) -> Transporter:
        async with transaction(self.uow_factory, "get_transporter") as uow:
            transporter = await uow.transporters.get(transporter_id)
        if transporter is None:
            raise NotFoundError("Transporter", transporter_id)
        return transporter

    async def list_trucks(self, transporter_id: UUID) -> list[Truck]:
        async with transaction(self.uow_factory, "list_trucks") as uow:
            if await uow.transporters.get(transporter_id) is None:
                raise NotFoundError("Transporter", transporter_id)
            return await TruckInventory(uow.trucks).rows(transporter_id)

    async def update_trucks(self, transporter_id: UUID, rows: Iterable[TruckRow]) -> Transporter:
        """Replace the transporter's whole inventory with `rows`."""
        async with transaction(self.uow_factory, "update_trucks") as uow:
            transporter = await uow.transporters.get(transporter_id)
            if transporter is None:
                raise NotFoundError("Transporter", transporter_id)

            await TruckInventory(uow.trucks).replace_all(transporter_id, rows)

        return transporter
