"""
Truck inventory accounting.

A transporter's inventory is a list of (truck_type, count) rows, and several
rows may share a type. Availability sums every row of a type, but deductions
and restorations touch only the first row of that type in listing order. When
a type is split over rows, a deduction can therefore drive the first row
negative while the others keep their trucks. That behavior is kept as-is
because folding rows together would change allocation results for existing
data; negative rows are logged.
"""

from typing import Iterable
from uuid import UUID

import structlog

from tms.domain import Truck, TruckRow
from tms.services.store import TruckRepository

logger = structlog.get_logger(__name__)


class TruckInventory:
    """
    Capacity ledger over the truck rows of the current unit of work.

    Usage:
        async with uow_factory() as uow:
            inventory = TruckInventory(uow.trucks)
            if await inventory.available_count(t_id, "Flatbed") >= 2:
                await inventory.deduct(t_id, "Flatbed", 2)
    """

    def __init__(self, trucks: TruckRepository):
        self.trucks = trucks

    async def rows(self, transporter_id: UUID) -> list[Truck]:
        return await self.trucks.list_for_transporter(transporter_id)

    async def available_count(self, transporter_id: UUID, truck_type: str) -> int:
        """Total trucks of `truck_type` across all of the transporter's rows."""
        rows = await self.rows(transporter_id)
        return sum(row.effective_count for row in rows if row.truck_type == truck_type)

    async def _first_row(self, transporter_id: UUID, truck_type: str) -> Truck | None:
        for row in await self.rows(transporter_id):
            if row.truck_type == truck_type:
                return row
        return None

    async def deduct(self, transporter_id: UUID, truck_type: str, n: int) -> Truck | None:
        """
        Take `n` trucks from the first row of `truck_type`.

        The caller checks `available_count` first. Returns the updated row, or
        None when the transporter has no row of that type.
        """
        row = await self._first_row(transporter_id, truck_type)
        if row is None:
            logger.warning(
                "truck_row_missing",
                transporter_id=str(transporter_id),
                truck_type=truck_type,
                operation="deduct",
            )
            return None

        row.count = row.effective_count - n
        if row.count < 0:
            logger.warning(
                "truck_count_negative",
                transporter_id=str(transporter_id),
                truck_type=truck_type,
                truck_id=str(row.truck_id),
                count=row.count,
            )
        return await self.trucks.save(row)

    async def restore(self, transporter_id: UUID, truck_type: str, n: int) -> Truck | None:
        """Give `n` trucks back to the first row of `truck_type`."""
        row = await self._first_row(transporter_id, truck_type)
        if row is None:
            logger.warning(
                "truck_row_missing",
                transporter_id=str(transporter_id),
                truck_type=truck_type,
                operation="restore",
            )
            return None

        row.count = row.effective_count + n
        return await self.trucks.save(row)

    async def replace_all(self, transporter_id: UUID, rows: Iterable[TruckRow]) -> list[Truck]:
        """Drop every row of the transporter and insert `rows` in order."""
        removed = await self.trucks.delete_for_transporter(transporter_id)

        created = []
        for row in rows:
            truck = Truck(
                transporter_id=transporter_id,
                truck_type=row.truck_type,
                count=row.count,
            )
            created.append(await self.trucks.add(truck))

        logger.info(
            "truck_inventory_replaced",
            transporter_id=str(transporter_id),
            removed_rows=removed,
            new_rows=len(created),
        )
        return created
