"""
Storage protocol for the brokerage services.

Services talk to storage only through a unit of work: an async context manager
exposing one repository per entity. Everything done inside one unit of work is
committed together on clean exit and discarded on any exception.

Load writes are compare-and-swap on `Load.version`: `save()` succeeds only if
the stored version still equals the version the caller read, and stores
`version + 1`. A mismatch raises `StaleVersionError`.

Truck rows carry no version.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Callable, Generic, Protocol, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel

from tms.domain import (
    Bid,
    BidStatus,
    Booking,
    BookingStatus,
    ConflictError,
    Load,
    LoadStatus,
    StaleVersionError,
    Transporter,
    Truck,
)

logger = structlog.get_logger(__name__)


class LoadRepository(Protocol):
    """Protocol for load storage."""

    async def get(self, load_id: UUID) -> Load | None:
        ...

    async def list(
        self,
        shipper_id: UUID | None = None,
        status: LoadStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Load]:
        """Loads in posting order."""
        ...

    async def count(
        self,
        shipper_id: UUID | None = None,
        status: LoadStatus | None = None,
    ) -> int:
        """Number of loads matching the filters, ignoring paging."""
        ...

    async def add(self, load: Load) -> Load:
        ...

    async def save(self, load: Load) -> Load:
        """Write `load` if its version is current; return it with the bumped version."""
        ...


class BidRepository(Protocol):
    """Protocol for bid storage."""

    async def get(self, bid_id: UUID) -> Bid | None:
        ...

    async def list(
        self,
        load_id: UUID | None = None,
        transporter_id: UUID | None = None,
        status: BidStatus | None = None,
    ) -> list[Bid]:
        """Bids in submission order."""
        ...

    async def add(self, bid: Bid) -> Bid:
        ...

    async def save(self, bid: Bid) -> Bid:
        ...


class BookingRepository(Protocol):
    """Protocol for booking storage."""

    async def get(self, booking_id: UUID) -> Booking | None:
        ...

    async def list(
        self,
        load_id: UUID | None = None,
        transporter_id: UUID | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        ...

    async def add(self, booking: Booking) -> Booking:
        ...

    async def save(self, booking: Booking) -> Booking:
        ...


class TransporterRepository(Protocol):
    """Protocol for transporter storage."""

    async def get(self, transporter_id: UUID) -> Transporter | None:
        ...

    async def add(self, transporter: Transporter) -> Transporter:
        ...


class TruckRepository(Protocol):
    """Protocol for truck inventory rows."""

    async def list_for_transporter(self, transporter_id: UUID) -> list[Truck]:
        """Rows of one transporter in insertion order."""
        ...

    async def add(self, truck: Truck) -> Truck:
        ...

    async def save(self, truck: Truck) -> Truck:
        ...

    async def delete_for_transporter(self, transporter_id: UUID) -> int:
        ...


class UnitOfWork(Protocol):
    """One all-or-nothing transaction over every repository."""

    loads: LoadRepository
    bids: BidRepository
    bookings: BookingRepository
    transporters: TransporterRepository
    trucks: TruckRepository

    async def __aenter__(self) -> "UnitOfWork":
        ...

    async def __aexit__(self, exc_type, exc, tb) -> None:
        ...


UnitOfWorkFactory = Callable[[], UnitOfWork]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@asynccontextmanager
async def transaction(
    uow_factory: UnitOfWorkFactory,
    operation: str,
) -> AsyncIterator[UnitOfWork]:
    """
    Run one service operation inside a unit of work.

    A stale load version anywhere in the operation, at write or at commit,
    surfaces as a retryable `ConflictError`.

    Usage:
        async with transaction(self.uow_factory, "cancel_load") as uow:
            load = await uow.loads.get(load_id)
    """
    try:
        async with uow_factory() as uow:
            yield uow
    except StaleVersionError as exc:
        logger.info(
            "load_version_conflict",
            load_id=str(exc.load_id),
            expected_version=exc.expected_version,
            operation=operation,
        )
        raise ConflictError(exc.load_id) from exc


# =============================================================================
# In-memory implementation
# =============================================================================


M = TypeVar("M", bound=BaseModel)


class _StagedTable(Generic[M]):
    """
    Committed rows plus the writes staged by one unit of work.

    Reads see staged writes over committed rows and always return copies, so
    callers never mutate shared state directly.
    """

    def __init__(self, committed: dict[UUID, M]):
        self.committed = committed
        self.staged: dict[UUID, M] = {}
        self.deleted: set[UUID] = set()

    def get(self, key: UUID) -> M | None:
        if key in self.deleted:
            return None
        item = self.staged[key] if key in self.staged else self.committed.get(key)
        return item.model_copy(deep=True) if item is not None else None

    def values(self) -> list[M]:
        merged = {**self.committed, **self.staged}
        return [
            item.model_copy(deep=True)
            for key, item in merged.items()
            if key not in self.deleted
        ]

    def put(self, key: UUID, item: M) -> None:
        self.deleted.discard(key)
        self.staged[key] = item.model_copy(deep=True)

    def delete(self, key: UUID) -> None:
        self.staged.pop(key, None)
        self.deleted.add(key)

    def apply(self) -> None:
        for key in self.deleted:
            self.committed.pop(key, None)
        self.committed.update(self.staged)


class InMemoryLoadRepository:
    def __init__(self, table: _StagedTable[Load]):
        self._table = table
        # Version each committed load had when this unit of work first wrote it
        self.base_versions: dict[UUID, int] = {}

    async def get(self, load_id: UUID) -> Load | None:
        return self._table.get(load_id)

    def _matching(self, shipper_id: UUID | None, status: LoadStatus | None) -> list[Load]:
        return [
            load
            for load in self._table.values()
            if (shipper_id is None or load.shipper_id == shipper_id)
            and (status is None or load.status == status)
        ]

    async def list(
        self,
        shipper_id: UUID | None = None,
        status: LoadStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Load]:
        return self._matching(shipper_id, status)[offset:offset + limit]

    async def count(
        self,
        shipper_id: UUID | None = None,
        status: LoadStatus | None = None,
    ) -> int:
        return len(self._matching(shipper_id, status))

    async def add(self, load: Load) -> Load:
        self._table.put(load.load_id, load)
        return load

    async def save(self, load: Load) -> Load:
        current = self._table.get(load.load_id)
        if current is None or current.version != load.version:
            raise StaleVersionError(load.load_id, load.version)

        if load.load_id in self._table.committed:
            self.base_versions.setdefault(load.load_id, load.version)

        saved = load.model_copy(update={"version": load.version + 1})
        self._table.put(load.load_id, saved)
        return saved

    def check_versions(self) -> None:
        """Fail if another unit of work committed any load this one wrote."""
        for load_id, version in self.base_versions.items():
            committed = self._table.committed.get(load_id)
            if committed is None or committed.version != version:
                raise StaleVersionError(load_id, version)


class InMemoryBidRepository:
    def __init__(self, table: _StagedTable[Bid]):
        self._table = table

    async def get(self, bid_id: UUID) -> Bid | None:
        return self._table.get(bid_id)

    async def list(
        self,
        load_id: UUID | None = None,
        transporter_id: UUID | None = None,
        status: BidStatus | None = None,
    ) -> list[Bid]:
        return [
            bid
            for bid in self._table.values()
            if (load_id is None or bid.load_id == load_id)
            and (transporter_id is None or bid.transporter_id == transporter_id)
            and (status is None or bid.status == status)
        ]

    async def add(self, bid: Bid) -> Bid:
        self._table.put(bid.bid_id, bid)
        return bid

    async def save(self, bid: Bid) -> Bid:
        self._table.put(bid.bid_id, bid)
        return bid


class InMemoryBookingRepository:
    def __init__(self, table: _StagedTable[Booking]):
        self._table = table

    async def get(self, booking_id: UUID) -> Booking | None:
        return self._table.get(booking_id)

    async def list(
        self,
        load_id: UUID | None = None,
        transporter_id: UUID | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        return [
            booking
            for booking in self._table.values()
            if (load_id is None or booking.load_id == load_id)
            and (transporter_id is None or booking.transporter_id == transporter_id)
            and (status is None or booking.status == status)
        ]

    async def add(self, booking: Booking) -> Booking:
        self._table.put(booking.booking_id, booking)
        return booking

    async def save(self, booking: Booking) -> Booking:
        self._table.put(booking.booking_id, booking)
        return booking


class InMemoryTransporterRepository:
    def __init__(self, table: _StagedTable[Transporter]):
        self._table = table

    async def get(self, transporter_id: UUID) -> Transporter | None:
        return self._table.get(transporter_id)

    async def add(self, transporter: Transporter) -> Transporter:
        self._table.put(transporter.transporter_id, transporter)
        return transporter


class InMemoryTruckRepository:
    def __init__(self, table: _StagedTable[Truck]):
        self._table = table

    async def list_for_transporter(self, transporter_id: UUID) -> list[Truck]:
        return [t for t in self._table.values() if t.transporter_id == transporter_id]

    async def add(self, truck: Truck) -> Truck:
        self._table.put(truck.truck_id, truck)
        return truck

    async def save(self, truck: Truck) -> Truck:
        self._table.put(truck.truck_id, truck)
        return truck

    async def delete_for_transporter(self, transporter_id: UUID) -> int:
        rows = await self.list_for_transporter(transporter_id)
        for truck in rows:
            self._table.delete(truck.truck_id)
        return len(rows)


class InMemoryStore:
    """
    Committed state shared by in-memory units of work.

    Usage:
        store = InMemoryStore()
        engine = BookingEngine(store.unit_of_work)
    """

    def __init__(self):
        self.loads: dict[UUID, Load] = {}
        self.bids: dict[UUID, Bid] = {}
        self.bookings: dict[UUID, Booking] = {}
        self.transporters: dict[UUID, Transporter] = {}
        self.trucks: dict[UUID, Truck] = {}

    def unit_of_work(self) -> "InMemoryUnitOfWork":
        return InMemoryUnitOfWork(self)


class InMemoryUnitOfWork:
    """In-memory implementation for development/testing."""

    def __init__(self, store: InMemoryStore):
        self._store = store

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        self._tables = {
            "loads": _StagedTable(self._store.loads),
            "bids": _StagedTable(self._store.bids),
            "bookings": _StagedTable(self._store.bookings),
            "transporters": _StagedTable(self._store.transporters),
            "trucks": _StagedTable(self._store.trucks),
        }
        self.loads = InMemoryLoadRepository(self._tables["loads"])
        self.bids = InMemoryBidRepository(self._tables["bids"])
        self.bookings = InMemoryBookingRepository(self._tables["bookings"])
        self.transporters = InMemoryTransporterRepository(self._tables["transporters"])
        self.trucks = InMemoryTruckRepository(self._tables["trucks"])
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()

    async def commit(self) -> None:
        # No awaits between the version check and the apply: commits never interleave
        self.loads.check_versions()
        for table in self._tables.values():
            table.apply()
