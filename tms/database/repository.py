"""
Repository pattern for database access.

Provides clean abstraction over SQLAlchemy queries with async support.
Repositories take and return domain models; records never leave this module.
"""

from datetime import datetime, timezone
from typing import Generic, TypeVar, Optional, List
from uuid import UUID

from sqlalchemy import select, delete, update, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    Base,
    LoadRecord,
    BidRecord,
    BookingRecord,
    TransporterRecord,
    TruckRecord,
)
from tms.domain import (
    Load,
    LoadStatus,
    WeightUnit,
    Bid,
    BidStatus,
    Booking,
    BookingStatus,
    Transporter,
    Truck,
    StaleVersionError,
)


T = TypeVar("T", bound=Base)


class DatabaseRepository(Generic[T]):
    """
    Generic repository with common record operations.

    Records are addressed by their UUID business key column.
    """

    def __init__(self, session: AsyncSession, model_class: type[T], key_column: str):
        self.session = session
        self.model_class = model_class
        self.key = getattr(model_class, key_column)

    async def get_record(self, key: UUID) -> Optional[T]:
        """Get a record by business key."""
        result = await self.session.execute(
            select(self.model_class).where(self.key == key)
        )
        return result.scalar_one_or_none()

    async def add_record(self, record: T) -> T:
        """Add a new record."""
        self.session.add(record)
        await self.session.flush()
        return record

    async def update_record(self, key: UUID, **values) -> T:
        """Update a record in place, inserting it if missing."""
        record = await self.get_record(key)
        if record is None:
            record = self.model_class(**{self.key.key: key}, **values)
            self.session.add(record)
        else:
            for name, value in values.items():
                setattr(record, name, value)
        await self.session.flush()
        return record


def _as_utc(value: datetime) -> datetime:
    """Normalize to UTC. SQLite drops the offset, so a naive value is already UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _load_values(load: Load) -> dict:
    return {
        "shipper_id": load.shipper_id,
        "pickup_location": load.pickup_location,
        "delivery_location": load.delivery_location,
        "weight": load.weight,
        "weight_unit": load.weight_unit.value,
        "cargo_type": load.cargo_type,
        "pickup_date": _as_utc(load.pickup_date),
        "delivery_date": _as_utc(load.delivery_date),
        "offered_price": load.offered_price,
        "trucks_required": load.trucks_required,
        "remaining_trucks": load.remaining_trucks,
        "status": load.status.value,
        "date_posted": _as_utc(load.date_posted),
    }


def _to_load(record: LoadRecord) -> Load:
    return Load(
        load_id=record.load_id,
        shipper_id=record.shipper_id,
        pickup_location=record.pickup_location,
        delivery_location=record.delivery_location,
        weight=record.weight,
        weight_unit=WeightUnit(record.weight_unit),
        cargo_type=record.cargo_type,
        pickup_date=_as_utc(record.pickup_date),
        delivery_date=_as_utc(record.delivery_date),
        offered_price=record.offered_price,
        trucks_required=record.trucks_required,
        remaining_trucks=record.remaining_trucks,
        status=LoadStatus(record.status),
        version=record.version,
        date_posted=_as_utc(record.date_posted),
    )


class LoadRecordRepository(DatabaseRepository[LoadRecord]):
    """
    Repository for loads.

    `save` is a compare-and-swap on the version column:

        UPDATE loads SET ..., version = :v + 1 WHERE load_id = :id AND version = :v

    No matched row means another transaction already moved the load on.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, LoadRecord, "load_id")

    async def get(self, load_id: UUID) -> Optional[Load]:
        record = await self.get_record(load_id)
        return _to_load(record) if record is not None else None

    def _filtered(self, query, shipper_id: Optional[UUID], status: Optional[LoadStatus]):
        if shipper_id is not None:
            query = query.where(LoadRecord.shipper_id == shipper_id)
        if status is not None:
            query = query.where(LoadRecord.status == status.value)
        return query

    async def list(
        self,
        shipper_id: Optional[UUID] = None,
        status: Optional[LoadStatus] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Load]:
        query = self._filtered(select(LoadRecord), shipper_id, status)
        query = query.order_by(LoadRecord.id).limit(limit).offset(offset)

        result = await self.session.execute(query)
        return [_to_load(r) for r in result.scalars().all()]

    async def count(
        self,
        shipper_id: Optional[UUID] = None,
        status: Optional[LoadStatus] = None,
    ) -> int:
        query = self._filtered(select(func.count()).select_from(LoadRecord), shipper_id, status)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def add(self, load: Load) -> Load:
        await self.add_record(
            LoadRecord(load_id=load.load_id, version=load.version, **_load_values(load))
        )
        return load

    async def save(self, load: Load) -> Load:
        result = await self.session.execute(
            update(LoadRecord)
            .where(
                and_(
                    LoadRecord.load_id == load.load_id,
                    LoadRecord.version == load.version,
                )
            )
            .values(version=load.version + 1, **_load_values(load))
        )
        if result.rowcount == 0:
            raise StaleVersionError(load.load_id, load.version)
        return load.model_copy(update={"version": load.version + 1})


def _to_bid(record: BidRecord) -> Bid:
    return Bid(
        bid_id=record.bid_id,
        load_id=record.load_id,
        transporter_id=record.transporter_id,
        proposed_rate=record.proposed_rate,
        trucks_offered=record.trucks_offered,
        truck_type=record.truck_type,
        status=BidStatus(record.status),
        submitted_at=_as_utc(record.submitted_at),
    )


def _bid_values(bid: Bid) -> dict:
    return {
        "load_id": bid.load_id,
        "transporter_id": bid.transporter_id,
        "proposed_rate": bid.proposed_rate,
        "trucks_offered": bid.trucks_offered,
        "truck_type": bid.truck_type,
        "status": bid.status.value,
        "submitted_at": _as_utc(bid.submitted_at),
    }


class BidRecordRepository(DatabaseRepository[BidRecord]):
    """
    Repository for bids.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, BidRecord, "bid_id")

    async def get(self, bid_id: UUID) -> Optional[Bid]:
        record = await self.get_record(bid_id)
        return _to_bid(record) if record is not None else None

    async def list(
        self,
        load_id: Optional[UUID] = None,
        transporter_id: Optional[UUID] = None,
        status: Optional[BidStatus] = None,
    ) -> List[Bid]:
        query = select(BidRecord)

        if load_id is not None:
            query = query.where(BidRecord.load_id == load_id)
        if transporter_id is not None:
            query = query.where(BidRecord.transporter_id == transporter_id)
        if status is not None:
            query = query.where(BidRecord.status == status.value)

        result = await self.session.execute(query.order_by(BidRecord.id))
        return [_to_bid(r) for r in result.scalars().all()]

    async def add(self, bid: Bid) -> Bid:
        await self.add_record(BidRecord(bid_id=bid.bid_id, **_bid_values(bid)))
        return bid

    async def save(self, bid: Bid) -> Bid:
        await self.update_record(bid.bid_id, **_bid_values(bid))
        return bid


def _to_booking(record: BookingRecord) -> Booking:
    return Booking(
        booking_id=record.booking_id,
        load_id=record.load_id,
        bid_id=record.bid_id,
        transporter_id=record.transporter_id,
        allocated_trucks=record.allocated_trucks,
        final_rate=record.final_rate,
        status=BookingStatus(record.status),
        booked_at=_as_utc(record.booked_at),
    )


def _booking_values(booking: Booking) -> dict:
    return {
        "load_id": booking.load_id,
        "bid_id": booking.bid_id,
        "transporter_id": booking.transporter_id,
        "allocated_trucks": booking.allocated_trucks,
        "final_rate": booking.final_rate,
        "status": booking.status.value,
        "booked_at": _as_utc(booking.booked_at),
    }


class BookingRecordRepository(DatabaseRepository[BookingRecord]):
    """
    Repository for bookings.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, BookingRecord, "booking_id")

    async def get(self, booking_id: UUID) -> Optional[Booking]:
        record = await self.get_record(booking_id)
        return _to_booking(record) if record is not None else None

    async def list(
        self,
        load_id: Optional[UUID] = None,
        transporter_id: Optional[UUID] = None,
        status: Optional[BookingStatus] = None,
    ) -> List[Booking]:
        query = select(BookingRecord)

        if load_id is not None:
            query = query.where(BookingRecord.load_id == load_id)
        if transporter_id is not None:
            query = query.where(BookingRecord.transporter_id == transporter_id)
        if status is not None:
            query = query.where(BookingRecord.status == status.value)

        result = await self.session.execute(query.order_by(BookingRecord.id))
        return [_to_booking(r) for r in result.scalars().all()]

    async def add(self, booking: Booking) -> Booking:
        await self.add_record(
            BookingRecord(booking_id=booking.booking_id, **_booking_values(booking))
        )
        return booking

    async def save(self, booking: Booking) -> Booking:
        await self.update_record(booking.booking_id, **_booking_values(booking))
        return booking


class TransporterRecordRepository(DatabaseRepository[TransporterRecord]):
    """
    Repository for transporters.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, TransporterRecord, "transporter_id")

    async def get(self, transporter_id: UUID) -> Optional[Transporter]:
        record = await self.get_record(transporter_id)
        if record is None:
            return None
        return Transporter(
            transporter_id=record.transporter_id,
            company_name=record.company_name,
            rating=record.rating,
        )

    async def add(self, transporter: Transporter) -> Transporter:
        await self.add_record(
            TransporterRecord(
                transporter_id=transporter.transporter_id,
                company_name=transporter.company_name,
                rating=transporter.rating,
            )
        )
        return transporter


def _to_truck(record: TruckRecord) -> Truck:
    return Truck(
        truck_id=record.truck_id,
        transporter_id=record.transporter_id,
        truck_type=record.truck_type,
        count=record.count,
    )


class TruckRecordRepository(DatabaseRepository[TruckRecord]):
    """
    Repository for truck inventory rows.

    Rows are listed in insertion order, which decides the row a deduction
    or restoration lands on.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(session, TruckRecord, "truck_id")

    async def list_for_transporter(self, transporter_id: UUID) -> List[Truck]:
        result = await self.session.execute(
            select(TruckRecord)
            .where(TruckRecord.transporter_id == transporter_id)
            .order_by(TruckRecord.id)
        )
        return [_to_truck(r) for r in result.scalars().all()]

    async def add(self, truck: Truck) -> Truck:
        await self.add_record(
            TruckRecord(
                truck_id=truck.truck_id,
                transporter_id=truck.transporter_id,
                truck_type=truck.truck_type,
                count=truck.count,
            )
        )
        return truck

    async def save(self, truck: Truck) -> Truck:
        await self.update_record(
            truck.truck_id,
            transporter_id=truck.transporter_id,
            truck_type=truck.truck_type,
            count=truck.count,
        )
        return truck

    async def delete_for_transporter(self, transporter_id: UUID) -> int:
        result = await self.session.execute(
            delete(TruckRecord).where(TruckRecord.transporter_id == transporter_id)
        )
        return result.rowcount
