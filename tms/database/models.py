"""
SQLAlchemy database models for the freight brokerage.

Provides persistent storage for:
- Loads, with their optimistic-concurrency version
- Bids and bookings
- Transporters and their truck inventory rows

Every table has an integer surrogate key, which also fixes insertion order,
and a UUID business key referenced by the other tables.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    Float,
    Numeric,
    DateTime,
    Uuid,
    Index,
)
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


class LoadRecord(Base):
    """
    Load record.

    `version` is written only through a compare-and-swap UPDATE in the
    repository, never by assigning the attribute.
    """
    __tablename__ = "loads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    load_id = Column(Uuid, unique=True, nullable=False)
    shipper_id = Column(Uuid, nullable=False, index=True)
    pickup_location = Column(String(255), nullable=False)
    delivery_location = Column(String(255), nullable=False)
    weight = Column(Numeric(12, 3), nullable=False)
    weight_unit = Column(String(8), nullable=False, default="KG")
    cargo_type = Column(String(100), nullable=False)
    pickup_date = Column(DateTime(timezone=True), nullable=False)
    delivery_date = Column(DateTime(timezone=True), nullable=False)
    offered_price = Column(Numeric(12, 2), nullable=False)
    trucks_required = Column(Integer, nullable=False)
    remaining_trucks = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, index=True)
    version = Column(Integer, nullable=False, default=0)
    date_posted = Column(DateTime(timezone=True), nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class TransporterRecord(Base):
    """Transporter record."""
    __tablename__ = "transporters"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transporter_id = Column(Uuid, unique=True, nullable=False)
    company_name = Column(String(255), nullable=False, index=True)
    rating = Column(Float, nullable=True)  # None = unrated

    created_at = Column(DateTime(timezone=True), default=_utcnow)


class TruckRecord(Base):
    """
    Truck inventory row.

    No version column: inventory writes are last-writer-wins.
    """
    __tablename__ = "trucks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    truck_id = Column(Uuid, unique=True, nullable=False)
    transporter_id = Column(Uuid, nullable=False, index=True)
    truck_type = Column(String(50), nullable=False)
    count = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_trucks_transporter_type", "transporter_id", "truck_type"),
    )


class BidRecord(Base):
    """Bid record."""
    __tablename__ = "bids"

    id = Column(Integer, primary_key=True, autoincrement=True)
    bid_id = Column(Uuid, unique=True, nullable=False)
    load_id = Column(Uuid, nullable=False, index=True)
    transporter_id = Column(Uuid, nullable=False, index=True)
    proposed_rate = Column(Numeric(12, 2), nullable=True)
    trucks_offered = Column(Integer, nullable=False)
    truck_type = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False)  # PENDING, ACCEPTED, REJECTED
    submitted_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_bids_load_status", "load_id", "status"),
    )


class BookingRecord(Base):
    """Booking record."""
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    booking_id = Column(Uuid, unique=True, nullable=False)
    load_id = Column(Uuid, nullable=False, index=True)
    bid_id = Column(Uuid, nullable=False, index=True)
    transporter_id = Column(Uuid, nullable=False, index=True)
    allocated_trucks = Column(Integer, nullable=False)
    final_rate = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False)  # CONFIRMED, CANCELLED
    booked_at = Column(DateTime(timezone=True), nullable=False)
