"""
Database layer for the freight brokerage.

Provides async SQLAlchemy models, repositories and a unit of work that
implements the storage protocol used by the services.
"""

from .models import Base, LoadRecord, BidRecord, BookingRecord, TransporterRecord, TruckRecord
from .repository import (
    DatabaseRepository,
    LoadRecordRepository,
    BidRecordRepository,
    BookingRecordRepository,
    TransporterRecordRepository,
    TruckRecordRepository,
)
from .session import get_engine, get_session_factory, init_db, close_db
from .unit_of_work import SqlAlchemyUnitOfWork, sqlalchemy_uow_factory

__all__ = [
    "Base",
    "LoadRecord",
    "BidRecord",
    "BookingRecord",
    "TransporterRecord",
    "TruckRecord",
    "DatabaseRepository",
    "LoadRecordRepository",
    "BidRecordRepository",
    "BookingRecordRepository",
    "TransporterRecordRepository",
    "TruckRecordRepository",
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
    "SqlAlchemyUnitOfWork",
    "sqlalchemy_uow_factory",
]
