"""
SQLAlchemy unit of work.

One session, one transaction: committed when the block exits cleanly, rolled
back on any exception. Load writes inside it are version-checked by
`LoadRecordRepository.save`.

Engines on a `StaticPool` (in-memory SQLite) hand every session the same
connection, so a rollback in one session would discard another's committed
work. Units of work on such an engine run one at a time.
"""

import asyncio
import weakref
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from .repository import (
    LoadRecordRepository,
    BidRecordRepository,
    BookingRecordRepository,
    TransporterRecordRepository,
    TruckRecordRepository,
)
from .session import get_session_factory


# One lock per shared-connection engine
_shared_connection_locks: "weakref.WeakKeyDictionary[Engine, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


def shared_connection_lock(
    session_factory: async_sessionmaker[AsyncSession],
) -> Optional[asyncio.Lock]:
    """Lock serializing units of work when the factory's engine shares one connection."""
    engine = session_factory.kw.get("bind")
    if not isinstance(engine, AsyncEngine):
        return None
    if not isinstance(engine.sync_engine.pool, StaticPool):
        return None
    return _shared_connection_locks.setdefault(engine.sync_engine, asyncio.Lock())


class SqlAlchemyUnitOfWork:
    """
    Unit of work over an async SQLAlchemy session.

    Usage:
        async with SqlAlchemyUnitOfWork() as uow:
            load = await uow.loads.get(load_id)
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory or get_session_factory()
        self._lock = shared_connection_lock(self._session_factory)

    async def __aenter__(self) -> "SqlAlchemyUnitOfWork":
        if self._lock is not None:
            await self._lock.acquire()

        self.session = self._session_factory()
        self.loads = LoadRecordRepository(self.session)
        self.bids = BidRecordRepository(self.session)
        self.bookings = BookingRecordRepository(self.session)
        self.transporters = TransporterRecordRepository(self.session)
        self.trucks = TruckRecordRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            if exc_type is None:
                await self.session.commit()
            else:
                await self.session.rollback()
        finally:
            try:
                await self.session.close()
            finally:
                if self._lock is not None:
                    self._lock.release()


def sqlalchemy_uow_factory(session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
    """Build a zero-argument unit-of-work factory for the services."""
    factory = session_factory or get_session_factory()
    return lambda: SqlAlchemyUnitOfWork(factory)
