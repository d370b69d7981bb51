"""
API dependencies.

Provides dependency injection for FastAPI routes.
"""

import os

from tms.database import sqlalchemy_uow_factory
from tms.services import (
    BidLedger,
    BookingEngine,
    InMemoryStore,
    LoadRegistry,
    TransporterDirectory,
)
from tms.services.store import UnitOfWorkFactory


def uses_database() -> bool:
    """The SQL store is used whenever DATABASE_URL is configured."""
    return bool(os.getenv("DATABASE_URL"))


class AppState:
    """Application state container."""

    _instance: "AppState | None" = None

    def __init__(self, uow_factory: UnitOfWorkFactory | None = None):
        if uow_factory is None:
            if uses_database():
                uow_factory = sqlalchemy_uow_factory()
            else:
                self.store = InMemoryStore()
                uow_factory = self.store.unit_of_work

        self.uow_factory = uow_factory
        self.load_registry = LoadRegistry(uow_factory)
        self.bid_ledger = BidLedger(uow_factory)
        self.booking_engine = BookingEngine(uow_factory)
        self.transporter_directory = TransporterDirectory(uow_factory)

    @classmethod
    def get_instance(cls) -> "AppState":
        """Get or create singleton instance."""
        if cls._instance is None:
            cls._instance = AppState()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset singleton (for testing)."""
        cls._instance = None


def get_load_registry() -> LoadRegistry:
    """Dependency for load registry."""
    return AppState.get_instance().load_registry


def get_bid_ledger() -> BidLedger:
    """Dependency for bid ledger."""
    return AppState.get_instance().bid_ledger


def get_booking_engine() -> BookingEngine:
    """Dependency for booking engine."""
    return AppState.get_instance().booking_engine


def get_transporter_directory() -> TransporterDirectory:
    """Dependency for transporter directory."""
    return AppState.get_instance().transporter_directory
