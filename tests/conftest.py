"""Pytest fixtures for freight brokerage tests."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from tms.domain import Load, TruckRow
from tms.services import (
    BidLedger,
    BookingEngine,
    InMemoryStore,
    LoadRegistry,
    TransporterDirectory,
)


@pytest.fixture
def store() -> InMemoryStore:
    """Fresh in-memory store."""
    return InMemoryStore()


@pytest.fixture
def load_registry(store) -> LoadRegistry:
    return LoadRegistry(store.unit_of_work)


@pytest.fixture
def bid_ledger(store) -> BidLedger:
    return BidLedger(store.unit_of_work)


@pytest.fixture
def booking_engine(store) -> BookingEngine:
    return BookingEngine(store.unit_of_work)


@pytest.fixture
def transporter_directory(store) -> TransporterDirectory:
    return TransporterDirectory(store.unit_of_work)


@pytest.fixture
def load_kwargs() -> dict:
    """Arguments for posting a two-truck load."""
    pickup = datetime(2026, 11, 2, 8, 0, tzinfo=timezone.utc)
    return {
        "shipper_id": uuid4(),
        "pickup_location": "Chicago, IL",
        "delivery_location": "Dallas, TX",
        "weight": Decimal("18000"),
        "cargo_type": "Steel coils",
        "pickup_date": pickup,
        "delivery_date": pickup + timedelta(days=2),
        "offered_price": Decimal("4500.00"),
        "trucks_required": 2,
    }


@pytest.fixture
def sample_load(load_kwargs) -> Load:
    """A POSTED load that was never stored."""
    return Load(remaining_trucks=load_kwargs["trucks_required"], **load_kwargs)


@pytest.fixture
async def posted_load(load_registry, load_kwargs) -> Load:
    """A stored POSTED load needing 2 trucks."""
    return await load_registry.create_load(**load_kwargs)


@pytest.fixture
async def transporter(transporter_directory):
    """A rated transporter holding 5 Flatbeds."""
    t = await transporter_directory.register_transporter("Acme Haulage", rating=4.0)
    await transporter_directory.update_trucks(
        t.transporter_id, [TruckRow(truck_type="Flatbed", count=5)]
    )
    return t
