"""Tests for core services."""

import asyncio

import pytest
from decimal import Decimal
from uuid import uuid4

from tms.domain import (
    BidStatus,
    BookingStatus,
    ConflictError,
    InsufficientCapacityError,
    InvalidTransitionError,
    LoadStatus,
    NotFoundError,
    TruckRow,
)
from tms.services import BookingEngine, LoadRegistry
from tms.services.store import InMemoryUnitOfWork


async def flatbed_count(directory, transporter_id) -> int:
    rows = await directory.list_trucks(transporter_id)
    return sum(r.effective_count for r in rows if r.truck_type == "Flatbed")


async def assert_allocation_consistent(load_registry, booking_engine, load_id) -> None:
    load = await load_registry.get_load(load_id)
    bookings = await booking_engine.list_bookings(load_id=load_id)
    active = sum(b.allocated_trucks for b in bookings if b.is_active())
    assert active == load.allocated_trucks


class TestLoadRegistry:
    """Tests for the load registry."""

    @pytest.mark.asyncio
    async def test_create_load(self, posted_load, load_registry):
        """Test a posted load is stored POSTED with all trucks remaining."""
        stored = await load_registry.get_load(posted_load.load_id)

        assert stored.status == LoadStatus.POSTED
        assert stored.remaining_trucks == 2
        assert stored.version == 0

    @pytest.mark.asyncio
    async def test_get_unknown_load(self, load_registry):
        """Test looking up a missing load."""
        load_id = uuid4()
        with pytest.raises(NotFoundError, match=f"Load not found with id: {load_id}"):
            await load_registry.get_load(load_id)

    @pytest.mark.asyncio
    async def test_list_loads_filters(self, load_registry, load_kwargs):
        """Test listing by shipper, status and page."""
        first = await load_registry.create_load(**load_kwargs)
        second = await load_registry.create_load(**load_kwargs)
        await load_registry.create_load(**{**load_kwargs, "shipper_id": uuid4()})
        await load_registry.cancel_load(second.load_id)

        mine = await load_registry.list_loads(shipper_id=load_kwargs["shipper_id"])
        assert [load.load_id for load in mine] == [first.load_id, second.load_id]

        cancelled = await load_registry.list_loads(status=LoadStatus.CANCELLED)
        assert [load.load_id for load in cancelled] == [second.load_id]

        page = await load_registry.list_loads(limit=1, offset=1)
        assert [load.load_id for load in page] == [second.load_id]

        assert await load_registry.count_loads(shipper_id=load_kwargs["shipper_id"]) == 2
        assert await load_registry.count_loads(status=LoadStatus.CANCELLED) == 1
        assert await load_registry.count_loads() == 3

    @pytest.mark.asyncio
    async def test_cancel_load(self, posted_load, load_registry):
        """Test cancelling bumps the version."""
        cancelled = await load_registry.cancel_load(posted_load.load_id)

        assert cancelled.status == LoadStatus.CANCELLED
        assert cancelled.version == 1

    @pytest.mark.asyncio
    async def test_get_best_bids(self, posted_load, load_registry, bid_ledger, transporter_directory):
        """Test bids are ranked by the weighted price and rating score."""
        rated = await transporter_directory.register_transporter("Five Star", rating=5.0)
        unrated = await transporter_directory.register_transporter("Newcomer")
        for t in (rated, unrated):
            await transporter_directory.update_trucks(
                t.transporter_id, [TruckRow(truck_type="Flatbed", count=2)]
            )

        cheap = await bid_ledger.submit_bid(
            posted_load.load_id, unrated.transporter_id, Decimal("50"), 1, "Flatbed"
        )
        expensive = await bid_ledger.submit_bid(
            posted_load.load_id, rated.transporter_id, Decimal("100"), 1, "Flatbed"
        )

        ranked = await load_registry.get_best_bids(posted_load.load_id)

        assert [s.bid.bid_id for s in ranked] == [expensive.bid_id, cheap.bid_id]
        assert ranked[0].score == pytest.approx(0.307)
        assert ranked[1].score == pytest.approx(0.014)

    @pytest.mark.asyncio
    async def test_best_bids_empty(self, posted_load, load_registry):
        """Test a load without bids ranks nothing."""
        assert await load_registry.get_best_bids(posted_load.load_id) == []


class TestBidLedger:
    """Tests for the bid ledger."""

    @pytest.mark.asyncio
    async def test_first_bid_opens_load(self, posted_load, transporter, bid_ledger, load_registry):
        """Test the first bid moves a POSTED load to OPEN_FOR_BIDS."""
        bid = await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("100"), 2, "Flatbed"
        )

        load = await load_registry.get_load(posted_load.load_id)
        assert bid.status == BidStatus.PENDING
        assert load.status == LoadStatus.OPEN_FOR_BIDS
        assert load.version == 1

    @pytest.mark.asyncio
    async def test_later_bids_leave_load_alone(self, posted_load, transporter, bid_ledger, load_registry):
        """Test only the first bid writes the load."""
        for _ in range(3):
            await bid_ledger.submit_bid(
                posted_load.load_id, transporter.transporter_id, Decimal("100"), 1, "Flatbed"
            )

        load = await load_registry.get_load(posted_load.load_id)
        assert load.version == 1
        assert len(await bid_ledger.list_bids(load_id=posted_load.load_id)) == 3

    @pytest.mark.asyncio
    async def test_insufficient_trucks(self, posted_load, bid_ledger, transporter_directory, load_registry):
        """Test bidding more trucks than the transporter holds."""
        t = await transporter_directory.register_transporter("Small Fleet")
        await transporter_directory.update_trucks(
            t.transporter_id, [TruckRow(truck_type="Flatbed", count=1)]
        )

        with pytest.raises(InsufficientCapacityError) as exc_info:
            await bid_ledger.submit_bid(posted_load.load_id, t.transporter_id, Decimal("100"), 2, "Flatbed")

        assert exc_info.value.context["requested"] == 2
        assert exc_info.value.context["available"] == 1
        load = await load_registry.get_load(posted_load.load_id)
        assert load.status == LoadStatus.POSTED
        assert await bid_ledger.list_bids(load_id=posted_load.load_id) == []

    @pytest.mark.asyncio
    async def test_bid_on_cancelled_load(self, posted_load, transporter, bid_ledger, load_registry):
        """Test a cancelled load takes no bids."""
        await load_registry.cancel_load(posted_load.load_id)

        with pytest.raises(InvalidTransitionError):
            await bid_ledger.submit_bid(
                posted_load.load_id, transporter.transporter_id, Decimal("100"), 1, "Flatbed"
            )

    @pytest.mark.asyncio
    async def test_unknown_references(self, posted_load, transporter, bid_ledger):
        """Test bidding on a missing load or as a missing transporter."""
        with pytest.raises(NotFoundError):
            await bid_ledger.submit_bid(uuid4(), transporter.transporter_id, Decimal("100"), 1, "Flatbed")
        with pytest.raises(NotFoundError):
            await bid_ledger.submit_bid(posted_load.load_id, uuid4(), Decimal("100"), 1, "Flatbed")

    @pytest.mark.asyncio
    async def test_reject_is_idempotent(self, posted_load, transporter, bid_ledger):
        """Test rejecting twice leaves the bid REJECTED."""
        bid = await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("100"), 1, "Flatbed"
        )

        await bid_ledger.reject_bid(bid.bid_id)
        rejected = await bid_ledger.reject_bid(bid.bid_id)

        assert rejected.status == BidStatus.REJECTED
        assert (await bid_ledger.get_bid(bid.bid_id)).status == BidStatus.REJECTED

    @pytest.mark.asyncio
    async def test_reject_unknown_bid(self, bid_ledger):
        """Test rejecting a missing bid."""
        with pytest.raises(NotFoundError):
            await bid_ledger.reject_bid(uuid4())


class TestBookingEngine:
    """Tests for the booking engine."""

    @pytest.fixture
    async def bid(self, posted_load, transporter, bid_ledger):
        """A PENDING bid for both trucks of the posted load."""
        return await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("100"), 2, "Flatbed"
        )

    @pytest.mark.asyncio
    async def test_full_booking(
        self, posted_load, transporter, bid, booking_engine, load_registry, bid_ledger, transporter_directory
    ):
        """Test allocating every truck books the load."""
        booking = await booking_engine.create_booking(
            posted_load.load_id, bid.bid_id, transporter.transporter_id, 2, Decimal("4400")
        )

        load = await load_registry.get_load(posted_load.load_id)
        assert booking.status == BookingStatus.CONFIRMED
        assert load.status == LoadStatus.BOOKED
        assert load.remaining_trucks == 0
        assert (await bid_ledger.get_bid(bid.bid_id)).status == BidStatus.ACCEPTED
        assert await flatbed_count(transporter_directory, transporter.transporter_id) == 3

    @pytest.mark.asyncio
    async def test_second_accepted_bid_refused(
        self, posted_load, transporter, bid, booking_engine, bid_ledger
    ):
        """Test a load with an accepted bid refuses another booking."""
        other = await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("90"), 1, "Flatbed"
        )
        await booking_engine.create_booking(
            posted_load.load_id, bid.bid_id, transporter.transporter_id, 2, Decimal("4400")
        )

        with pytest.raises(InvalidTransitionError, match="already has an accepted bid"):
            await booking_engine.create_booking(
                posted_load.load_id, other.bid_id, transporter.transporter_id, 1, Decimal("2000")
            )

    @pytest.mark.asyncio
    async def test_partial_booking_stays_open(
        self, posted_load, transporter, bid, booking_engine, load_registry
    ):
        """Test a partial allocation leaves the load open."""
        await booking_engine.create_booking(
            posted_load.load_id, bid.bid_id, transporter.transporter_id, 1, Decimal("2200")
        )

        load = await load_registry.get_load(posted_load.load_id)
        assert load.status == LoadStatus.OPEN_FOR_BIDS
        assert load.remaining_trucks == 1

    @pytest.mark.asyncio
    async def test_exceeds_remaining(self, posted_load, transporter, bid, booking_engine, transporter_directory):
        """Test allocating more trucks than the load needs."""
        with pytest.raises(InsufficientCapacityError, match="Requested: 3, Available: 2"):
            await booking_engine.create_booking(
                posted_load.load_id, bid.bid_id, transporter.transporter_id, 3, Decimal("6000")
            )
        assert await flatbed_count(transporter_directory, transporter.transporter_id) == 5

    @pytest.mark.asyncio
    async def test_exceeds_inventory(self, posted_load, transporter, bid, booking_engine, transporter_directory):
        """Test the transporter's trucks are rechecked at booking time."""
        await transporter_directory.update_trucks(
            transporter.transporter_id, [TruckRow(truck_type="Flatbed", count=1)]
        )

        with pytest.raises(InsufficientCapacityError):
            await booking_engine.create_booking(
                posted_load.load_id, bid.bid_id, transporter.transporter_id, 2, Decimal("4400")
            )

    @pytest.mark.asyncio
    async def test_book_cancelled_load(self, posted_load, transporter, bid, booking_engine, load_registry):
        """Test a cancelled load cannot be booked."""
        await load_registry.cancel_load(posted_load.load_id)

        with pytest.raises(InvalidTransitionError):
            await booking_engine.create_booking(
                posted_load.load_id, bid.bid_id, transporter.transporter_id, 1, Decimal("2200")
            )

    @pytest.mark.asyncio
    async def test_unknown_references(self, posted_load, transporter, bid, booking_engine):
        """Test booking against missing entities."""
        with pytest.raises(NotFoundError, match="Load"):
            await booking_engine.create_booking(uuid4(), bid.bid_id, transporter.transporter_id, 1, Decimal("1"))
        with pytest.raises(NotFoundError, match="Bid"):
            await booking_engine.create_booking(
                posted_load.load_id, uuid4(), transporter.transporter_id, 1, Decimal("1")
            )
        with pytest.raises(NotFoundError, match="Transporter"):
            await booking_engine.create_booking(posted_load.load_id, bid.bid_id, uuid4(), 1, Decimal("1"))

    @pytest.mark.asyncio
    async def test_cancel_booked_load_refused(self, posted_load, transporter, bid, booking_engine, load_registry):
        """Test a BOOKED load cannot be cancelled."""
        await booking_engine.create_booking(
            posted_load.load_id, bid.bid_id, transporter.transporter_id, 2, Decimal("4400")
        )

        with pytest.raises(InvalidTransitionError):
            await load_registry.cancel_load(posted_load.load_id)


class TestBookingCancellation:
    """Tests for cancelling bookings."""

    @pytest.mark.asyncio
    async def test_cancel_reopens_load(
        self, posted_load, transporter, bid_ledger, booking_engine, load_registry, transporter_directory
    ):
        """Test cancelling a full booking restores trucks and reopens the load."""
        bid = await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("100"), 2, "Flatbed"
        )
        booking = await booking_engine.create_booking(
            posted_load.load_id, bid.bid_id, transporter.transporter_id, 2, Decimal("4400")
        )

        cancelled = await booking_engine.cancel_booking(booking.booking_id)

        load = await load_registry.get_load(posted_load.load_id)
        assert cancelled.status == BookingStatus.CANCELLED
        assert load.status == LoadStatus.OPEN_FOR_BIDS
        assert load.remaining_trucks == 2
        assert await flatbed_count(transporter_directory, transporter.transporter_id) == 5
        assert (await bid_ledger.get_bid(bid.bid_id)).status == BidStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_partial_restore_stays_booked(
        self, load_registry, load_kwargs, transporter, bid_ledger, booking_engine
    ):
        """Test a BOOKED load only reopens once fully restored."""
        load = await load_registry.create_load(**{**load_kwargs, "trucks_required": 3})
        first_bid = await bid_ledger.submit_bid(
            load.load_id, transporter.transporter_id, Decimal("100"), 1, "Flatbed"
        )
        second_bid = await bid_ledger.submit_bid(
            load.load_id, transporter.transporter_id, Decimal("100"), 2, "Flatbed"
        )

        first = await booking_engine.create_booking(
            load.load_id, first_bid.bid_id, transporter.transporter_id, 1, Decimal("1500")
        )
        await bid_ledger.reject_bid(first_bid.bid_id)
        await booking_engine.create_booking(
            load.load_id, second_bid.bid_id, transporter.transporter_id, 2, Decimal("3000")
        )
        assert (await load_registry.get_load(load.load_id)).status == LoadStatus.BOOKED

        await booking_engine.cancel_booking(first.booking_id)

        load = await load_registry.get_load(load.load_id)
        assert load.remaining_trucks == 1
        assert load.status == LoadStatus.BOOKED

    @pytest.mark.asyncio
    async def test_cancel_twice(self, posted_load, transporter, bid_ledger, booking_engine, load_registry):
        """Test a cancelled booking cannot be cancelled again."""
        bid = await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("100"), 1, "Flatbed"
        )
        booking = await booking_engine.create_booking(
            posted_load.load_id, bid.bid_id, transporter.transporter_id, 1, Decimal("2200")
        )
        await booking_engine.cancel_booking(booking.booking_id)

        with pytest.raises(InvalidTransitionError):
            await booking_engine.cancel_booking(booking.booking_id)

        load = await load_registry.get_load(posted_load.load_id)
        assert load.remaining_trucks == 2

    @pytest.mark.asyncio
    async def test_allocation_matches_active_bookings(
        self, load_registry, load_kwargs, transporter, bid_ledger, booking_engine, transporter_directory
    ):
        """Test active bookings always account for every allocated truck."""
        load = await load_registry.create_load(**{**load_kwargs, "trucks_required": 4})
        t_id = transporter.transporter_id
        bids = [
            await bid_ledger.submit_bid(load.load_id, t_id, Decimal("100"), n, "Flatbed")
            for n in (1, 2, 1)
        ]

        first = await booking_engine.create_booking(load.load_id, bids[0].bid_id, t_id, 1, Decimal("1100"))
        await assert_allocation_consistent(load_registry, booking_engine, load.load_id)

        await bid_ledger.reject_bid(bids[0].bid_id)
        await booking_engine.create_booking(load.load_id, bids[1].bid_id, t_id, 2, Decimal("2200"))
        await assert_allocation_consistent(load_registry, booking_engine, load.load_id)

        await booking_engine.cancel_booking(first.booking_id)
        await assert_allocation_consistent(load_registry, booking_engine, load.load_id)

        await bid_ledger.reject_bid(bids[1].bid_id)
        await booking_engine.create_booking(load.load_id, bids[2].bid_id, t_id, 1, Decimal("1100"))
        await assert_allocation_consistent(load_registry, booking_engine, load.load_id)

        stored = await load_registry.get_load(load.load_id)
        assert stored.remaining_trucks == 1
        assert stored.allocated_trucks == 3
        assert stored.status == LoadStatus.OPEN_FOR_BIDS
        assert await flatbed_count(transporter_directory, t_id) == 2

    @pytest.mark.asyncio
    async def test_cancel_unknown_booking(self, booking_engine):
        """Test cancelling a missing booking."""
        with pytest.raises(NotFoundError):
            await booking_engine.cancel_booking(uuid4())


class YieldingLoadRepository:
    """Hands control to the event loop after every load write."""

    def __init__(self, inner):
        self.inner = inner

    async def save(self, load):
        saved = await self.inner.save(load)
        await asyncio.sleep(0)
        return saved

    def __getattr__(self, name):
        return getattr(self.inner, name)


class InterleavingUnitOfWork(InMemoryUnitOfWork):
    async def __aenter__(self):
        await super().__aenter__()
        self.loads = YieldingLoadRepository(self.loads)
        return self


class TestConcurrentBookings:
    """Tests for optimistic concurrency on loads."""

    @pytest.fixture
    def interleaving_factory(self, store):
        return lambda: InterleavingUnitOfWork(store)

    @pytest.mark.asyncio
    async def test_one_of_two_bookings_wins(
        self, store, interleaving_factory, posted_load, transporter, bid_ledger, transporter_directory
    ):
        """Test racing bookings on one load: one commits, the other conflicts."""
        bids = [
            await bid_ledger.submit_bid(
                posted_load.load_id, transporter.transporter_id, Decimal("100"), 1, "Flatbed"
            )
            for _ in range(2)
        ]
        engine = BookingEngine(interleaving_factory)

        results = await asyncio.gather(
            *(
                engine.create_booking(
                    posted_load.load_id, b.bid_id, transporter.transporter_id, 1, Decimal("2200")
                )
                for b in bids
            ),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConflictError)]
        bookings = [r for r in results if not isinstance(r, Exception)]
        assert len(conflicts) == 1
        assert len(bookings) == 1
        assert conflicts[0].retryable

        load = store.loads[posted_load.load_id]
        assert load.remaining_trucks == 1
        assert load.version == 2
        assert len(store.bookings) == 1
        assert await flatbed_count(transporter_directory, transporter.transporter_id) == 4

    @pytest.mark.asyncio
    async def test_cancel_races_booking(
        self, store, interleaving_factory, posted_load, transporter, bid_ledger
    ):
        """Test cancelling a load while it is being booked."""
        bid = await bid_ledger.submit_bid(
            posted_load.load_id, transporter.transporter_id, Decimal("100"), 2, "Flatbed"
        )
        engine = BookingEngine(interleaving_factory)
        registry = LoadRegistry(interleaving_factory)

        results = await asyncio.gather(
            engine.create_booking(
                posted_load.load_id, bid.bid_id, transporter.transporter_id, 2, Decimal("4400")
            ),
            registry.cancel_load(posted_load.load_id),
            return_exceptions=True,
        )

        assert isinstance(results[1], ConflictError)
        assert store.loads[posted_load.load_id].status == LoadStatus.BOOKED
