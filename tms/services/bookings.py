"""
Booking Engine.

Turns an accepted bid into allocated capacity and reverses it on cancellation.
Each operation runs in one unit of work: the truck inventory, the load's
remaining trucks and status, the booking and the bid change together or not
at all.

The load write is version-checked. Two bookings racing on the same load read
the same version; the first to commit wins and the other fails with a
retryable `ConflictError`. Truck rows are not version-checked, so two bookings
against the same transporter and truck type on *different* loads can both pass
the availability check before either deducts.
"""

from decimal import Decimal
from uuid import UUID

import structlog

from tms.domain import (
    BidStatus,
    Booking,
    BookingStatus,
    InsufficientCapacityError,
    InvalidTransitionError,
    LoadStatus,
    NotFoundError,
)
from tms.services.inventory import TruckInventory
from tms.services.status import LoadAction, validate_booked_status, validate_transition
from tms.services.store import Clock, UnitOfWorkFactory, transaction, utc_now

logger = structlog.get_logger(__name__)


class BookingEngine:
    """
    Service for creating and cancelling bookings.

    Usage:
        engine = BookingEngine(store.unit_of_work)
        booking = await engine.create_booking(load_id, bid_id, transporter_id, 2, Decimal("5000"))
        await engine.cancel_booking(booking.booking_id)
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = utc_now):
        self.uow_factory = uow_factory
        self.clock = clock

    async def create_booking(
        self,
        load_id: UUID,
        bid_id: UUID,
        transporter_id: UUID,
        allocated_trucks: int,
        final_rate: Decimal,
    ) -> Booking:
        """
        Accept a bid and allocate trucks against a load.

        Args:
            load_id: Load being booked
            bid_id: Bid being accepted
            transporter_id: Transporter supplying the trucks
            allocated_trucks: Trucks to allocate
            final_rate: Agreed rate

        Returns:
            The CONFIRMED booking

        Raises:
            NotFoundError: Unknown load, bid or transporter
            InvalidTransitionError: Load is CANCELLED or already has an accepted bid
            InsufficientCapacityError: Load or transporter lacks the trucks
            ConflictError: Load changed since it was read; retry
        """
        async with transaction(self.uow_factory, "create_booking") as uow:
            load = await uow.loads.get(load_id)
            if load is None:
                raise NotFoundError("Load", load_id)

            bid = await uow.bids.get(bid_id)
            if bid is None:
                raise NotFoundError("Bid", bid_id)

            transporter = await uow.transporters.get(transporter_id)
            if transporter is None:
                raise NotFoundError("Transporter", transporter_id)

            validate_transition(load.status, LoadAction.BOOK)

            accepted = await uow.bids.list(load_id=load_id, status=BidStatus.ACCEPTED)
            if accepted:
                raise InvalidTransitionError(
                    "Load already has an accepted bid. Cannot accept multiple bids for the same load.",
                    load_id=load_id,
                    accepted_bid_id=accepted[0].bid_id,
                )

            if allocated_trucks > load.remaining_trucks:
                raise InsufficientCapacityError(
                    "Insufficient remaining trucks",
                    requested=allocated_trucks,
                    available=load.remaining_trucks,
                    load_id=load_id,
                )

            inventory = TruckInventory(uow.trucks)
            available = await inventory.available_count(transporter_id, bid.truck_type)
            if available < allocated_trucks:
                raise InsufficientCapacityError(
                    f"Insufficient trucks of type {bid.truck_type}",
                    requested=allocated_trucks,
                    available=available,
                    transporter_id=transporter_id,
                    truck_type=bid.truck_type,
                )

            await inventory.deduct(transporter_id, bid.truck_type, allocated_trucks)

            load.remaining_trucks -= allocated_trucks
            if load.remaining_trucks == 0:
                validate_booked_status(load.remaining_trucks)
                load.status = LoadStatus.BOOKED

            load = await uow.loads.save(load)

            booking = Booking(
                load_id=load_id,
                bid_id=bid_id,
                transporter_id=transporter_id,
                allocated_trucks=allocated_trucks,
                final_rate=final_rate,
                status=BookingStatus.CONFIRMED,
                booked_at=self.clock(),
            )
            booking = await uow.bookings.add(booking)

            bid.status = BidStatus.ACCEPTED
            await uow.bids.save(bid)

        logger.info(
            "booking_created",
            booking_id=str(booking.booking_id),
            load_id=str(load_id),
            bid_id=str(bid_id),
            allocated_trucks=allocated_trucks,
            remaining_trucks=load.remaining_trucks,
            load_status=load.status.value,
            load_version=load.version,
        )
        return booking

    async def get_booking(self, booking_id: UUID) -> Booking:
        async with transaction(self.uow_factory, "get_booking") as uow:
            booking = await uow.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking", booking_id)
        return booking

    async def list_bookings(
        self,
        load_id: UUID | None = None,
        transporter_id: UUID | None = None,
        status: BookingStatus | None = None,
    ) -> list[Booking]:
        async with transaction(self.uow_factory, "list_bookings") as uow:
            return await uow.bookings.list(
                load_id=load_id,
                transporter_id=transporter_id,
                status=status,
            )

    async def cancel_booking(self, booking_id: UUID) -> Booking:
        """
        Cancel a booking and give its trucks back.

        The load reopens for bids only when it was BOOKED and the cancellation
        restores its full capacity; a partial restore leaves it BOOKED. The
        bid keeps its ACCEPTED status.

        Raises:
            NotFoundError: Unknown booking, or its load or bid is gone
            InvalidTransitionError: Booking is already cancelled
            ConflictError: Load changed since it was read; retry
        """
        async with transaction(self.uow_factory, "cancel_booking") as uow:
            booking = await uow.bookings.get(booking_id)
            if booking is None:
                raise NotFoundError("Booking", booking_id)

            if booking.status == BookingStatus.CANCELLED:
                raise InvalidTransitionError(
                    f"Booking {booking_id} is already CANCELLED",
                    booking_id=booking_id,
                )

            load = await uow.loads.get(booking.load_id)
            if load is None:
                raise NotFoundError("Load", booking.load_id)

            bid = await uow.bids.get(booking.bid_id)
            if bid is None:
                raise NotFoundError("Bid", booking.bid_id)

            await TruckInventory(uow.trucks).restore(
                booking.transporter_id,
                bid.truck_type,
                booking.allocated_trucks,
            )

            was_booked = load.status == LoadStatus.BOOKED
            load.remaining_trucks += booking.allocated_trucks
            if was_booked and load.remaining_trucks == load.trucks_required:
                load.status = LoadStatus.OPEN_FOR_BIDS

            load = await uow.loads.save(load)

            booking.status = BookingStatus.CANCELLED
            booking = await uow.bookings.save(booking)

        logger.info(
            "booking_cancelled",
            booking_id=str(booking_id),
            load_id=str(load.load_id),
            restored_trucks=booking.allocated_trucks,
            remaining_trucks=load.remaining_trucks,
            load_status=load.status.value,
        )
        return booking
