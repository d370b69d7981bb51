"""
Bid Ledger.

Accepts bids from transporters, lists them, and rejects them. A bid is a
point-in-time claim: the capacity check at submission reserves nothing, so a
booking accepted later can still consume the trucks it counted.
"""

from decimal import Decimal
from uuid import UUID

import structlog

from tms.domain import (
    Bid,
    BidStatus,
    InsufficientCapacityError,
    LoadStatus,
    NotFoundError,
)
from tms.services.inventory import TruckInventory
from tms.services.status import LoadAction, validate_transition
from tms.services.store import Clock, UnitOfWorkFactory, transaction, utc_now

logger = structlog.get_logger(__name__)


class BidLedger:
    """
    Service for bid submission and review.

    Usage:
        ledger = BidLedger(store.unit_of_work)
        bid = await ledger.submit_bid(load_id, transporter_id, Decimal("1200"), 2, "Flatbed")
    """

    def __init__(self, uow_factory: UnitOfWorkFactory, clock: Clock = utc_now):
        self.uow_factory = uow_factory
        self.clock = clock

    async def submit_bid(
        self,
        load_id: UUID,
        transporter_id: UUID,
        proposed_rate: Decimal,
        trucks_offered: int,
        truck_type: str,
    ) -> Bid:
        """
        Submit a bid on a load.

        The first bid on a POSTED load opens it for bidding.

        Args:
            load_id: Load being bid on
            transporter_id: Bidding transporter
            proposed_rate: Rate asked by the transporter
            trucks_offered: Trucks the transporter offers
            truck_type: Type of the offered trucks

        Returns:
            The PENDING bid

        Raises:
            NotFoundError: Unknown load or transporter
            InvalidTransitionError: Load is BOOKED or CANCELLED
            InsufficientCapacityError: Transporter lacks trucks of that type
            ConflictError: Load changed while opening it for bids
        """
        async with transaction(self.uow_factory, "submit_bid") as uow:
            load = await uow.loads.get(load_id)
            if load is None:
                raise NotFoundError("Load", load_id)

            validate_transition(load.status, LoadAction.BID)

            transporter = await uow.transporters.get(transporter_id)
            if transporter is None:
                raise NotFoundError("Transporter", transporter_id)

            available = await TruckInventory(uow.trucks).available_count(transporter_id, truck_type)
            if trucks_offered > available:
                raise InsufficientCapacityError(
                    "Insufficient trucks available",
                    requested=trucks_offered,
                    available=available,
                    transporter_id=transporter_id,
                    truck_type=truck_type,
                )

            if load.status == LoadStatus.POSTED:
                existing = await uow.bids.list(load_id=load_id)
                if not existing:
                    load.status = LoadStatus.OPEN_FOR_BIDS
                    load = await uow.loads.save(load)

            bid = Bid(
                load_id=load_id,
                transporter_id=transporter_id,
                proposed_rate=proposed_rate,
                trucks_offered=trucks_offered,
                truck_type=truck_type,
                status=BidStatus.PENDING,
                submitted_at=self.clock(),
            )
            bid = await uow.bids.add(bid)

        logger.info(
            "bid_submitted",
            bid_id=str(bid.bid_id),
            load_id=str(load_id),
            transporter_id=str(transporter_id),
            trucks_offered=trucks_offered,
            truck_type=truck_type,
            load_status=load.status.value,
        )
        return bid

    async def list_bids(
        self,
        load_id: UUID | None = None,
        transporter_id: UUID | None = None,
        status: BidStatus | None = None,
    ) -> list[Bid]:
        """List bids in submission order; every filter is optional."""
        async with transaction(self.uow_factory, "list_bids") as uow:
            return await uow.bids.list(
                load_id=load_id,
                transporter_id=transporter_id,
                status=status,
            )

    async def get_bid(self, bid_id: UUID) -> Bid:
        async with transaction(self.uow_factory, "get_bid") as uow:
            bid = await uow.bids.get(bid_id)
        if bid is None:
            raise NotFoundError("Bid", bid_id)
        return bid

    async def reject_bid(self, bid_id: UUID) -> Bid:
        """
        Mark a bid REJECTED.

        There is no status guard: rejecting twice is a no-op and an ACCEPTED
        bid can be rejected too. Its booking, if any, is left untouched.
        """
        async with transaction(self.uow_factory, "reject_bid") as uow:
            bid = await uow.bids.get(bid_id)
            if bid is None:
                raise NotFoundError("Bid", bid_id)

            previous = bid.status
            bid.status = BidStatus.REJECTED
            bid = await uow.bids.save(bid)

        logger.info("bid_rejected", bid_id=str(bid_id), previous_status=previous.value)
        return bid
