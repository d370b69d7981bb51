"""
Load Registry.

Creates, looks up, lists and cancels loads, and ranks the bids placed on a
load. The registry owns the load's status and capacity fields at creation and
cancellation; booking-driven changes live in the booking engine.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

import structlog

from tms.domain import Load, LoadStatus, NotFoundError, WeightUnit
from tms.services.scoring import ScoredBid, ScoringPolicy
from tms.services.status import LoadAction, validate_transition
from tms.services.store import Clock, UnitOfWorkFactory, transaction, utc_now

logger = structlog.get_logger(__name__)


class LoadRegistry:
    """
    Service for the load aggregate's lifecycle outside of bookings.

    Usage:
        registry = LoadRegistry(store.unit_of_work)
        load = await registry.create_load(shipper_id=..., trucks_required=2, ...)
        ranked = await registry.get_best_bids(load.load_id)
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        scoring: ScoringPolicy | None = None,
        clock: Clock = utc_now,
    ):
        self.uow_factory = uow_factory
        self.scoring = scoring or ScoringPolicy()
        self.clock = clock

    async def create_load(
        self,
        shipper_id: UUID,
        pickup_location: str,
        delivery_location: str,
        weight: Decimal,
        cargo_type: str,
        pickup_date: datetime,
        delivery_date: datetime,
        offered_price: Decimal,
        trucks_required: int,
        weight_unit: WeightUnit = WeightUnit.KG,
    ) -> Load:
        """
        Post a new load.

        The load starts POSTED with all of its trucks remaining.
        """
        load = Load(
            shipper_id=shipper_id,
            pickup_location=pickup_location,
            delivery_location=delivery_location,
            weight=weight,
            weight_unit=weight_unit,
            cargo_type=cargo_type,
            pickup_date=pickup_date,
            delivery_date=delivery_date,
            offered_price=offered_price,
            trucks_required=trucks_required,
            remaining_trucks=trucks_required,
            status=LoadStatus.POSTED,
            date_posted=self.clock(),
        )

        async with transaction(self.uow_factory, "create_load") as uow:
            load = await uow.loads.add(load)

        logger.info(
            "load_created",
            load_id=str(load.load_id),
            shipper_id=str(shipper_id),
            trucks_required=trucks_required,
            weight_kg=str(load.weight_kg),
        )
        return load

    async def get_load(self, load_id: UUID) -> Load:
        async with transaction(self.uow_factory, "get_load") as uow:
            load = await uow.loads.get(load_id)
        if load is None:
            raise NotFoundError("Load", load_id)
        return load

    async def list_loads(
        self,
        shipper_id: UUID | None = None,
        status: LoadStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Load]:
        """List loads in posting order, optionally filtered by shipper and status."""
        async with transaction(self.uow_factory, "list_loads") as uow:
            return await uow.loads.list(
                shipper_id=shipper_id,
                status=status,
                limit=limit,
                offset=offset,
            )

    async def count_loads(
        self,
        shipper_id: UUID | None = None,
        status: LoadStatus | None = None,
    ) -> int:
        """Number of loads matching the filters, across all pages."""
        async with transaction(self.uow_factory, "count_loads") as uow:
            return await uow.loads.count(shipper_id=shipper_id, status=status)

    async def cancel_load(self, load_id: UUID) -> Load:
        """
        Cancel a load.

        Allowed from any status except BOOKED. The write is version-checked,
        so a concurrent booking makes this fail with a conflict.
        """
        async with transaction(self.uow_factory, "cancel_load") as uow:
            load = await uow.loads.get(load_id)
            if load is None:
                raise NotFoundError("Load", load_id)

            validate_transition(load.status, LoadAction.CANCEL)

            load.status = LoadStatus.CANCELLED
            load = await uow.loads.save(load)

        logger.info("load_cancelled", load_id=str(load_id), version=load.version)
        return load

    async def get_best_bids(self, load_id: UUID) -> list[ScoredBid]:
        """
        Rank every bid on a load, best first.

        Bids of all statuses are included, in the order the scoring policy
        returns them.
        """
        async with transaction(self.uow_factory, "get_best_bids") as uow:
            load = await uow.loads.get(load_id)
            if load is None:
                raise NotFoundError("Load", load_id)

            bids = await uow.bids.list(load_id=load_id)

            ratings: dict[UUID, float | None] = {}
            for bid in bids:
                if bid.transporter_id not in ratings:
                    transporter = await uow.transporters.get(bid.transporter_id)
                    ratings[bid.transporter_id] = transporter.rating if transporter else None

        return self.scoring.rank(bids, ratings)
