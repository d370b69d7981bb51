"""API routers."""

from . import loads, bids, bookings, transporters

__all__ = ["loads", "bids", "bookings", "transporters"]
