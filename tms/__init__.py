"""
Freight capacity brokerage core.

Shippers post loads, transporters bid on them, and accepted bids become
bookings that consume truck capacity.
"""

__version__ = "1.0.0"
