"""
FastAPI application for the freight brokerage.

Provides REST endpoints for:
- Load posting, cancellation and bid ranking
- Bid submission and rejection
- Booking creation and cancellation
- Transporter registration and truck inventory
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
