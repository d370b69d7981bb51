"""
FastAPI main application.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tms import __version__
from tms.database import close_db, init_db
from tms.log import configure_logging
from .dependencies import uses_database
from .errors import register_error_handlers
from .routers import loads, bids, bookings, transporters

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI):
    configure_logging()
    if uses_database():
        await init_db()
    logger.info("api_started", database=uses_database())
    yield
    if uses_database():
        await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Freight Brokerage API",
        description="""
        Freight capacity brokerage.

        Shippers post loads that need trucks, transporters bid with their own
        trucks, and accepted bids become bookings that allocate capacity.

        ## Features

        - **Loads**: Posting, cancellation and bid ranking
        - **Bids**: Submission against live truck inventory
        - **Bookings**: Capacity allocation with optimistic concurrency
        - **Transporters**: Carriers and their truck inventory
        """,
        version=__version__,
        lifespan=lifespan,
    )

    # CORS middleware
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(application)

    # Include routers
    application.include_router(
        loads.router,
        prefix="/api/v1/loads",
        tags=["Loads"],
    )
    application.include_router(
        bids.router,
        prefix="/api/v1/bids",
        tags=["Bids"],
    )
    application.include_router(
        bookings.router,
        prefix="/api/v1/bookings",
        tags=["Bookings"],
    )
    application.include_router(
        transporters.router,
        prefix="/api/v1/transporters",
        tags=["Transporters"],
    )

    @application.get("/", tags=["Health"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Freight Brokerage API",
            "version": __version__,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @application.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "storage": "database" if uses_database() else "memory",
        }

    return application


# Create default app instance
app = create_app()
