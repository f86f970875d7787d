import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import async_sessionmaker

from booking_engine.api.v1.admin.operating_hours import router as admin_hours_router
from booking_engine.api.v1.public.router import router as public_router
from booking_engine.core.config import Settings, get_settings
from booking_engine.core.database import create_engine, create_session_factory, init_models
from booking_engine.core.logging_config import setup_logging
from booking_engine.core.timeutils import utcnow
from booking_engine.services import (
    BookingService,
    EntityStore,
    HoursService,
    SlotService,
    StaffLockRegistry,
)

logger = logging.getLogger(__name__)


def configure_services(
    app: FastAPI,
    session_factory: async_sessionmaker,
    settings: Settings | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> None:
    """Attach the store and engines to app.state for the request dependencies."""
    settings = settings or get_settings()
    store = EntityStore(session_factory)
    slot_service = SlotService(store, settings=settings, clock=clock)

    app.state.store = store
    app.state.slot_service = slot_service
    app.state.booking_service = BookingService(
        store,
        slot_service,
        locks=StaffLockRegistry(settings.STAFF_LOCK_TIMEOUT_SECONDS),
        settings=settings,
    )
    app.state.hours_service = HoursService(store)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings = get_settings()
    setup_logging(settings)

    engine = create_engine(settings)
    if settings.CREATE_TABLES_ON_STARTUP:
        await init_models(engine)
    configure_services(app, create_session_factory(engine), settings)
    logger.info("Booking engine started")

    yield

    await engine.dispose()
    logger.info("Booking engine stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="Booking Engine",
        description="Availability and appointment booking API",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(public_router, prefix="/api/v1", tags=["Booking"])
    app.include_router(admin_hours_router, prefix="/api/v1/admin", tags=["Admin Hours"])

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app


app = create_app()
