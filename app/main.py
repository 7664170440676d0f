import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routers.booking_api import router as booking_api_router
from app.api.routers.bookings import router as bookings_router
from app.api.routers.cpl_mappings import router as cpl_mappings_router
from app.api.routers.distributors import router as distributors_router
from app.api.routers.orders import router as orders_router
from app.api.routers.user_profile import router as user_profile_router
from app.api.routers.users import router as users_router
from app.core.config import settings
from app.db.session import SessionLocal
from app.services.delivery_status_service import DeliveryStatusMonitor

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    monitor = DeliveryStatusMonitor(SessionLocal)
    app.state.status_monitor = monitor
    if settings.STATUS_POLL_ENABLED:
        monitor.start(settings.STATUS_POLL_INTERVAL_SECONDS)
        logger.info(
            "delivery_status_monitor_started interval=%s",
            settings.STATUS_POLL_INTERVAL_SECONDS,
        )
    try:
        yield
    finally:
        monitor.stop()


app = FastAPI(title="REELWIRE API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], # For development; restrict to the dashboard origin in production
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orders_router)
app.include_router(cpl_mappings_router)
app.include_router(bookings_router)
app.include_router(distributors_router)
app.include_router(users_router)
app.include_router(user_profile_router)
app.include_router(booking_api_router)

@app.get("/health")
def health():
    return {"status": "up"}
