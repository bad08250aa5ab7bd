import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from db.database import engine, Base, run_startup_migrations
import db.models  # noqa: F401
from api.calendar import router as calendar_router
from api.dates import router as dates_router
from services.calendar_controller import CalendarController
from services.checked_day_store import CheckedDayStore
from services.store_backends import build_backend

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

settings.validate_configuration()

# Create all tables
Base.metadata.create_all(bind=engine)
run_startup_migrations()


def build_controller() -> CalendarController:
    store = CheckedDayStore(build_backend(settings))
    return CalendarController(
        store,
        epoch=settings.TRACKING_EPOCH,
        daily_savings=settings.DAILY_SAVINGS,
        savings_goal=settings.SAVINGS_GOAL,
        tz_name=settings.TIMEZONE,
        first_weekday=settings.first_weekday,
        weekday_labels=settings.WEEKDAY_LABELS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    controller = build_controller()
    await controller.store.start()
    app.state.controller = controller
    logger.info(
        "Calendar ready with %s backend, %d checked entries loaded",
        controller.store.backend.name,
        len(controller.store.snapshot()),
    )
    try:
        yield
    finally:
        await controller.store.stop()
        app.state.controller = None


app = FastAPI(title=settings.APP_NAME, version="1.0.0", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(calendar_router, prefix="/api")
app.include_router(dates_router, prefix="/api")


@app.get("/api/health")
def health_check():
    controller = getattr(app.state, "controller", None)
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "backend": settings.store_backend,
        "subscribed": bool(controller and controller.store.subscribed),
    }

