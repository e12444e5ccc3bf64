import logging

from fastapi import FastAPI
from lockerhub.infrastructure.config import settings
from lockerhub.infrastructure.database import Base, engine, SessionLocal
from lockerhub.infrastructure.models import models  # noqa: F401  registers tables on Base
from lockerhub.presentation.routers import router
from lockerhub.services.lockerhub_service import default_catalog, default_pricing_table, provision_lockers_service
from lockerhub.services.overtime_monitor import OvertimeMonitor

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="lockerhub")

overtime_monitor = OvertimeMonitor(
    session_factory=SessionLocal,
    pricing=default_pricing_table(),
    interval_sec=settings.overtime_sweep_interval_sec,
)


@app.on_event("startup")
def _provision_lockers_on_startup() -> None:
    """
    Register the locker fleet from the catalog; lockers already in the store keep their
    availability.
    """
    db = SessionLocal()
    try:
        provision_lockers_service(default_catalog().lockers, db)
    finally:
        db.close()


@app.on_event("startup")
def _start_overtime_monitor() -> None:
    if settings.overtime_monitor_enabled:
        overtime_monitor.start()
    else:
        logger.info("Overtime monitor disabled, overtime is evaluated on reads and pickups only")


@app.on_event("shutdown")
def _stop_overtime_monitor() -> None:
    if overtime_monitor.running:
        overtime_monitor.stop()


Base.metadata.create_all(bind=engine)
app.include_router(router)
