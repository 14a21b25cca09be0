"""
FastAPI app entrypoint.

Patient notification backend: scheduled clinical checks (IOP, missed medication, inventory,
appointments), Web Push delivery, location reminders and compliance reports.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from gtms.api.deps import get_task_runner
from gtms.api.routes import compliance, location, notifications, push, sounds
from gtms.config import build_notification_config, settings
from gtms.core.constants import (
    APPOINTMENT_REMINDER_CRON,
    APPOINTMENT_REMINDER_JOB_ID,
    HIGH_IOP_CRON,
    HIGH_IOP_JOB_ID,
    LOW_INVENTORY_CRON,
    LOW_INVENTORY_JOB_ID,
    MISSED_MEDICATION_CRON,
    MISSED_MEDICATION_JOB_ID,
)
from gtms.core.errors import register_error_handlers
from gtms.scheduler.appointment_reminder_job import run_appointment_reminder_job
from gtms.scheduler.high_iop_job import run_high_iop_job
from gtms.scheduler.low_inventory_job import run_low_inventory_job
from gtms.scheduler.missed_medication_job import run_missed_medication_job
from gtms.scheduler.runner import TaskRunner, task_runner
from gtms.services.dispatcher import DeliveryDispatcher
from gtms.services.notification_factory import NotificationFactory
from gtms.services.notifier import Notifier

logging.basicConfig(level=settings.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

_SCHEDULED_CHECKS = (
    (HIGH_IOP_JOB_ID, run_high_iop_job, HIGH_IOP_CRON),
    (MISSED_MEDICATION_JOB_ID, run_missed_medication_job, MISSED_MEDICATION_CRON),
    (LOW_INVENTORY_JOB_ID, run_low_inventory_job, LOW_INVENTORY_CRON),
    (APPOINTMENT_REMINDER_JOB_ID, run_appointment_reminder_job, APPOINTMENT_REMINDER_CRON),
)


def build_notifier() -> Notifier:
    config = build_notification_config()
    return Notifier(NotificationFactory(config), DeliveryDispatcher(config))


@asynccontextmanager
async def lifespan(app: FastAPI):
    notifier = build_notifier()
    app.state.notification_config = notifier.factory.config
    app.state.notifier = notifier
    app.state.task_runner = task_runner

    # Jobs run on the scheduler worker threads, off the request loop
    scheduler = BackgroundScheduler()
    if settings.scheduler_enabled:
        for job_id, job, cron in _SCHEDULED_CHECKS:
            scheduler.add_job(
                task_runner.wrap(job_id, job),
                "cron",
                id=job_id,
                args=[notifier],
                max_instances=1,
                coalesce=True,
                **cron,
            )
        scheduler.start()
        logger.info("Scheduler started with %s checks", len(_SCHEDULED_CHECKS))
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false)")
    if not notifier.factory.config.push_configured:
        logger.warning("VAPID keys not set; notifications will be in-app only")
    app.state.scheduler = scheduler
    yield
    if scheduler.running:
        scheduler.shutdown(wait=False)


app = FastAPI(title="GTMS Notifications", version="0.1.0", lifespan=lifespan)
register_error_handlers(app)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated)
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notifications.router, prefix="/api/patient", tags=["notifications"])
app.include_router(push.router, prefix="/api/patient", tags=["push"])
app.include_router(location.router, prefix="/api/patient", tags=["location"])
app.include_router(compliance.router, prefix="/api/patient", tags=["compliance"])
app.include_router(sounds.router, prefix="/api", tags=["sounds"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health/tasks")
def health_tasks(runner: TaskRunner = Depends(get_task_runner)) -> dict:
    """Last-run status per scheduled check (in-memory, resets on restart)."""
    return {"tasks": runner.status(), "scheduler_enabled": settings.scheduler_enabled}
