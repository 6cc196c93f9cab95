from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.api.config import load_config
from apps.api.notifications import WebPushNotifier
from apps.api.observability import init_observability, instrument_app
from apps.api.reminders_scheduler import start_scheduler
from apps.api.routes.notifications import router as notifications_router
from apps.api.routes.water import router as water_router
from packages.core.logging_config import configure_logging
from packages.core.storage.sqlite import SQLiteStore


configure_logging()
logger = logging.getLogger("hydration.api")

init_observability()
app = FastAPI(title="Cycle Compass Hydration API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
instrument_app(app)
app.include_router(notifications_router)
app.include_router(water_router)
app.state.reminder_scheduler = None


@app.get("/health")
def health() -> dict:
    scheduler = app.state.reminder_scheduler
    return {
        "status": "ok",
        "reminder_scheduler": bool(scheduler is not None and scheduler.running),
    }


@app.on_event("startup")
def _start_reminder_scheduler() -> None:
    config = load_config()
    if not config.scheduler_enabled:
        logger.info("reminder_scheduler_disabled")
        return
    if app.state.reminder_scheduler is not None:
        return
    store = SQLiteStore(db_path=config.db_path)
    notifier = WebPushNotifier(
        store,
        vapid_private_key=config.vapid_private_key,
        vapid_claims_email=config.vapid_claims_email,
        timeout=config.push_timeout_seconds,
    )
    app.state.reminder_scheduler = start_scheduler(
        store,
        store,
        notifier,
        tick_minutes=config.tick_minutes,
        mark_sent_on_failed_dispatch=config.mark_sent_on_failed_dispatch,
        timezone=config.timezone,
    )


@app.on_event("shutdown")
def _stop_reminder_scheduler() -> None:
    scheduler = app.state.reminder_scheduler
    if scheduler is None:
        return
    scheduler.shutdown()
    app.state.reminder_scheduler = None
