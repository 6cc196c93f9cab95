from __future__ import annotations

import os
from dataclasses import dataclass


DEFAULT_DB_PATH = os.path.abspath(
    os.path.join(os.path.dirname(__file__), "data", "hydration.db")
)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class ServiceConfig:
    scheduler_enabled: bool
    tick_minutes: int
    mark_sent_on_failed_dispatch: bool
    timezone: str
    db_path: str
    vapid_public_key: str
    vapid_private_key: str
    vapid_claims_email: str
    push_timeout_seconds: float


def load_config() -> ServiceConfig:
    tick_minutes = int(os.getenv("REMINDERS_TICK_MINUTES", "15"))
    if tick_minutes < 1:
        raise RuntimeError("REMINDERS_TICK_MINUTES must be at least 1.")
    return ServiceConfig(
        scheduler_enabled=_env_bool("REMINDERS_SCHEDULER_ENABLED", "true"),
        tick_minutes=tick_minutes,
        mark_sent_on_failed_dispatch=_env_bool("REMINDERS_MARK_SENT_ON_FAILURE", "true"),
        timezone=os.getenv("REMINDERS_TIMEZONE", "UTC"),
        db_path=os.getenv("HYDRATION_DB_PATH", DEFAULT_DB_PATH),
        vapid_public_key=os.getenv("VAPID_PUBLIC_KEY", ""),
        vapid_private_key=os.getenv("VAPID_PRIVATE_KEY", ""),
        vapid_claims_email=os.getenv(
            "VAPID_CLAIMS_EMAIL", "mailto:noreply@cyclecompass.com"
        ),
        push_timeout_seconds=float(os.getenv("PUSH_TIMEOUT_SECONDS", "10")),
    )
