from __future__ import annotations

import datetime as dt
from typing import Callable, Optional

from ..storage.base import ReminderSettingsState, SettingsStore
from .models import (
    DEFAULT_INTERVAL_MINUTES,
    DEFAULT_WINDOW_END,
    DEFAULT_WINDOW_START,
    ReminderDecision,
    SkipReason,
)


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _to_iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def parse_timestamp(value: str) -> dt.datetime:
    """Parse a stored ISO timestamp. Naive values are taken as UTC."""
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def normalize_time_of_day(value: str) -> str:
    """Return HH:MM:SS for an HH:MM or HH:MM:SS string. Raises ValueError."""
    return dt.time.fromisoformat(value.strip()).strftime("%H:%M:%S")


def effective_interval(settings: ReminderSettingsState) -> int:
    return settings.interval_minutes or DEFAULT_INTERVAL_MINUTES


def _minutes_since(now: dt.datetime, earlier: str) -> float:
    return (now - parse_timestamp(earlier)).total_seconds() / 60


def in_window(settings: ReminderSettingsState, now: dt.datetime) -> bool:
    time_of_day = now.strftime("%H:%M:%S")
    return settings.window_start <= time_of_day <= settings.window_end


def decide_reminder(
    settings: ReminderSettingsState,
    now: dt.datetime,
    last_activity: Callable[[str], Optional[str]],
) -> ReminderDecision:
    """Decide whether a user is due a reminder at ``now``.

    ``last_activity`` is only called once the last-sent check has passed, so
    users reminded recently cost no activity lookup.
    """
    if not settings.enabled:
        return ReminderDecision.skip(SkipReason.DISABLED)
    if not in_window(settings, now):
        return ReminderDecision.skip(SkipReason.OUTSIDE_WINDOW)

    interval = effective_interval(settings)
    if settings.last_sent_at and _minutes_since(now, settings.last_sent_at) < interval:
        return ReminderDecision.skip(SkipReason.RECENTLY_SENT)

    last_activity_at = last_activity(settings.user_id)
    if last_activity_at and _minutes_since(now, last_activity_at) < interval:
        return ReminderDecision.skip(SkipReason.RECENT_ACTIVITY)

    return ReminderDecision.dispatch()


def default_settings(user_id: str) -> ReminderSettingsState:
    return ReminderSettingsState(
        user_id=user_id,
        enabled=True,
        window_start=DEFAULT_WINDOW_START,
        window_end=DEFAULT_WINDOW_END,
        interval_minutes=DEFAULT_INTERVAL_MINUTES,
        last_sent_at=None,
        updated_at=_to_iso(_utc_now()),
    )


def get_settings(store: SettingsStore, user_id: str) -> ReminderSettingsState:
    return store.get_settings(user_id) or default_settings(user_id)


def update_settings(
    store: SettingsStore,
    user_id: str,
    enabled: Optional[bool] = None,
    window_start: Optional[str] = None,
    window_end: Optional[str] = None,
    interval_minutes: Optional[int] = None,
) -> ReminderSettingsState:
    if interval_minutes is not None and interval_minutes < 1:
        raise ValueError("interval_minutes must be a positive integer")
    current = get_settings(store, user_id)
    updated = ReminderSettingsState(
        user_id=user_id,
        enabled=enabled if enabled is not None else current.enabled,
        window_start=(
            normalize_time_of_day(window_start)
            if window_start is not None
            else current.window_start
        ),
        window_end=(
            normalize_time_of_day(window_end)
            if window_end is not None
            else current.window_end
        ),
        interval_minutes=(
            interval_minutes if interval_minutes is not None else current.interval_minutes
        ),
        last_sent_at=current.last_sent_at,
        updated_at=_to_iso(_utc_now()),
    )
    store.upsert_settings(updated)
    return store.get_settings(user_id) or updated
