from __future__ import annotations

import datetime as dt
import logging
from contextlib import nullcontext
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler

try:
    from opentelemetry import trace
except Exception:  # pragma: no cover - optional dependency resolution
    trace = None

from apps.api.notifications import Notifier
from packages.core.reminders.models import (
    HYDRATION_REMINDER,
    NotificationPayload,
    ReminderDecision,
    TickReport,
)
from packages.core.reminders.service import decide_reminder
from packages.core.storage.base import (
    ActivityStore,
    ReminderSettingsState,
    SettingsStore,
)


logger = logging.getLogger("hydration.reminders")

DEFAULT_TICK_MINUTES = 15
JOB_ID = "water_reminders"


def _local_clock(timezone: str) -> Callable[[], dt.datetime]:
    zone = ZoneInfo(timezone)

    def _now() -> dt.datetime:
        return dt.datetime.now(zone)

    return _now


class ReminderScheduler:
    """Periodically reminds users to drink water.

    Each tick reads every candidate's settings and last activity afresh, so
    nothing but the timer itself lives between ticks. ``run_tick`` can be
    called directly with an explicit ``now``.
    """

    def __init__(
        self,
        settings_store: SettingsStore,
        activity_store: ActivityStore,
        notifier: Notifier,
        tick_minutes: int = DEFAULT_TICK_MINUTES,
        mark_sent_on_failed_dispatch: bool = True,
        clock: Optional[Callable[[], dt.datetime]] = None,
        payload: NotificationPayload = HYDRATION_REMINDER,
    ) -> None:
        if tick_minutes < 1:
            raise ValueError("tick_minutes must be at least 1")
        self._settings_store = settings_store
        self._activity_store = activity_store
        self._notifier = notifier
        self._tick_minutes = tick_minutes
        self._mark_sent_on_failed_dispatch = mark_sent_on_failed_dispatch
        self._clock = clock or (lambda: dt.datetime.now(dt.timezone.utc))
        self._payload = payload
        self._scheduler: Optional[BackgroundScheduler] = None
        self._tracer = trace.get_tracer("hydration.reminders") if trace else None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def initialize(self) -> BackgroundScheduler:
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self.run_tick,
            "interval",
            minutes=self._tick_minutes,
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("reminder_scheduler_started tick_minutes=%s", self._tick_minutes)
        return scheduler

    def shutdown(self) -> None:
        if self._scheduler is None:
            return
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
        self._scheduler = None
        logger.info("reminder_scheduler_stopped")

    def run_tick(self, now: Optional[dt.datetime] = None) -> TickReport:
        now = now or self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=dt.timezone.utc)
        report = TickReport(now=now.isoformat())
        span_context = (
            self._tracer.start_as_current_span(
                "reminders.tick", attributes={"reminders.now": report.now}
            )
            if self._tracer
            else nullcontext()
        )
        with span_context:
            logger.info("reminder_tick_started now=%s", report.now)
            if not self._notifier.configured:
                logger.warning("reminder_tick_skipped now=%s reason=notifier_not_configured", report.now)
                report.notifier_unavailable = True
                return report

            try:
                candidates = self._settings_store.list_due_candidates(now)
            except Exception as exc:
                logger.exception("reminder_tick_failed now=%s error=%s", report.now, exc)
                report.tick_failed = True
                return report

            report.candidates = len(candidates)
            for settings in candidates:
                try:
                    decision = self.evaluate_and_notify(settings, now, report)
                except Exception as exc:
                    report.failed += 1
                    logger.exception(
                        "reminder_send_failed user_id=%s error=%s", settings.user_id, exc
                    )
                    continue
                if decision.reason is not None:
                    report.record_skip(decision.reason)

            logger.info(
                "reminder_tick_finished candidates=%s sent=%s failed=%s conflicts=%s",
                report.candidates,
                report.sent,
                report.failed,
                report.conflicts,
            )
        return report

    def evaluate_and_notify(
        self,
        settings: ReminderSettingsState,
        now: dt.datetime,
        report: Optional[TickReport] = None,
    ) -> ReminderDecision:
        decision = decide_reminder(settings, now, self._activity_store.get_last_activity)
        if not decision.send:
            logger.debug(
                "reminder_skipped user_id=%s reason=%s",
                settings.user_id,
                decision.reason.value,
            )
            return decision

        results = self._notifier.send(settings.user_id, self._payload)
        delivered = any(result.ok for result in results)
        if not delivered and not self._mark_sent_on_failed_dispatch:
            logger.warning(
                "reminder_not_delivered user_id=%s endpoints=%s",
                settings.user_id,
                len(results),
            )
            if report is not None:
                report.failed += 1
            return decision

        written = self._settings_store.update_last_sent(
            settings.user_id, now.isoformat(), expected=settings.last_sent_at
        )
        if not written:
            # Another tick already recorded a send for this user.
            logger.info("reminder_already_recorded user_id=%s", settings.user_id)
            if report is not None:
                report.conflicts += 1
            return decision

        if report is not None:
            report.sent += 1
        logger.info(
            "reminder_sent user_id=%s endpoints=%s delivered=%s",
            settings.user_id,
            len(results),
            delivered,
        )
        return decision


def start_scheduler(
    settings_store: SettingsStore,
    activity_store: ActivityStore,
    notifier: Notifier,
    tick_minutes: int = DEFAULT_TICK_MINUTES,
    mark_sent_on_failed_dispatch: bool = True,
    timezone: str = "UTC",
) -> ReminderScheduler:
    scheduler = ReminderScheduler(
        settings_store,
        activity_store,
        notifier,
        tick_minutes=tick_minutes,
        mark_sent_on_failed_dispatch=mark_sent_on_failed_dispatch,
        clock=_local_clock(timezone),
    )
    scheduler.initialize()
    return scheduler
