import datetime as dt

from apps.api.reminders_scheduler import ReminderScheduler
from packages.core.reminders.models import (
    HYDRATION_REMINDER,
    DeliveryResult,
    SkipReason,
    TickReport,
)
from packages.core.storage.base import ReminderSettingsState
from packages.core.storage.sqlite import SQLiteStore


UTC = dt.timezone.utc
NOW = dt.datetime(2026, 3, 2, 14, 0, tzinfo=UTC)


def _at(hour: int, minute: int = 0) -> str:
    return NOW.replace(hour=hour, minute=minute).isoformat()


def _settings(user_id="user-1", **overrides) -> ReminderSettingsState:
    values = {
        "user_id": user_id,
        "enabled": True,
        "window_start": "08:00:00",
        "window_end": "22:00:00",
        "interval_minutes": 60,
        "last_sent_at": None,
        "updated_at": "2026-03-01T00:00:00+00:00",
    }
    values.update(overrides)
    return ReminderSettingsState(**values)


class FakeSettingsStore:
    def __init__(self, *settings):
        self.rows = {item.user_id: item for item in settings}
        self.writes = []
        self.fail = False

    def list_due_candidates(self, now):
        if self.fail:
            raise RuntimeError("settings store unreachable")
        time_of_day = now.strftime("%H:%M:%S")
        return [
            row
            for row in self.rows.values()
            if row.enabled and row.window_start <= time_of_day <= row.window_end
        ]

    def update_last_sent(self, user_id, sent_at, expected):
        row = self.rows[user_id]
        if row.last_sent_at != expected:
            return False
        self.rows[user_id] = ReminderSettingsState(
            **{**row.__dict__, "last_sent_at": sent_at}
        )
        self.writes.append((user_id, sent_at))
        return True


class FakeActivityStore:
    def __init__(self, activity=None, failing=()):
        self.activity = activity or {}
        self.failing = set(failing)

    def get_last_activity(self, user_id):
        if user_id in self.failing:
            raise RuntimeError("activity lookup failed")
        return self.activity.get(user_id)


class FakeNotifier:
    def __init__(self, ok=True, failing=(), configured=True):
        self.ok = ok
        self.configured = configured
        self.failing = set(failing)
        self.sent = []

    def send(self, user_id, payload):
        if user_id in self.failing:
            raise RuntimeError("push service down")
        self.sent.append((user_id, payload))
        return [DeliveryResult(endpoint=f"https://push.example.com/{user_id}", ok=self.ok)]


def _scheduler(settings_store, activity_store=None, notifier=None, **kwargs):
    return ReminderScheduler(
        settings_store,
        activity_store or FakeActivityStore(),
        notifier or FakeNotifier(),
        **kwargs,
    )


def test_disabled_user_never_notified():
    settings_store = FakeSettingsStore(_settings(enabled=False))
    notifier = FakeNotifier()
    report = _scheduler(settings_store, notifier=notifier).run_tick(NOW)
    assert notifier.sent == []
    assert report.candidates == 0


def test_outside_window_not_notified():
    settings_store = FakeSettingsStore(_settings(window_start="18:00:00"))
    notifier = FakeNotifier()
    _scheduler(settings_store, notifier=notifier).run_tick(NOW)
    assert notifier.sent == []


def test_sent_one_minute_too_soon_is_skipped():
    settings_store = FakeSettingsStore(_settings(last_sent_at=_at(13, 1)))
    notifier = FakeNotifier()
    report = _scheduler(settings_store, notifier=notifier).run_tick(NOW)
    assert notifier.sent == []
    assert report.skipped == {SkipReason.RECENTLY_SENT.value: 1}
    assert settings_store.writes == []


def test_sent_past_interval_dispatches_and_records_now():
    settings_store = FakeSettingsStore(_settings(last_sent_at=_at(12, 59)))
    notifier = FakeNotifier()
    report = _scheduler(settings_store, notifier=notifier).run_tick(NOW)
    assert notifier.sent == [("user-1", HYDRATION_REMINDER)]
    assert settings_store.rows["user-1"].last_sent_at == NOW.isoformat()
    assert report.sent == 1


def test_recent_activity_suppresses_reminder():
    settings_store = FakeSettingsStore(_settings())
    activity = FakeActivityStore({"user-1": _at(13, 30)})
    notifier = FakeNotifier()
    report = _scheduler(settings_store, activity, notifier).run_tick(NOW)
    assert notifier.sent == []
    assert report.skipped == {SkipReason.RECENT_ACTIVITY.value: 1}


def test_no_history_dispatches():
    settings_store = FakeSettingsStore(_settings())
    notifier = FakeNotifier()
    _scheduler(settings_store, notifier=notifier).run_tick(NOW)
    assert len(notifier.sent) == 1


def test_hydration_check_example():
    settings_store = FakeSettingsStore(_settings(last_sent_at=_at(12, 30)))
    activity = FakeActivityStore({"user-1": _at(11, 0)})
    notifier = FakeNotifier()
    _scheduler(settings_store, activity, notifier).run_tick(NOW)
    assert [user_id for user_id, _ in notifier.sent] == ["user-1"]
    assert settings_store.rows["user-1"].last_sent_at == _at(14, 0)


def test_failure_for_one_user_does_not_stop_others():
    settings_store = FakeSettingsStore(
        _settings("user-a"), _settings("user-b"), _settings("user-c")
    )
    activity = FakeActivityStore(failing={"user-c"})
    notifier = FakeNotifier(failing={"user-a"})
    report = _scheduler(settings_store, activity, notifier).run_tick(NOW)

    assert [user_id for user_id, _ in notifier.sent] == ["user-b"]
    assert report.failed == 2
    assert report.sent == 1
    assert settings_store.rows["user-a"].last_sent_at is None


def test_tick_failure_is_swallowed():
    settings_store = FakeSettingsStore(_settings())
    settings_store.fail = True
    report = _scheduler(settings_store).run_tick(NOW)
    assert report.tick_failed is True
    assert report.candidates == 0


def test_failed_dispatch_marks_sent_by_default():
    settings_store = FakeSettingsStore(_settings())
    _scheduler(settings_store, notifier=FakeNotifier(ok=False)).run_tick(NOW)
    assert settings_store.rows["user-1"].last_sent_at == NOW.isoformat()


def test_failed_dispatch_can_leave_last_sent_untouched():
    settings_store = FakeSettingsStore(_settings())
    report = _scheduler(
        settings_store,
        notifier=FakeNotifier(ok=False),
        mark_sent_on_failed_dispatch=False,
    ).run_tick(NOW)
    assert settings_store.rows["user-1"].last_sent_at is None
    assert report.failed == 1


def test_concurrent_send_is_reported_as_conflict():
    settings_store = FakeSettingsStore(_settings())
    stale = settings_store.rows["user-1"]
    settings_store.rows["user-1"] = _settings(last_sent_at=_at(13, 59))

    notifier = FakeNotifier()
    scheduler = _scheduler(settings_store, notifier=notifier)
    report = TickReport(now=NOW.isoformat())

    scheduler.evaluate_and_notify(stale, NOW, report)

    assert notifier.sent == [("user-1", HYDRATION_REMINDER)]
    assert report.conflicts == 1
    assert report.sent == 0
    assert settings_store.rows["user-1"].last_sent_at == _at(13, 59)
    assert settings_store.writes == []


def test_unconfigured_notifier_skips_tick_without_writes(caplog):
    settings_store = FakeSettingsStore(_settings("user-a"), _settings("user-b"))
    notifier = FakeNotifier(configured=False)

    with caplog.at_level("WARNING", logger="hydration.reminders"):
        report = _scheduler(settings_store, notifier=notifier).run_tick(NOW)

    assert report.notifier_unavailable is True
    assert report.failed == 0
    assert report.sent == 0
    assert notifier.sent == []
    assert settings_store.writes == []
    warnings = [r for r in caplog.records if r.levelname == "WARNING"]
    assert len(warnings) == 1
    assert not any(r.exc_info for r in caplog.records)


def test_run_tick_uses_clock_when_now_missing():
    settings_store = FakeSettingsStore(_settings())
    scheduler = _scheduler(settings_store, clock=lambda: NOW)
    report = scheduler.run_tick()
    assert report.now == NOW.isoformat()
    assert settings_store.rows["user-1"].last_sent_at == NOW.isoformat()


def test_tick_against_sqlite_store(tmp_path):
    store = SQLiteStore(db_path=str(tmp_path / "hydration.db"))
    store.upsert_settings(_settings("user-1", last_sent_at=_at(12, 30)))
    store.upsert_settings(_settings("user-2"))
    notifier = FakeNotifier()

    first = ReminderScheduler(store, store, notifier).run_tick(NOW)
    second = ReminderScheduler(store, store, notifier).run_tick(NOW + dt.timedelta(minutes=15))

    assert first.sent == 2
    assert second.sent == 0
    assert second.skipped == {SkipReason.RECENTLY_SENT.value: 2}
    assert store.get_settings("user-1").last_sent_at == NOW.isoformat()


def test_initialize_registers_interval_job():
    scheduler = _scheduler(FakeSettingsStore(), tick_minutes=5)
    background = scheduler.initialize()
    try:
        job = background.get_job("water_reminders")
        assert job is not None
        assert job.trigger.interval == dt.timedelta(minutes=5)
        assert scheduler.running is True
    finally:
        scheduler.shutdown()
    assert scheduler.running is False
