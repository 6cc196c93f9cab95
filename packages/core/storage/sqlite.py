from __future__ import annotations

import datetime as dt
import json
import os
import sqlite3
from typing import List, Optional

from .base import (
    ActivityStore,
    PushSubscriptionState,
    PushSubscriptionStore,
    ReminderSettingsState,
    SettingsStore,
    WaterLogState,
)


_SETTINGS_COLUMNS = """
    user_id, enabled, window_start, window_end, interval_minutes,
    last_sent_at, updated_at
"""


def _settings_from_row(row: tuple) -> ReminderSettingsState:
    return ReminderSettingsState(
        user_id=row[0],
        enabled=bool(row[1]),
        window_start=row[2],
        window_end=row[3],
        interval_minutes=row[4],
        last_sent_at=row[5],
        updated_at=row[6],
    )


def _subscription_from_row(row: tuple) -> PushSubscriptionState:
    return PushSubscriptionState(
        id=row[0],
        user_id=row[1],
        endpoint=row[2],
        keys=json.loads(row[3] or "{}"),
        updated_at=row[4],
    )


class SQLiteStore(SettingsStore, ActivityStore, PushSubscriptionStore):
    def __init__(self, db_path: str, timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path, timeout=self._timeout)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS notification_settings (
                    user_id TEXT PRIMARY KEY,
                    enabled INTEGER NOT NULL,
                    window_start TEXT NOT NULL,
                    window_end TEXT NOT NULL,
                    interval_minutes INTEGER NOT NULL,
                    last_sent_at TEXT,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS water_logs (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    amount_ml INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS water_logs_user_created_idx
                ON water_logs (user_id, created_at)
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS push_subscriptions (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    endpoint TEXT NOT NULL UNIQUE,
                    keys TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get_settings(self, user_id: str) -> Optional[ReminderSettingsState]:
        with self._connect() as conn:
            row = conn.execute(
                f"SELECT {_SETTINGS_COLUMNS} FROM notification_settings WHERE user_id = ?",
                (user_id,),
            ).fetchone()
            if row is None:
                return None
            return _settings_from_row(row)

    def upsert_settings(self, settings: ReminderSettingsState) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notification_settings (
                    user_id, enabled, window_start, window_end, interval_minutes,
                    last_sent_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    enabled = excluded.enabled,
                    window_start = excluded.window_start,
                    window_end = excluded.window_end,
                    interval_minutes = excluded.interval_minutes,
                    updated_at = excluded.updated_at
                """,
                (
                    settings.user_id,
                    1 if settings.enabled else 0,
                    settings.window_start,
                    settings.window_end,
                    settings.interval_minutes,
                    settings.last_sent_at,
                    settings.updated_at,
                ),
            )

    def list_due_candidates(self, now: dt.datetime) -> List[ReminderSettingsState]:
        time_of_day = now.strftime("%H:%M:%S")
        with self._connect() as conn:
            rows = conn.execute(
                f"""
                SELECT {_SETTINGS_COLUMNS}
                FROM notification_settings
                WHERE enabled = 1
                  AND window_start <= ?
                  AND window_end >= ?
                ORDER BY user_id ASC
                """,
                (time_of_day, time_of_day),
            ).fetchall()
            return [_settings_from_row(row) for row in rows]

    def update_last_sent(
        self, user_id: str, sent_at: str, expected: Optional[str]
    ) -> bool:
        with self._connect() as conn:
            result = conn.execute(
                """
                UPDATE notification_settings
                SET last_sent_at = ?, updated_at = ?
                WHERE user_id = ? AND last_sent_at IS ?
                """,
                (sent_at, sent_at, user_id, expected),
            )
            return result.rowcount > 0

    def add_water_log(self, log: WaterLogState) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO water_logs (id, user_id, amount_ml, date, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (log.id, log.user_id, log.amount_ml, log.date, log.created_at),
            )

    def list_water_logs(self, user_id: str, date: str) -> List[WaterLogState]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT id, user_id, amount_ml, date, created_at
                FROM water_logs
                WHERE user_id = ? AND date = ?
                ORDER BY created_at ASC
                """,
                (user_id, date),
            ).fetchall()
            return [
                WaterLogState(
                    id=row[0],
                    user_id=row[1],
                    amount_ml=row[2],
                    date=row[3],
                    created_at=row[4],
                )
                for row in rows
            ]

    def delete_water_log(self, user_id: str, log_id: str) -> bool:
        with self._connect() as conn:
            result = conn.execute(
                "DELETE FROM water_logs WHERE id = ? AND user_id = ?",
                (log_id, user_id),
            )
            return result.rowcount > 0

    def get_last_activity(self, user_id: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT created_at
                FROM water_logs
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
            return row[0] if row else None

    def upsert_push_subscription(self, subscription: PushSubscriptionState) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO push_subscriptions (id, user_id, endpoint, keys, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(endpoint) DO UPDATE SET
                    user_id = excluded.user_id,
                    keys = excluded.keys,
                    updated_at = excluded.updated_at
                """,
                (
                    subscription.id,
                    subscription.user_id,
                    subscription.endpoint,
                    json.dumps(subscription.keys),
                    subscription.updated_at,
                ),
            )

    def list_push_subscriptions(
        self, user_id: Optional[str] = None
    ) -> List[PushSubscriptionState]:
        with self._connect() as conn:
            if user_id is not None:
                rows = conn.execute(
                    """
                    SELECT id, user_id, endpoint, keys, updated_at
                    FROM push_subscriptions
                    WHERE user_id = ?
                    ORDER BY updated_at ASC
                    """,
                    (user_id,),
                ).fetchall()
            else:
                rows = conn.execute(
                    """
                    SELECT id, user_id, endpoint, keys, updated_at
                    FROM push_subscriptions
                    ORDER BY updated_at ASC
                    """
                ).fetchall()
            return [_subscription_from_row(row) for row in rows]

    def delete_push_subscription(self, subscription_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM push_subscriptions WHERE id = ?", (subscription_id,)
            )
