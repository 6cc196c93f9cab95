from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ReminderSettingsState:
    user_id: str
    enabled: bool
    window_start: str
    window_end: str
    interval_minutes: int
    last_sent_at: Optional[str]
    updated_at: str


@runtime_checkable
class SettingsStore(Protocol):
    def get_settings(self, user_id: str) -> Optional[ReminderSettingsState]:
        """Return stored settings for a user, or None if never configured."""

    def upsert_settings(self, settings: ReminderSettingsState) -> None:
        """Insert or update a user's settings. last_sent_at is only written on insert."""

    def list_due_candidates(self, now: dt.datetime) -> List[ReminderSettingsState]:
        """List enabled settings whose window contains the time of day of now."""

    def update_last_sent(
        self, user_id: str, sent_at: str, expected: Optional[str]
    ) -> bool:
        """Set last_sent_at only if it still equals expected. Returns True if written."""


@dataclass(frozen=True)
class WaterLogState:
    id: str
    user_id: str
    amount_ml: int
    date: str
    created_at: str


@runtime_checkable
class ActivityStore(Protocol):
    def add_water_log(self, log: WaterLogState) -> None:
        """Persist a water intake log."""

    def list_water_logs(self, user_id: str, date: str) -> List[WaterLogState]:
        """List a user's logs for a date, oldest first."""

    def delete_water_log(self, user_id: str, log_id: str) -> bool:
        """Delete a user's log. Returns True if deleted."""

    def get_last_activity(self, user_id: str) -> Optional[str]:
        """Return created_at of the user's most recent log, or None."""


@dataclass(frozen=True)
class PushSubscriptionState:
    id: str
    user_id: str
    endpoint: str
    keys: Dict[str, str]
    updated_at: str


@runtime_checkable
class PushSubscriptionStore(Protocol):
    def upsert_push_subscription(self, subscription: PushSubscriptionState) -> None:
        """Insert or update a subscription keyed by endpoint."""

    def list_push_subscriptions(
        self, user_id: Optional[str] = None
    ) -> List[PushSubscriptionState]:
        """List subscriptions for a user, or all of them."""

    def delete_push_subscription(self, subscription_id: str) -> None:
        """Delete a subscription by id."""
