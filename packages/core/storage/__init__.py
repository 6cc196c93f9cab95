from .base import (
    ActivityStore,
    PushSubscriptionState,
    PushSubscriptionStore,
    ReminderSettingsState,
    SettingsStore,
    WaterLogState,
)
from .sqlite import SQLiteStore

__all__ = [
    "ActivityStore",
    "PushSubscriptionState",
    "PushSubscriptionStore",
    "ReminderSettingsState",
    "SettingsStore",
    "WaterLogState",
    "SQLiteStore",
]
