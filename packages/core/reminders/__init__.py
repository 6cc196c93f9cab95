from .models import (
    HYDRATION_REMINDER,
    DeliveryResult,
    NotificationPayload,
    ReminderDecision,
    SkipReason,
    TickReport,
)
from .service import (
    decide_reminder,
    get_settings,
    normalize_time_of_day,
    update_settings,
)

__all__ = [
    "HYDRATION_REMINDER",
    "DeliveryResult",
    "NotificationPayload",
    "ReminderDecision",
    "SkipReason",
    "TickReport",
    "decide_reminder",
    "get_settings",
    "normalize_time_of_day",
    "update_settings",
]
