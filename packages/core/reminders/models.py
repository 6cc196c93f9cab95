from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


DEFAULT_WINDOW_START = "08:00:00"
DEFAULT_WINDOW_END = "22:00:00"
DEFAULT_INTERVAL_MINUTES = 60


class SkipReason(str, Enum):
    DISABLED = "disabled"
    OUTSIDE_WINDOW = "outside_window"
    RECENTLY_SENT = "recently_sent"
    RECENT_ACTIVITY = "recent_activity"


@dataclass(frozen=True)
class ReminderDecision:
    send: bool
    reason: Optional[SkipReason] = None

    @classmethod
    def skip(cls, reason: SkipReason) -> "ReminderDecision":
        return cls(send=False, reason=reason)

    @classmethod
    def dispatch(cls) -> "ReminderDecision":
        return cls(send=True)


@dataclass(frozen=True)
class NotificationPayload:
    title: str
    body: str
    icon: Optional[str] = None
    data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": self.title, "body": self.body}
        if self.icon:
            payload["icon"] = self.icon
        if self.data:
            payload["data"] = dict(self.data)
        return payload


HYDRATION_REMINDER = NotificationPayload(
    title="Hydration Check \U0001f4a7",
    body="It's been a while! Time to drink some water.",
    icon="/icons/water-icon.png",
    data={"url": "/dashboard"},
)

TEST_NOTIFICATION = NotificationPayload(
    title="Test Notification",
    body="This is a test from Cycle Compass!",
)


@dataclass(frozen=True)
class DeliveryResult:
    endpoint: str
    ok: bool
    status_code: Optional[int] = None
    gone: bool = False
    error: Optional[str] = None


@dataclass
class TickReport:
    now: str
    candidates: int = 0
    sent: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)
    failed: int = 0
    conflicts: int = 0
    tick_failed: bool = False
    notifier_unavailable: bool = False

    def record_skip(self, reason: SkipReason) -> None:
        self.skipped[reason.value] = self.skipped.get(reason.value, 0) + 1
