from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from packages.core.reminders.service import normalize_time_of_day


MIN_INTERVAL_MINUTES = 15


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)
    keys: PushKeys


class ReminderSettingsUpdateRequest(BaseModel):
    enabled: Optional[bool] = None
    reminder_start_time: Optional[str] = None
    reminder_end_time: Optional[str] = None
    reminder_interval_minutes: Optional[int] = Field(default=None, ge=MIN_INTERVAL_MINUTES)

    @field_validator("reminder_start_time", "reminder_end_time")
    @classmethod
    def _valid_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        return normalize_time_of_day(value)


class ReminderSettingsResponse(BaseModel):
    user_id: str
    enabled: bool
    reminder_start_time: str
    reminder_end_time: str
    reminder_interval_minutes: int
    last_reminder_sent_at: Optional[str]
    updated_at: str


class DeliveryResponse(BaseModel):
    message: str
    endpoints: int
    delivered: int


class BroadcastRequest(BaseModel):
    title: str = Field("System Broadcast \U0001f4e2", min_length=1)
    body: str = Field("This is a test message to all users.", min_length=1)
    icon: Optional[str] = None
    url: Optional[str] = None


class BroadcastResponse(BaseModel):
    message: str
    subscriptions: int
