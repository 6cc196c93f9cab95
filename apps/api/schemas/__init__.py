from .notifications import (
    BroadcastRequest,
    BroadcastResponse,
    DeliveryResponse,
    PushSubscriptionRequest,
    ReminderSettingsResponse,
    ReminderSettingsUpdateRequest,
)
from .water import WaterLogCreateRequest, WaterLogResponse

__all__ = [
    "BroadcastRequest",
    "BroadcastResponse",
    "DeliveryResponse",
    "PushSubscriptionRequest",
    "ReminderSettingsResponse",
    "ReminderSettingsUpdateRequest",
    "WaterLogCreateRequest",
    "WaterLogResponse",
]
