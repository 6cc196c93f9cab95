from __future__ import annotations

import datetime as dt
import os
import uuid

from fastapi import APIRouter, Depends, HTTPException

from apps.api.config import load_config
from apps.api.notifications import NotifierNotConfigured, WebPushNotifier
from apps.api.routes.identity import current_user_id
from apps.api.schemas.notifications import (
    BroadcastRequest,
    BroadcastResponse,
    DeliveryResponse,
    PushSubscriptionRequest,
    ReminderSettingsResponse,
    ReminderSettingsUpdateRequest,
)
from packages.core.reminders.models import TEST_NOTIFICATION, NotificationPayload
from packages.core.reminders.service import get_settings, update_settings
from packages.core.storage.base import PushSubscriptionState, ReminderSettingsState
from packages.core.storage.sqlite import SQLiteStore


router = APIRouter(prefix="/notifications", tags=["notifications"])


def _store() -> SQLiteStore:
    return SQLiteStore(db_path=load_config().db_path)


def _notifier() -> WebPushNotifier:
    config = load_config()
    return WebPushNotifier(
        _store(),
        vapid_private_key=config.vapid_private_key,
        vapid_claims_email=config.vapid_claims_email,
        timeout=config.push_timeout_seconds,
    )


def _is_broadcast_enabled() -> bool:
    return os.getenv("NOTIFICATIONS_BROADCAST_ENABLED", "false").lower() == "true"


def _broadcast_admins() -> set:
    raw = os.getenv("NOTIFICATIONS_ADMIN_USER_IDS", "")
    return {item.strip() for item in raw.split(",") if item.strip()}


def _to_response(settings: ReminderSettingsState) -> ReminderSettingsResponse:
    return ReminderSettingsResponse(
        user_id=settings.user_id,
        enabled=settings.enabled,
        reminder_start_time=settings.window_start,
        reminder_end_time=settings.window_end,
        reminder_interval_minutes=settings.interval_minutes,
        last_reminder_sent_at=settings.last_sent_at,
        updated_at=settings.updated_at,
    )


@router.get("/vapid-public-key")
def vapid_public_key() -> dict:
    key = load_config().vapid_public_key
    if not key:
        raise HTTPException(status_code=503, detail="push_not_configured")
    return {"public_key": key}


@router.post("/subscribe", status_code=201)
def subscribe(
    payload: PushSubscriptionRequest, user_id: str = Depends(current_user_id)
) -> dict:
    subscription = PushSubscriptionState(
        id=str(uuid.uuid4()),
        user_id=user_id,
        endpoint=payload.endpoint,
        keys={"p256dh": payload.keys.p256dh, "auth": payload.keys.auth},
        updated_at=dt.datetime.now(dt.timezone.utc).isoformat(),
    )
    _store().upsert_push_subscription(subscription)
    return {"message": "Subscribed successfully"}


@router.get("/settings", response_model=ReminderSettingsResponse)
def read_settings(user_id: str = Depends(current_user_id)) -> ReminderSettingsResponse:
    return _to_response(get_settings(_store(), user_id))


@router.put("/settings", response_model=ReminderSettingsResponse)
def write_settings(
    payload: ReminderSettingsUpdateRequest, user_id: str = Depends(current_user_id)
) -> ReminderSettingsResponse:
    try:
        updated = update_settings(
            _store(),
            user_id,
            enabled=payload.enabled,
            window_start=payload.reminder_start_time,
            window_end=payload.reminder_end_time,
            interval_minutes=payload.reminder_interval_minutes,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _to_response(updated)


@router.post("/test", response_model=DeliveryResponse)
def send_test(user_id: str = Depends(current_user_id)) -> DeliveryResponse:
    try:
        results = _notifier().send(user_id, TEST_NOTIFICATION)
    except NotifierNotConfigured as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return DeliveryResponse(
        message="Sent",
        endpoints=len(results),
        delivered=sum(1 for result in results if result.ok),
    )


@router.post("/broadcast", response_model=BroadcastResponse)
def broadcast(
    payload: BroadcastRequest, user_id: str = Depends(current_user_id)
) -> BroadcastResponse:
    if not _is_broadcast_enabled():
        raise HTTPException(status_code=404, detail="not_found")
    admins = _broadcast_admins()
    if admins and user_id not in admins:
        raise HTTPException(status_code=403, detail="forbidden")
    try:
        count = _notifier().broadcast(
            NotificationPayload(
                title=payload.title,
                body=payload.body,
                icon=payload.icon,
                data={"url": payload.url} if payload.url else None,
            )
        )
    except NotifierNotConfigured as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return BroadcastResponse(message="Broadcast sent", subscriptions=count)
