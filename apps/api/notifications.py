from __future__ import annotations

import json
import logging
from typing import List, Optional, Protocol, runtime_checkable

from pywebpush import WebPushException, webpush

from packages.core.reminders.models import DeliveryResult, NotificationPayload
from packages.core.storage.base import PushSubscriptionState, PushSubscriptionStore


logger = logging.getLogger("hydration.notifications")

_GONE_STATUSES = {404, 410}


class NotifierNotConfigured(RuntimeError):
    pass


@runtime_checkable
class Notifier(Protocol):
    @property
    def configured(self) -> bool:
        """False when the notifier cannot deliver anything at all."""

    def send(self, user_id: str, payload: NotificationPayload) -> List[DeliveryResult]:
        """Deliver a payload to every endpoint registered for a user."""


def _status_code(exc: WebPushException) -> Optional[int]:
    response = getattr(exc, "response", None)
    if response is None:
        return None
    return getattr(response, "status_code", None)


class WebPushNotifier(Notifier):
    def __init__(
        self,
        store: PushSubscriptionStore,
        vapid_private_key: str,
        vapid_claims_email: str,
        timeout: float = 10.0,
    ) -> None:
        self._store = store
        self._vapid_private_key = vapid_private_key
        self._vapid_claims_email = vapid_claims_email
        self._timeout = timeout
        if not vapid_private_key:
            logger.warning(
                "VAPID keys not found in environment variables. "
                "Push notifications will not work."
            )

    def _push(
        self, subscription: PushSubscriptionState, payload: NotificationPayload
    ) -> DeliveryResult:
        try:
            response = webpush(
                subscription_info={
                    "endpoint": subscription.endpoint,
                    "keys": subscription.keys,
                },
                data=json.dumps(payload.to_dict()),
                vapid_private_key=self._vapid_private_key,
                vapid_claims={"sub": self._vapid_claims_email},
                timeout=self._timeout,
            )
        except WebPushException as exc:
            status_code = _status_code(exc)
            if status_code in _GONE_STATUSES:
                logger.info(
                    "push_subscription_gone user_id=%s id=%s status=%s",
                    subscription.user_id,
                    subscription.id,
                    status_code,
                )
                self._store.delete_push_subscription(subscription.id)
                return DeliveryResult(
                    endpoint=subscription.endpoint,
                    ok=False,
                    status_code=status_code,
                    gone=True,
                    error=str(exc),
                )
            logger.error(
                "push_send_failed user_id=%s status=%s error=%s",
                subscription.user_id,
                status_code,
                exc,
            )
            return DeliveryResult(
                endpoint=subscription.endpoint,
                ok=False,
                status_code=status_code,
                error=str(exc),
            )
        except Exception as exc:
            logger.error(
                "push_send_failed user_id=%s error=%s", subscription.user_id, exc
            )
            return DeliveryResult(endpoint=subscription.endpoint, ok=False, error=str(exc))
        return DeliveryResult(
            endpoint=subscription.endpoint,
            ok=True,
            status_code=getattr(response, "status_code", None),
        )

    @property
    def configured(self) -> bool:
        return bool(self._vapid_private_key)

    def _ensure_configured(self) -> None:
        if not self.configured:
            raise NotifierNotConfigured(
                "Web push is not configured. Set VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY."
            )

    def send(self, user_id: str, payload: NotificationPayload) -> List[DeliveryResult]:
        self._ensure_configured()
        subscriptions = self._store.list_push_subscriptions(user_id=user_id)
        return [self._push(subscription, payload) for subscription in subscriptions]

    def broadcast(self, payload: NotificationPayload) -> int:
        self._ensure_configured()
        subscriptions = self._store.list_push_subscriptions()
        for subscription in subscriptions:
            self._push(subscription, payload)
        return len(subscriptions)
