from __future__ import annotations

import datetime as dt
import uuid
from typing import List, Optional

from ..storage.base import ActivityStore, WaterLogState


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def add_log(
    store: ActivityStore, user_id: str, amount_ml: int, date: Optional[str] = None
) -> WaterLogState:
    if amount_ml <= 0:
        raise ValueError("amount_ml must be a positive number")
    now = _utc_now()
    log_date = dt.date.fromisoformat(date).isoformat() if date else now.date().isoformat()
    log = WaterLogState(
        id=str(uuid.uuid4()),
        user_id=user_id,
        amount_ml=amount_ml,
        date=log_date,
        created_at=now.isoformat(),
    )
    store.add_water_log(log)
    return log


def get_logs_by_date(store: ActivityStore, user_id: str, date: str) -> List[WaterLogState]:
    return store.list_water_logs(user_id, dt.date.fromisoformat(date).isoformat())


def delete_log(store: ActivityStore, user_id: str, log_id: str) -> bool:
    return store.delete_water_log(user_id, log_id)
