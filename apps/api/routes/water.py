from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from apps.api.config import load_config
from apps.api.routes.identity import current_user_id
from apps.api.schemas.water import WaterLogCreateRequest, WaterLogResponse
from packages.core.storage.base import WaterLogState
from packages.core.storage.sqlite import SQLiteStore
from packages.core.water.service import add_log, delete_log, get_logs_by_date


router = APIRouter(prefix="/water", tags=["water"])


def _store() -> SQLiteStore:
    return SQLiteStore(db_path=load_config().db_path)


def _to_response(log: WaterLogState) -> WaterLogResponse:
    return WaterLogResponse(
        id=log.id,
        user_id=log.user_id,
        amount_ml=log.amount_ml,
        date=log.date,
        created_at=log.created_at,
    )


@router.post("", response_model=WaterLogResponse, status_code=201)
def create(
    payload: WaterLogCreateRequest, user_id: str = Depends(current_user_id)
) -> WaterLogResponse:
    try:
        log = add_log(_store(), user_id, payload.amount, payload.date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _to_response(log)


@router.get("/{date}", response_model=List[WaterLogResponse])
def list_for_date(date: str, user_id: str = Depends(current_user_id)) -> List[WaterLogResponse]:
    try:
        logs = get_logs_by_date(_store(), user_id, date)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [_to_response(log) for log in logs]


@router.delete("/{log_id}", status_code=204)
def delete(log_id: str, user_id: str = Depends(current_user_id)) -> Response:
    if not delete_log(_store(), user_id, log_id):
        raise HTTPException(status_code=404, detail="Water log not found")
    return Response(status_code=204)
