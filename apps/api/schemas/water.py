from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class WaterLogCreateRequest(BaseModel):
    amount: int = Field(..., gt=0)
    date: Optional[str] = None


class WaterLogResponse(BaseModel):
    id: str
    user_id: str
    amount_ml: int
    date: str
    created_at: str
