from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="missing_user")
    return x_user_id.strip()
