from __future__ import annotations

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext
from sportcamp.billing import get_fees, update_fees
from sportcamp.db import Database

from ..deps import get_db, require_staff, require_superadmin


router = APIRouter(prefix="/settings", tags=["settings"])


class FeesUpdate(BaseModel):
    registrationFee: Optional[float] = None
    monthlyFee: Optional[float] = None


def _settings(fees: Dict[str, float]) -> Dict[str, Any]:
    return {"registrationFee": fees["registration_fee"], "monthlyFee": fees["monthly_fee"]}


@router.get("")
def read_settings(
    _access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        return {"settings": _settings(get_fees(conn))}


@router.patch("")
def write_settings(
    payload: FeesUpdate,
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    fees = (payload.registrationFee, payload.monthlyFee)
    if any(f is None or not math.isfinite(f) or f < 0 for f in fees):
        raise HTTPException(status_code=400, detail="invalid_fees")
    with db.connection() as conn:
        updated = update_fees(conn, registration_fee=fees[0], monthly_fee=fees[1])
    return {"settings": _settings(updated)}
