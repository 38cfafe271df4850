from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from sportcamp.access import AccessContext
from sportcamp.billing import latest_billing_run, run_billing_cycle
from sportcamp.db import Database

from ..deps import get_db, require_staff, require_superadmin


router = APIRouter(prefix="/billing-runs", tags=["billing"])


@router.post("/run")
def run_billing(
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Monthly fee for the current month (at most once), then outstanding registration fees."""
    return run_billing_cycle(db)


@router.get("/latest")
def latest_run(
    _access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        return latest_billing_run(conn)
