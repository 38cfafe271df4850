from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from sportcamp.access import AccessContext
from sportcamp.db import Database
from sportcamp.reports import live_dashboard

from ..deps import get_access, get_db


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/live")
def dashboard_live(
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        return live_dashboard(conn, access)
