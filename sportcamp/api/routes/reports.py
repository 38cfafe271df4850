from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from sportcamp.access import AccessContext
from sportcamp.db import Database
from sportcamp.reports import EXPORT_HEADER, clamp, export_rows, summary, to_csv, trends
from sportcamp.util.time import iso_date, utcnow

from ..deps import get_access, get_db, require_staff


router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("")
def reports_summary(
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        return summary(conn, access)


@router.get("/trends")
def reports_trends(
    days: Optional[str] = Query(None),
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        return trends(conn, access, days=clamp(days, 7, 365, 30))


@router.get("/export")
def reports_export(
    days: Optional[str] = Query(None),
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Response:
    with db.connection() as conn:
        rows = export_rows(conn, access, days=clamp(days, 7, 365, 30))
    filename = f"reports-{iso_date(utcnow())}.csv"
    return Response(
        content=to_csv(EXPORT_HEADER, rows),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
