from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from sportcamp.access import AccessContext, Role, scope_join
from sportcamp.db import Database
from sportcamp.memberships import check_in
from sportcamp.reports import clamp

from ..deps import get_access, get_current_user, get_db
from ..errors import http_error


router = APIRouter(prefix="/attendance", tags=["attendance"])


class CheckInRequest(BaseModel):
    token: Optional[str] = None


@router.get("")
def list_attendance(
    limit: Optional[str] = Query(None),
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Students see their own check-ins; staff see their clubs; superadmin sees all."""
    n = clamp(limit, 5, 100, 25)

    with db.connection() as conn:
        if access.role == Role.student:
            rows = conn.execute(
                """
                SELECT a.attendance_id, a.status, a.scanned_at, a.student_id,
                       s.title AS session_title, u.full_name AS student_name
                FROM attendance a
                JOIN training_sessions s ON s.session_id = a.session_id
                JOIN users u ON u.user_id = a.student_id
                WHERE a.student_id = ?
                ORDER BY a.scanned_at DESC
                LIMIT ?
                """,
                (access.user_id, n),
            ).fetchall()
        else:
            join, params = scope_join(access, "s.club_id", roles=[Role.admin, Role.coach])
            rows = conn.execute(
                f"""
                SELECT a.attendance_id, a.status, a.scanned_at, a.student_id,
                       s.title AS session_title, u.full_name AS student_name
                FROM attendance a
                JOIN training_sessions s ON s.session_id = a.session_id
                JOIN users u ON u.user_id = a.student_id
                {join}
                ORDER BY a.scanned_at DESC
                LIMIT ?
                """,
                (*params, n),
            ).fetchall()

    return {
        "attendance": [
            {
                "id": r["attendance_id"],
                "status": r["status"],
                "scannedAt": r["scanned_at"],
                "sessionTitle": r["session_title"],
                "studentName": r["student_name"] or (access.user_label if access.role == Role.student else None),
                "studentId": r["student_id"],
            }
            for r in rows
        ]
    }


@router.post("")
def qr_check_in(
    payload: CheckInRequest,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.token:
        raise HTTPException(status_code=400, detail="token_required")
    with db.connection() as conn:
        try:
            result = check_in(conn, user_id=int(user["user_id"]), qr_token=payload.token)
        except (LookupError, PermissionError) as e:
            raise http_error(e)
    return {"ok": True, **result}
