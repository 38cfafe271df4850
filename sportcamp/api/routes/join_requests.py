from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext, Role, club_id_for, scope_join
from sportcamp.db import Database
from sportcamp.memberships import JOIN_REQUEST_STATUSES, set_join_request_status, submit_join_request

from ..deps import ensure_club_role, get_current_user, get_db, require_staff
from ..errors import http_error


router = APIRouter(prefix="/join-requests", tags=["join-requests"])


class JoinRequestCreate(BaseModel):
    clubId: Optional[int] = None
    note: Optional[str] = None


class JoinRequestUpdate(BaseModel):
    status: Optional[str] = None


@router.post("")
def create_join_request(
    payload: JoinRequestCreate,
    user: Dict[str, Any] = Depends(get_current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.clubId:
        raise HTTPException(status_code=400, detail="club_required")
    with db.connection() as conn:
        try:
            request_id = submit_join_request(
                conn,
                user_id=int(user["user_id"]),
                club_id=payload.clubId,
                note=payload.note,
            )
        except (ValueError, LookupError) as e:
            raise http_error(e)
    return {"requestId": request_id}


@router.get("/self")
def own_join_requests(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        rows = conn.execute(
            """
            SELECT r.request_id, r.status, r.note, r.created_at,
                   c.name AS club_name, s.name AS sport_name
            FROM club_join_requests r
            JOIN clubs c ON c.club_id = r.club_id
            JOIN sports s ON s.sport_id = c.sport_id
            WHERE r.user_id = ?
            ORDER BY r.created_at DESC, r.request_id DESC
            """,
            (int(user["user_id"]),),
        ).fetchall()
    return {
        "requests": [
            {
                "id": r["request_id"],
                "status": r["status"],
                "note": r["note"],
                "createdAt": r["created_at"],
                "clubName": r["club_name"],
                "sportName": r["sport_name"],
            }
            for r in rows
        ]
    }


@router.get("")
def list_join_requests(
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    join, params = scope_join(access, "r.club_id", roles=[Role.admin], alias="cm_admin")
    with db.connection() as conn:
        rows = conn.execute(
            f"""
            SELECT r.request_id, r.status, r.note, r.user_id, r.club_id, r.created_at,
                   c.name AS club_name, s.name AS sport_name, u.full_name AS user_name
            FROM club_join_requests r
            JOIN clubs c ON c.club_id = r.club_id
            JOIN sports s ON s.sport_id = c.sport_id
            JOIN users u ON u.user_id = r.user_id
            {join}
            ORDER BY r.created_at DESC, r.request_id DESC
            """,
            tuple(params),
        ).fetchall()
    return {
        "requests": [
            {
                "id": r["request_id"],
                "status": r["status"],
                "note": r["note"],
                "userId": r["user_id"],
                "clubId": r["club_id"],
                "createdAt": r["created_at"],
                "clubName": r["club_name"],
                "sportName": r["sport_name"],
                "userName": r["user_name"],
            }
            for r in rows
        ]
    }


@router.patch("/{request_id}")
def update_join_request(
    request_id: int,
    payload: JoinRequestUpdate,
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if payload.status not in JOIN_REQUEST_STATUSES:
        raise HTTPException(status_code=400, detail="invalid_status")

    with db.connection() as conn:
        club_id = club_id_for(conn, "club_join_requests", request_id)
        if club_id is None:
            raise HTTPException(status_code=404, detail="request_not_found")
        ensure_club_role(conn, access, club_id, [Role.admin])
        try:
            result = set_join_request_status(conn, request_id, str(payload.status))
        except (ValueError, LookupError) as e:
            raise http_error(e)
    return {"ok": True, **result}
