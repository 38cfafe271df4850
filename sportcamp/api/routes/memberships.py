from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext, Role, club_id_for, parse_club_role, scope_join
from sportcamp.db import Database
from sportcamp.memberships import add_membership, assignable_roles, set_membership_role

from ..deps import ensure_club_role, get_db, require_staff
from ..errors import http_error


router = APIRouter(prefix="/memberships", tags=["memberships"])


class MembershipCreate(BaseModel):
    clubId: Optional[int] = None
    userId: Optional[int] = None
    role: Optional[str] = None


class MembershipUpdate(BaseModel):
    role: Optional[str] = None


def _assignable_or_403(access: AccessContext, value: Optional[str]) -> Role:
    role = parse_club_role(value)
    if role is None or role not in assignable_roles(access):
        raise HTTPException(status_code=403, detail="role_not_allowed")
    return role


def _owning_club_or_404(conn: Any, membership_id: int) -> int:
    club_id = club_id_for(conn, "club_memberships", membership_id)
    if club_id is None:
        raise HTTPException(status_code=404, detail="membership_not_found")
    return club_id


@router.get("")
def list_memberships(
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    join, params = scope_join(access, "cm.club_id", roles=[Role.admin], alias="cm_admin")
    with db.connection() as conn:
        rows = conn.execute(
            f"""
            SELECT cm.membership_id, cm.role, cm.user_id, cm.club_id,
                   c.name AS club_name, s.name AS sport_name, u.full_name AS user_name
            FROM club_memberships cm
            JOIN clubs c ON c.club_id = cm.club_id
            JOIN sports s ON s.sport_id = c.sport_id
            JOIN users u ON u.user_id = cm.user_id
            {join}
            ORDER BY cm.created_at DESC, cm.membership_id DESC
            """,
            tuple(params),
        ).fetchall()
    return {
        "memberships": [
            {
                "id": r["membership_id"],
                "role": r["role"],
                "userId": r["user_id"],
                "clubId": r["club_id"],
                "clubName": r["club_name"],
                "sportName": r["sport_name"],
                "userName": r["user_name"],
            }
            for r in rows
        ]
    }


@router.post("")
def create_membership(
    payload: MembershipCreate,
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.clubId or not payload.userId or not payload.role:
        raise HTTPException(status_code=400, detail="club_user_role_required")
    role = _assignable_or_403(access, payload.role)

    with db.connection() as conn:
        ensure_club_role(conn, access, payload.clubId, [Role.admin])
        try:
            membership_id = add_membership(conn, club_id=payload.clubId, user_id=payload.userId, role=role)
        except (ValueError, LookupError) as e:
            raise http_error(e)
    return {"membershipId": membership_id}


@router.patch("/{membership_id}")
def update_membership(
    membership_id: int,
    payload: MembershipUpdate,
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.role:
        raise HTTPException(status_code=400, detail="role_required")
    role = _assignable_or_403(access, payload.role)

    with db.connection() as conn:
        club_id = _owning_club_or_404(conn, membership_id)
        ensure_club_role(conn, access, club_id, [Role.admin])
        set_membership_role(conn, membership_id, role)
    return {"ok": True}


@router.delete("/{membership_id}")
def delete_membership(
    membership_id: int,
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        club_id = _owning_club_or_404(conn, membership_id)
        ensure_club_role(conn, access, club_id, [Role.admin])
        conn.execute("DELETE FROM club_memberships WHERE membership_id=?", (membership_id,))
    return {"ok": True}
