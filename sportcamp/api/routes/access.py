from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext, resolve_access
from sportcamp.auth.crud import get_user_by_id, update_profile
from sportcamp.db import Database
from sportcamp.util.time import days_ago_iso

from ..deps import get_access, get_db, get_optional_user


router = APIRouter(tags=["access"])


@router.get("/access")
def access_status(
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Navigation gate: signed-out, signed in without any club, or allowed."""
    if user is None:
        return {"status": "signed-out"}

    with db.connection() as conn:
        access = resolve_access(conn, user)
    if access is None:
        return {"status": "signed-out"}

    if not access.is_superadmin and not access.clubs:
        return {"status": "no-membership", "userId": access.user_id, "userLabel": access.user_label}

    ctx = access.to_dict()
    return {
        "status": "allowed",
        "role": ctx["role"],
        "clubs": ctx["clubs"],
        "userId": ctx["userId"],
        "userLabel": ctx["userLabel"],
    }


class ProfileUpdate(BaseModel):
    fullName: Optional[str] = None
    phone: Optional[str] = None


@router.get("/profile")
def get_profile(
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        row = get_user_by_id(conn, access.user_id)
        if row is None:
            raise HTTPException(status_code=404, detail="user_not_found")

        wallets = conn.execute(
            """
            SELECT w.wallet_id, w.balance, c.name AS club_name, s.name AS sport_name
            FROM wallets w
            JOIN clubs c ON c.club_id = w.club_id
            JOIN sports s ON s.sport_id = c.sport_id
            WHERE w.student_id = ?
            ORDER BY c.name
            """,
            (access.user_id,),
        ).fetchall()

        summary = conn.execute(
            """
            SELECT COUNT(*) AS total,
                   MAX(scanned_at) AS last_seen,
                   SUM(CASE WHEN scanned_at >= ? THEN 1 ELSE 0 END) AS recent
            FROM attendance
            WHERE student_id = ?
            """,
            (days_ago_iso(30), access.user_id),
        ).fetchone()

    return {
        "user": {
            "id": access.user_id,
            "email": row["email"],
            "fullName": row["full_name"],
            "phone": row["phone"],
            "role": access.role.value,
            "isSuperadmin": bool(row["is_superadmin"]),
        },
        "clubs": [c.to_dict() for c in access.clubs],
        "wallets": [
            {
                "id": w["wallet_id"],
                "balance": float(w["balance"]),
                "clubName": w["club_name"],
                "sportName": w["sport_name"],
            }
            for w in wallets
        ],
        "attendanceSummary": {
            "total": int(summary["total"] or 0),
            "recent": int(summary["recent"] or 0),
            "lastSeen": summary["last_seen"],
        },
    }


@router.patch("/profile")
def patch_profile(
    payload: ProfileUpdate,
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        update_profile(conn, access.user_id, full_name=payload.fullName, phone=payload.phone)
        row = get_user_by_id(conn, access.user_id)
    return {"user": {"id": access.user_id, "fullName": row["full_name"], "phone": row["phone"]}}
