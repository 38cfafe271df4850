from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext
from sportcamp.db import Database
from sportcamp.util.time import utcnow_iso

from ..deps import get_db, require_superadmin


router = APIRouter(prefix="/sports", tags=["sports"])


class SportPayload(BaseModel):
    name: Optional[str] = None


def _name_or_400(payload: SportPayload) -> str:
    name = (payload.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="name_required")
    return name


@router.get("")
def list_sports(
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        rows = conn.execute(
            """
            SELECT s.sport_id, s.name, COUNT(c.club_id) AS club_count
            FROM sports s
            LEFT JOIN clubs c ON c.sport_id = s.sport_id
            GROUP BY s.sport_id, s.name
            ORDER BY s.name
            """
        ).fetchall()
    return {
        "sports": [
            {"id": r["sport_id"], "name": r["name"], "clubCount": int(r["club_count"] or 0)}
            for r in rows
        ]
    }


@router.post("")
def create_sport(
    payload: SportPayload,
    access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    name = _name_or_400(payload)
    with db.connection() as conn:
        row = conn.execute(
            "INSERT INTO sports (name, created_by, created_at) VALUES (?,?,?) RETURNING sport_id, name",
            (name, access.user_id, utcnow_iso()),
        ).fetchone()
    return {"sport": {"id": row["sport_id"], "name": row["name"]}}


@router.patch("/{sport_id}")
def update_sport(
    sport_id: int,
    payload: SportPayload,
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    name = _name_or_400(payload)
    with db.connection() as conn:
        row = conn.execute(
            "UPDATE sports SET name=? WHERE sport_id=? RETURNING sport_id, name",
            (name, sport_id),
        ).fetchone()
    if row is None:
        raise HTTPException(status_code=404, detail="sport_not_found")
    return {"sport": {"id": row["sport_id"], "name": row["name"]}}


@router.delete("/{sport_id}")
def delete_sport(
    sport_id: int,
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        cur = conn.execute("DELETE FROM sports WHERE sport_id=?", (sport_id,))
        if not cur.rowcount:
            raise HTTPException(status_code=404, detail="sport_not_found")
    return {"ok": True}
