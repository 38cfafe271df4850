from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext, Role, scope_join
from sportcamp.db import Database
from sportcamp.util.time import utcnow_iso

from ..deps import get_current_user, get_db, require_superadmin, require_trainer


router = APIRouter(prefix="/clubs", tags=["clubs"])


class ClubPayload(BaseModel):
    name: Optional[str] = None
    sportId: Optional[int] = None


def _club(row: Any) -> Dict[str, Any]:
    return {
        "id": row["club_id"],
        "name": row["name"],
        "sportId": row["sport_id"],
        "sportName": row["sport_name"],
    }


def _validated(payload: ClubPayload) -> tuple[str, int]:
    name = (payload.name or "").strip()
    if not name or not payload.sportId:
        raise HTTPException(status_code=400, detail="name_and_sport_required")
    return name, int(payload.sportId)


def _fetch_club(conn: Any, club_id: int) -> Optional[Any]:
    return conn.execute(
        """
        SELECT c.club_id, c.name, c.sport_id, s.name AS sport_name
        FROM clubs c
        JOIN sports s ON s.sport_id = c.sport_id
        WHERE c.club_id = ?
        """,
        (club_id,),
    ).fetchone()


@router.get("")
def list_clubs(
    access: AccessContext = Depends(require_trainer),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Superadmin: every club. Admin/coach: clubs where they are admin or coach."""
    join, params = scope_join(access, "c.club_id", roles=[Role.admin, Role.coach])
    with db.connection() as conn:
        rows = conn.execute(
            f"""
            SELECT c.club_id, c.name, c.sport_id, s.name AS sport_name
            FROM clubs c
            JOIN sports s ON s.sport_id = c.sport_id
            {join}
            ORDER BY c.name
            """,
            tuple(params),
        ).fetchall()
    return {"clubs": [_club(r) for r in rows]}


@router.get("/catalog")
def club_catalog(
    _user: Dict[str, Any] = Depends(get_current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Every club, for the join-request picker."""
    with db.connection() as conn:
        rows = conn.execute(
            """
            SELECT c.club_id, c.name, s.name AS sport_name
            FROM clubs c
            JOIN sports s ON s.sport_id = c.sport_id
            ORDER BY c.name
            """
        ).fetchall()
    return {
        "clubs": [{"id": r["club_id"], "name": r["name"], "sportName": r["sport_name"]} for r in rows]
    }


@router.post("")
def create_club(
    payload: ClubPayload,
    access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    name, sport_id = _validated(payload)
    with db.connection() as conn:
        if conn.execute("SELECT 1 FROM sports WHERE sport_id=?", (sport_id,)).fetchone() is None:
            raise HTTPException(status_code=404, detail="sport_not_found")
        row = conn.execute(
            "INSERT INTO clubs (name, sport_id, created_by, created_at) VALUES (?,?,?,?) RETURNING club_id",
            (name, sport_id, access.user_id, utcnow_iso()),
        ).fetchone()
        club = _fetch_club(conn, int(row["club_id"]))
    return {"club": _club(club)}


@router.patch("/{club_id}")
def update_club(
    club_id: int,
    payload: ClubPayload,
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    name, sport_id = _validated(payload)
    with db.connection() as conn:
        if conn.execute("SELECT 1 FROM sports WHERE sport_id=?", (sport_id,)).fetchone() is None:
            raise HTTPException(status_code=404, detail="sport_not_found")
        cur = conn.execute(
            "UPDATE clubs SET name=?, sport_id=? WHERE club_id=?",
            (name, sport_id, club_id),
        )
        if not cur.rowcount:
            raise HTTPException(status_code=404, detail="club_not_found")
        club = _fetch_club(conn, club_id)
    return {"club": _club(club)}


@router.delete("/{club_id}")
def delete_club(
    club_id: int,
    _access: AccessContext = Depends(require_superadmin),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        cur = conn.execute("DELETE FROM clubs WHERE club_id=?", (club_id,))
        if not cur.rowcount:
            raise HTTPException(status_code=404, detail="club_not_found")
    return {"ok": True}
