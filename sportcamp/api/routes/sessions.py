from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from sportcamp.access import AccessContext, Role, club_id_for, scope_join
from sportcamp.auth.security import new_qr_token
from sportcamp.config import Config
from sportcamp.db import Database
from sportcamp.util.time import to_iso, utcnow_iso

from ..deps import ensure_club_role, get_access, get_cfg, get_current_user, get_db, require_trainer


router = APIRouter(prefix="/sessions", tags=["sessions"])

TRAINERS = (Role.admin, Role.coach)


class SessionCreate(BaseModel):
    title: Optional[str] = None
    startsAt: Optional[datetime] = None
    clubId: Optional[int] = None
    location: Optional[str] = None
    capacity: Optional[int] = None


class SessionUpdate(BaseModel):
    title: Optional[str] = None
    startsAt: Optional[datetime] = None
    location: Optional[str] = None
    capacity: Optional[int] = None


def scan_url(cfg: Config, qr_token: str) -> str:
    return f"{cfg.PUBLIC_APP_URL.rstrip('/')}/scan?token={quote(str(qr_token))}"


_SELECT = """
    SELECT s.session_id, s.title, s.starts_at, s.location, s.capacity, s.qr_token,
           s.club_id, c.name AS club_name, s.sport_id, sp.name AS sport_name
    FROM training_sessions s
    JOIN clubs c ON c.club_id = s.club_id
    JOIN sports sp ON sp.sport_id = s.sport_id
"""


def _session(row: Any, cfg: Config) -> Dict[str, Any]:
    return {
        "id": row["session_id"],
        "title": row["title"],
        "startsAt": row["starts_at"],
        "location": row["location"],
        "capacity": row["capacity"],
        "qrToken": row["qr_token"],
        "scanUrl": scan_url(cfg, row["qr_token"]),
        "clubId": row["club_id"],
        "clubName": row["club_name"],
        "sportId": row["sport_id"],
        "sportName": row["sport_name"],
    }


def _owning_club_or_404(conn: Any, session_id: int) -> int:
    club_id = club_id_for(conn, "training_sessions", session_id)
    if club_id is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    return club_id


def _title_and_start(title: Optional[str], starts_at: Optional[datetime]) -> tuple[str, str]:
    """Stored start times are always UTC with a trailing Z; naive times are refused."""
    t = (title or "").strip()
    if not t or starts_at is None:
        raise HTTPException(status_code=400, detail="title_and_start_required")
    if starts_at.tzinfo is None or starts_at.utcoffset() is None:
        raise HTTPException(status_code=400, detail="invalid_starts_at")
    return t, to_iso(starts_at)


def _capacity(value: Optional[int]) -> Optional[int]:
    if value is not None and value < 0:
        raise HTTPException(status_code=400, detail="invalid_capacity")
    return value


@router.get("")
def list_sessions(
    access: AccessContext = Depends(require_trainer),
    cfg: Config = Depends(get_cfg),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    join, params = scope_join(access, "s.club_id", roles=TRAINERS)
    with db.connection() as conn:
        rows = conn.execute(f"{_SELECT} {join} ORDER BY s.starts_at DESC", tuple(params)).fetchall()
    return {"sessions": [_session(r, cfg) for r in rows]}


@router.post("")
def create_training_session(
    payload: SessionCreate,
    access: AccessContext = Depends(require_trainer),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    title, starts_at = _title_and_start(payload.title, payload.startsAt)
    if not payload.clubId:
        raise HTTPException(status_code=400, detail="club_required")
    capacity = _capacity(payload.capacity)

    with db.connection() as conn:
        club = conn.execute("SELECT sport_id FROM clubs WHERE club_id=?", (payload.clubId,)).fetchone()
        if club is None:
            raise HTTPException(status_code=404, detail="club_not_found")
        ensure_club_role(conn, access, payload.clubId, TRAINERS)

        row = conn.execute(
            """
            INSERT INTO training_sessions
                (club_id, sport_id, coach_id, title, starts_at, location, capacity, qr_token, created_at)
            VALUES (?,?,?,?,?,?,?,?,?)
            RETURNING session_id
            """,
            (
                payload.clubId,
                int(club["sport_id"]),
                access.user_id,
                title,
                starts_at,
                (payload.location or "").strip() or None,
                capacity,
                new_qr_token(),
                utcnow_iso(),
            ),
        ).fetchone()
    return {"sessionId": row["session_id"]}


@router.get("/lookup")
def lookup_by_token(
    token: Optional[str] = Query(None),
    _user: Dict[str, Any] = Depends(get_current_user),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Resolve a scanned QR token to the session it belongs to."""
    if not token:
        raise HTTPException(status_code=400, detail="token_required")
    with db.connection() as conn:
        row = conn.execute(f"{_SELECT} WHERE s.qr_token = ?", (token,)).fetchone()
    if row is None:
        raise HTTPException(status_code=404, detail="session_not_found")
    return {
        "session": {
            "id": row["session_id"],
            "title": row["title"],
            "clubName": row["club_name"],
            "sportName": row["sport_name"],
        }
    }


@router.get("/{session_id}")
def get_training_session(
    session_id: int,
    access: AccessContext = Depends(get_access),
    cfg: Config = Depends(get_cfg),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        club_id = _owning_club_or_404(conn, session_id)
        ensure_club_role(conn, access, club_id, (Role.admin, Role.coach, Role.student))
        row = conn.execute(f"{_SELECT} WHERE s.session_id = ?", (session_id,)).fetchone()
    return {"session": _session(row, cfg)}


@router.patch("/{session_id}")
def update_training_session(
    session_id: int,
    payload: SessionUpdate,
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    title, starts_at = _title_and_start(payload.title, payload.startsAt)
    capacity = _capacity(payload.capacity)
    with db.connection() as conn:
        club_id = _owning_club_or_404(conn, session_id)
        ensure_club_role(conn, access, club_id, TRAINERS)
        conn.execute(
            "UPDATE training_sessions SET title=?, starts_at=?, location=?, capacity=? WHERE session_id=?",
            (title, starts_at, (payload.location or "").strip() or None, capacity, session_id),
        )
    return {"ok": True}


@router.delete("/{session_id}")
def delete_training_session(
    session_id: int,
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        club_id = _owning_club_or_404(conn, session_id)
        ensure_club_role(conn, access, club_id, TRAINERS)
        conn.execute("DELETE FROM training_sessions WHERE session_id=?", (session_id,))
    return {"ok": True}


@router.get("/{session_id}/attendance")
def session_attendance(
    session_id: int,
    access: AccessContext = Depends(require_trainer),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    with db.connection() as conn:
        club_id = _owning_club_or_404(conn, session_id)
        ensure_club_role(conn, access, club_id, TRAINERS)
        rows = conn.execute(
            """
            SELECT a.attendance_id, a.status, a.scanned_at, a.student_id, u.full_name AS student_name
            FROM attendance a
            JOIN users u ON u.user_id = a.student_id
            WHERE a.session_id = ?
            ORDER BY a.scanned_at DESC
            """,
            (session_id,),
        ).fetchall()
    return {
        "attendance": [
            {
                "id": r["attendance_id"],
                "status": r["status"],
                "scannedAt": r["scanned_at"],
                "studentId": r["student_id"],
                "studentName": r["student_name"],
            }
            for r in rows
        ]
    }
