"""Memberships, join requests and QR check-in."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sportcamp.access import AccessContext, Role, parse_club_role
from sportcamp.util.time import utcnow_iso
from sportcamp.wallets import ensure_wallet


JOIN_REQUEST_STATUSES = ("pending", "approved", "rejected")


def assignable_roles(access: AccessContext) -> List[Role]:
    """Roles the caller may hand out. Only the superadmin can create club admins."""
    if access.is_superadmin:
        return [Role.admin, Role.coach, Role.student]
    return [Role.coach, Role.student]


def add_membership(conn: Any, *, club_id: int, user_id: int, role: Role) -> int:
    """Insert a (club, user, role) row. Students get their club wallet at the same time."""
    club_role = parse_club_role(role)
    if club_role is None:
        raise ValueError("invalid_role")
    role = club_role

    if conn.execute("SELECT 1 FROM clubs WHERE club_id=?", (int(club_id),)).fetchone() is None:
        raise LookupError("club_not_found")
    if conn.execute("SELECT 1 FROM users WHERE user_id=?", (int(user_id),)).fetchone() is None:
        raise LookupError("user_not_found")

    row = conn.execute(
        """
        INSERT INTO club_memberships (club_id, user_id, role, created_at)
        VALUES (?, ?, ?, ?)
        RETURNING membership_id
        """,
        (int(club_id), int(user_id), role.value, utcnow_iso()),
    ).fetchone()

    if role == Role.student:
        ensure_wallet(conn, student_id=int(user_id), club_id=int(club_id))
    return int(row["membership_id"])


def set_membership_role(conn: Any, membership_id: int, role: Role) -> None:
    row = conn.execute(
        "SELECT club_id, user_id FROM club_memberships WHERE membership_id=?",
        (int(membership_id),),
    ).fetchone()
    if row is None:
        raise LookupError("membership_not_found")
    conn.execute(
        "UPDATE club_memberships SET role=? WHERE membership_id=?",
        (role.value, int(membership_id)),
    )
    if role == Role.student:
        ensure_wallet(conn, student_id=int(row["user_id"]), club_id=int(row["club_id"]))


# -----------------------------
# Join requests
# -----------------------------


def submit_join_request(conn: Any, *, user_id: int, club_id: int, note: Optional[str] = None) -> int:
    if conn.execute("SELECT 1 FROM clubs WHERE club_id=?", (int(club_id),)).fetchone() is None:
        raise LookupError("club_not_found")

    member = conn.execute(
        "SELECT 1 FROM club_memberships WHERE user_id=? AND club_id=?",
        (int(user_id), int(club_id)),
    ).fetchone()
    if member is not None:
        raise ValueError("already_member")

    pending = conn.execute(
        "SELECT 1 FROM club_join_requests WHERE user_id=? AND club_id=? AND status='pending'",
        (int(user_id), int(club_id)),
    ).fetchone()
    if pending is not None:
        raise ValueError("request_pending")

    now = utcnow_iso()
    row = conn.execute(
        """
        INSERT INTO club_join_requests (club_id, user_id, status, note, created_at, updated_at)
        VALUES (?, ?, 'pending', ?, ?, ?)
        RETURNING request_id
        """,
        (int(club_id), int(user_id), (note or "").strip() or None, now, now),
    ).fetchone()
    return int(row["request_id"])


def set_join_request_status(conn: Any, request_id: int, status: str) -> Dict[str, Any]:
    """Move a request among pending/approved/rejected.

    Approval also makes the requester a student of the club (plus wallet) unless
    they already hold a membership there.
    """
    if status not in JOIN_REQUEST_STATUSES:
        raise ValueError("invalid_status")

    req = conn.execute(
        "SELECT request_id, club_id, user_id, status FROM club_join_requests WHERE request_id=?",
        (int(request_id),),
    ).fetchone()
    if req is None:
        raise LookupError("request_not_found")

    conn.execute(
        "UPDATE club_join_requests SET status=?, updated_at=? WHERE request_id=?",
        (status, utcnow_iso(), int(request_id)),
    )

    membership_id: Optional[int] = None
    if status == "approved":
        existing = conn.execute(
            "SELECT membership_id FROM club_memberships WHERE user_id=? AND club_id=?",
            (int(req["user_id"]), int(req["club_id"])),
        ).fetchone()
        if existing is None:
            membership_id = add_membership(
                conn,
                club_id=int(req["club_id"]),
                user_id=int(req["user_id"]),
                role=Role.student,
            )
        else:
            membership_id = int(existing["membership_id"])

    return {"id": int(request_id), "status": status, "membershipId": membership_id}


# -----------------------------
# QR check-in
# -----------------------------


def check_in(conn: Any, *, user_id: int, qr_token: str) -> Dict[str, Any]:
    """Record 'present' for the caller on the session behind a QR token.

    Only a student of the session's club may check in. Repeated scans are no-ops
    (unique (session_id, student_id)).
    """
    session = conn.execute(
        "SELECT session_id, club_id FROM training_sessions WHERE qr_token=?",
        (str(qr_token),),
    ).fetchone()
    if session is None:
        raise LookupError("session_not_found")

    row = conn.execute(
        "SELECT role FROM club_memberships WHERE user_id=? AND club_id=?",
        (int(user_id), int(session["club_id"])),
    ).fetchone()
    if row is None or parse_club_role(row["role"]) != Role.student:
        raise PermissionError("students_only")

    cur = conn.execute(
        """
        INSERT INTO attendance (session_id, student_id, status, scanned_at)
        VALUES (?, ?, 'present', ?)
        ON CONFLICT(session_id, student_id) DO NOTHING
        """,
        (int(session["session_id"]), int(user_id), utcnow_iso()),
    )
    return {"sessionId": int(session["session_id"]), "recorded": bool(cur.rowcount)}
