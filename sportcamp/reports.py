"""Dashboard, summary, trend and CSV export queries.

All queries are scoped through `scope_join`: a superadmin sees every club, everyone
else only the clubs they hold a membership in (admin-only for trends / export).
"""

from __future__ import annotations

import csv
import io
from typing import Any, Dict, Iterable, List, Sequence

from sportcamp.access import AccessContext, Role, scope_join
from sportcamp.util.time import days_ago_iso


EXPORT_HEADER = [
    "Session ID",
    "Title",
    "Sport",
    "Club",
    "Coach",
    "Starts At",
    "Attendance Count",
]


def clamp(value: Any, lo: int, hi: int, default: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return min(max(n, lo), hi)


def _scalar(conn: Any, sql: str, params: Sequence[Any], key: str = "n") -> Any:
    row = conn.execute(sql, tuple(params)).fetchone()
    return row[key] if row is not None else None


def summary(conn: Any, access: AccessContext) -> Dict[str, Any]:
    """Last-30-day activity for the caller's clubs."""
    since = days_ago_iso(30)

    s_join, s_params = scope_join(access, "s.club_id")
    sessions = _scalar(
        conn,
        f"SELECT COUNT(*) AS n FROM training_sessions s {s_join} WHERE s.starts_at >= ?",
        [*s_params, since],
    )

    a_join, a_params = scope_join(access, "s.club_id")
    attendance = _scalar(
        conn,
        f"""
        SELECT COUNT(*) AS n
        FROM attendance a
        JOIN training_sessions s ON s.session_id = a.session_id
        {a_join}
        WHERE a.scanned_at >= ?
        """,
        [*a_params, since],
    )

    w_join, w_params = scope_join(access, "w.club_id")
    wallets_total = _scalar(
        conn,
        f"SELECT SUM(w.balance) AS total FROM wallets w {w_join}",
        w_params,
        key="total",
    )

    c_join, c_params = scope_join(access, "c.club_id")
    clubs = _scalar(conn, f"SELECT COUNT(*) AS n FROM clubs c {c_join}", c_params)

    return {
        "sessions": int(sessions or 0),
        "attendance": int(attendance or 0),
        "walletsTotal": float(wallets_total or 0),
        "clubs": int(clubs or 0),
    }


def trends(conn: Any, access: AccessContext, *, days: int) -> Dict[str, Any]:
    since = days_ago_iso(days)
    join, params = scope_join(access, "s.club_id", roles=[Role.admin])

    sport_rows = conn.execute(
        f"""
        SELECT sp.name AS name,
               COUNT(DISTINCT s.session_id) AS sessions,
               COUNT(a.attendance_id) AS attendance
        FROM training_sessions s
        JOIN sports sp ON sp.sport_id = s.sport_id
        {join}
        LEFT JOIN attendance a ON a.session_id = s.session_id
        WHERE s.starts_at >= ?
        GROUP BY sp.name
        ORDER BY sessions DESC
        """,
        (*params, since),
    ).fetchall()

    coach_rows = conn.execute(
        f"""
        SELECT u.full_name AS name,
               COUNT(DISTINCT s.session_id) AS sessions,
               COUNT(a.attendance_id) AS attendance
        FROM training_sessions s
        LEFT JOIN users u ON u.user_id = s.coach_id
        {join}
        LEFT JOIN attendance a ON a.session_id = s.session_id
        WHERE s.starts_at >= ?
        GROUP BY u.full_name
        ORDER BY sessions DESC
        """,
        (*params, since),
    ).fetchall()

    return {
        "days": days,
        "bySport": [
            {"name": r["name"], "sessions": int(r["sessions"] or 0), "attendance": int(r["attendance"] or 0)}
            for r in sport_rows
        ],
        "byCoach": [
            {
                "name": r["name"] or "Unassigned coach",
                "sessions": int(r["sessions"] or 0),
                "attendance": int(r["attendance"] or 0),
            }
            for r in coach_rows
        ],
    }


def export_rows(conn: Any, access: AccessContext, *, days: int) -> List[List[Any]]:
    since = days_ago_iso(days)
    join, params = scope_join(access, "s.club_id", roles=[Role.admin])
    rows = conn.execute(
        f"""
        SELECT s.session_id, s.title, s.starts_at,
               c.name AS club_name,
               sp.name AS sport_name,
               u.full_name AS coach_name,
               COUNT(a.attendance_id) AS attendance_count
        FROM training_sessions s
        JOIN clubs c ON c.club_id = s.club_id
        JOIN sports sp ON sp.sport_id = s.sport_id
        LEFT JOIN users u ON u.user_id = s.coach_id
        {join}
        LEFT JOIN attendance a ON a.session_id = s.session_id
        WHERE s.starts_at >= ?
        GROUP BY s.session_id, s.title, s.starts_at, c.name, sp.name, u.full_name
        ORDER BY s.starts_at DESC
        """,
        (*params, since),
    ).fetchall()
    return [
        [
            r["session_id"],
            r["title"],
            r["sport_name"],
            r["club_name"],
            r["coach_name"] or "Unassigned",
            r["starts_at"],
            int(r["attendance_count"] or 0),
        ]
        for r in rows
    ]


def to_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> str:
    """Every field double-quoted, embedded quotes doubled, '\\n' line endings, no trailing newline."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(list(header))
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buf.getvalue().rstrip("\n")


def live_dashboard(conn: Any, access: AccessContext) -> Dict[str, Any]:
    """Small live panel: counts plus the latest four check-ins and wallet moves."""
    since = days_ago_iso(7)

    m_join, m_params = scope_join(access, "cm.club_id", alias="cm_access")
    students = _scalar(
        conn,
        f"""
        SELECT COUNT(DISTINCT cm.user_id) AS n
        FROM club_memberships cm
        {m_join}
        WHERE cm.role = 'student'
        """,
        m_params,
    )

    s_join, s_params = scope_join(access, "s.club_id", alias="cm_access")
    sessions = _scalar(
        conn,
        f"SELECT COUNT(*) AS n FROM training_sessions s {s_join} WHERE s.starts_at >= ?",
        [*s_params, since],
    )

    w_join, w_params = scope_join(access, "w.club_id", alias="cm_access")
    wallets_total = _scalar(
        conn,
        f"SELECT SUM(w.balance) AS total FROM wallets w {w_join}",
        w_params,
        key="total",
    )

    attendance_rows = conn.execute(
        f"""
        SELECT u.full_name AS student_name, s.title AS session_title, a.scanned_at, a.status
        FROM attendance a
        JOIN training_sessions s ON s.session_id = a.session_id
        JOIN users u ON u.user_id = a.student_id
        {s_join}
        ORDER BY a.scanned_at DESC
        LIMIT 4
        """,
        tuple(s_params),
    ).fetchall()

    move_rows = conn.execute(
        f"""
        SELECT t.amount, t.reason, c.name AS club_name
        FROM wallet_transactions t
        JOIN wallets w ON w.wallet_id = t.wallet_id
        JOIN clubs c ON c.club_id = w.club_id
        {w_join}
        ORDER BY t.created_at DESC, t.transaction_id DESC
        LIMIT 4
        """,
        tuple(w_params),
    ).fetchall()

    return {
        "stats": {
            "students": int(students or 0),
            "sessions": int(sessions or 0),
            "walletsTotal": float(wallets_total or 0),
        },
        "attendance": [
            {"student": r["student_name"], "session": r["session_title"], "time": r["scanned_at"], "status": r["status"]}
            for r in attendance_rows
        ],
        "walletMoves": [
            {"amount": float(r["amount"]), "reason": r["reason"], "club": r["club_name"]}
            for r in move_rows
        ],
    }
