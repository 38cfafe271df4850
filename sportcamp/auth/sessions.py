"""Session store: opaque session id -> user, with expiry.

Rows are created at login/signup and deleted at logout. Expired rows are simply
ignored by lookups; nothing sweeps them.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sportcamp.util.time import to_iso, utcnow

from .security import new_session_id


def create_session(
    conn: Any,
    user_id: int,
    *,
    ttl_days: int = 14,
    now: Optional[datetime] = None,
) -> Tuple[str, datetime]:
    """Insert a session row; returns (session_id, expires_at)."""
    created = now or utcnow()
    expires_at = created + timedelta(days=max(1, int(ttl_days)))
    session_id = new_session_id()
    conn.execute(
        "INSERT INTO user_sessions (session_id, user_id, expires_at, created_at) VALUES (?,?,?,?)",
        (session_id, int(user_id), to_iso(expires_at), to_iso(created)),
    )
    return session_id, expires_at


def get_session_user(
    conn: Any,
    session_id: str,
    *,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """User row for a live session, or None when unknown or expired."""
    if not session_id:
        return None
    row = conn.execute(
        """
        SELECT u.user_id, u.email, u.full_name, u.phone, u.is_superadmin, s.session_id
        FROM user_sessions s
        JOIN users u ON u.user_id = s.user_id
        WHERE s.session_id = ? AND s.expires_at > ?
        """,
        (str(session_id), to_iso(now or utcnow())),
    ).fetchone()
    if row is None:
        return None
    user = dict(row)
    user["is_superadmin"] = bool(user.get("is_superadmin"))
    return user


def delete_session(conn: Any, session_id: Optional[str]) -> None:
    if not session_id:
        return
    conn.execute("DELETE FROM user_sessions WHERE session_id=?", (str(session_id),))
