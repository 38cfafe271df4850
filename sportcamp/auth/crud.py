from __future__ import annotations

from typing import Any, Dict, Optional

from sportcamp.config import Config
from sportcamp.db import connect
from sportcamp.util.time import utcnow_iso

from .security import hash_password, verify_password


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def public_user(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    d.pop("password_hash", None)
    d["is_superadmin"] = bool(d.get("is_superadmin"))
    return d


def user_payload(row: Any | Dict[str, Any]) -> Dict[str, Any]:
    """API shape of a user (camelCase)."""
    u = public_user(row)
    return {
        "id": u.get("user_id"),
        "email": u.get("email"),
        "fullName": u.get("full_name"),
        "isSuperadmin": u["is_superadmin"],
    }


def get_user_by_email(conn: Any, email: str) -> Optional[Any]:
    e = normalize_email(email)
    if not e:
        return None
    return conn.execute("SELECT * FROM users WHERE email=?", (e,)).fetchone()


def get_user_by_id(conn: Any, user_id: int) -> Optional[Any]:
    return conn.execute("SELECT * FROM users WHERE user_id=?", (int(user_id),)).fetchone()


def verify_user_credentials(conn: Any, email: str, password: str) -> Optional[Any]:
    row = get_user_by_email(conn, email)
    if row is None:
        return None
    if not verify_password(password, str(row["password_hash"])):
        return None
    return row


def create_user(
    conn: Any,
    *,
    email: str,
    password: str,
    full_name: str | None = None,
    is_superadmin: bool = False,
) -> Dict[str, Any]:
    e = normalize_email(email)
    if not e:
        raise ValueError("email_required")
    if not password:
        raise ValueError("password_required")

    existing = conn.execute("SELECT 1 FROM users WHERE email=?", (e,)).fetchone()
    if existing is not None:
        raise ValueError("email_exists")

    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO users (email, password_hash, full_name, is_superadmin, created_at, updated_at)
        VALUES (?,?,?,?,?,?)
        """,
        (e, hash_password(password), (full_name or "").strip() or None, 1 if is_superadmin else 0, now, now),
    )
    row = get_user_by_email(conn, e)
    assert row is not None
    return public_user(row)


def update_profile(conn: Any, user_id: int, *, full_name: str | None, phone: str | None) -> None:
    conn.execute(
        "UPDATE users SET full_name=?, phone=?, updated_at=? WHERE user_id=?",
        ((full_name or "").strip() or None, (phone or "").strip() or None, utcnow_iso(), int(user_id)),
    )


def touch_last_login(conn: Any, user_id: int) -> None:
    now = utcnow_iso()
    conn.execute(
        "UPDATE users SET last_login_at=?, updated_at=? WHERE user_id=?",
        (now, now, int(user_id)),
    )


def promote_superadmin(conn: Any, user_id: int) -> None:
    conn.execute(
        "UPDATE users SET is_superadmin=1, updated_at=? WHERE user_id=?",
        (utcnow_iso(), int(user_id)),
    )


def bootstrap_superadmin(
    cfg: Config,
    *,
    email: str | None = None,
    password: str | None = None,
    full_name: str | None = None,
) -> Optional[Dict[str, Any]]:
    """Create the platform superadmin, or promote an existing account.

    Operator tooling only; the API never sets is_superadmin. Values default to
    SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD / SUPERADMIN_NAME. Returns None when
    no email or password is configured.
    """
    email = normalize_email(email or cfg.SUPERADMIN_EMAIL or "")
    password = password or cfg.SUPERADMIN_PASSWORD or ""
    if not email or not password:
        return None

    with connect(cfg.DB_DSN) as conn:
        row = get_user_by_email(conn, email)
        if row is not None:
            _debug(f"User {email} exists; promoting to superadmin")
            promote_superadmin(conn, int(row["user_id"]))
            return public_user(get_user_by_id(conn, int(row["user_id"])))

        _debug(f"Creating superadmin {email}")
        return create_user(
            conn,
            email=email,
            password=password,
            full_name=full_name or cfg.SUPERADMIN_NAME,
            is_superadmin=True,
        )
