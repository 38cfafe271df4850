"""Role resolution and club scoping.

A user's role is not a global attribute: the same person can administer one club
and train as a student in another. Two views are derived from the membership rows:

- the *effective role*, a coarse club-independent role (admin > coach > student)
  used to decide which navigation / dashboard view to show, and
- the per-club role, which is what authorizes a mutation of a specific club's data.

The effective role is never sufficient on its own for a club-scoped write. Handlers
re-check the caller's row for the target club with `require_club_role`.

The global superadmin flag overrides both: a superadmin has no club list and every
handler treats them as having access to all clubs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from sportcamp.auth.sessions import get_session_user


class Role(str, Enum):
    superadmin = "superadmin"
    admin = "admin"
    coach = "coach"
    student = "student"


# Per-club roles, highest first.
CLUB_ROLES: List[Role] = [Role.admin, Role.coach, Role.student]


@dataclass(frozen=True)
class ClubAccess:
    id: int
    name: str
    sport: Optional[str]
    role: Role

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "sport": self.sport, "role": self.role.value}


@dataclass(frozen=True)
class AccessContext:
    user_id: int
    user_label: str
    role: Role
    clubs: List[ClubAccess] = field(default_factory=list)
    is_superadmin: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "userLabel": self.user_label,
            "role": self.role.value,
            "clubs": [c.to_dict() for c in self.clubs],
            "isSuperadmin": self.is_superadmin,
        }


def parse_club_role(value: Any) -> Optional[Role]:
    """Map a stored membership role to a `Role`. Unknown values map to None (denied)."""
    try:
        role = Role(value)
    except ValueError:
        return None
    return role if role in CLUB_ROLES else None


def effective_role(club_roles: Iterable[Role], is_superadmin: bool) -> Role:
    """Collapse per-club roles into the coarse navigation role.

    superadmin flag wins outright; otherwise the highest role held in any club;
    no memberships falls back to student.
    """
    if is_superadmin:
        return Role.superadmin
    held = set(club_roles)
    for role in CLUB_ROLES:
        if role in held:
            return role
    return Role.student


def user_label(user: Dict[str, Any]) -> str:
    name = (user.get("full_name") or "").strip()
    return name or user.get("email") or "User"


def list_club_access(conn: Any, user_id: int) -> List[ClubAccess]:
    rows = conn.execute(
        """
        SELECT cm.club_id, c.name AS club_name, cm.role, s.name AS sport_name
        FROM club_memberships cm
        JOIN clubs c ON c.club_id = cm.club_id
        JOIN sports s ON s.sport_id = c.sport_id
        WHERE cm.user_id = ?
        ORDER BY c.name
        """,
        (int(user_id),),
    ).fetchall()

    clubs: List[ClubAccess] = []
    for r in rows:
        role = parse_club_role(r["role"])
        if role is None:
            continue
        clubs.append(
            ClubAccess(
                id=int(r["club_id"]),
                name=str(r["club_name"]),
                sport=r["sport_name"],
                role=role,
            )
        )
    return clubs


def resolve_access(conn: Any, user: Optional[Dict[str, Any]]) -> Optional[AccessContext]:
    """Build the access context for an authenticated user row (None -> None)."""
    if user is None:
        return None

    user_id = int(user["user_id"])
    label = user_label(user)

    if bool(user.get("is_superadmin")):
        return AccessContext(
            user_id=user_id,
            user_label=label,
            role=Role.superadmin,
            clubs=[],
            is_superadmin=True,
        )

    clubs = list_club_access(conn, user_id)
    return AccessContext(
        user_id=user_id,
        user_label=label,
        role=effective_role((c.role for c in clubs), False),
        clubs=clubs,
        is_superadmin=False,
    )


def resolve_access_for_session(conn: Any, session_id: Optional[str]) -> Optional[AccessContext]:
    """Session token -> access context; None if the token is missing, unknown or expired."""
    if not session_id:
        return None
    return resolve_access(conn, get_session_user(conn, session_id))


def club_role_of(conn: Any, user_id: int, club_id: int) -> Optional[Role]:
    row = conn.execute(
        "SELECT role FROM club_memberships WHERE user_id=? AND club_id=?",
        (int(user_id), int(club_id)),
    ).fetchone()
    if row is None:
        return None
    return parse_club_role(row["role"])


def require_club_role(
    conn: Any,
    access: AccessContext,
    club_id: int,
    allowed: Iterable[Role],
) -> Optional[Role]:
    """Authorize a club-scoped operation.

    Superadmin always passes (returns Role.superadmin). Everyone else must hold one
    of `allowed` in that club; a missing or unrecognized row raises PermissionError.
    """
    if access.is_superadmin:
        return Role.superadmin
    role = club_role_of(conn, access.user_id, club_id)
    if role is None or role not in set(allowed):
        raise PermissionError("forbidden")
    return role


_OWNED_BY_CLUB = {
    "club_memberships": "membership_id",
    "club_join_requests": "request_id",
    "wallets": "wallet_id",
    "training_sessions": "session_id",
}


def club_id_for(conn: Any, table: str, row_id: int) -> Optional[int]:
    """Owning club of a membership / join request / wallet / training session."""
    pk = _OWNED_BY_CLUB.get(table)
    if pk is None:
        raise ValueError(f"unknown_table:{table}")
    row = conn.execute(f"SELECT club_id FROM {table} WHERE {pk}=?", (int(row_id),)).fetchone()
    if row is None:
        return None
    return int(row["club_id"])


def scope_join(access: AccessContext, club_col: str, *, roles: Iterable[Role] = (), alias: str = "cm_scope") -> tuple[str, list[Any]]:
    """JOIN clause restricting rows to clubs where the caller holds one of `roles`.

    Empty `roles` means any membership. Superadmin gets no restriction.
    """
    if access.is_superadmin:
        return "", []
    sql = f"""
        JOIN club_memberships {alias}
          ON {alias}.club_id = {club_col}
         AND {alias}.user_id = ?
    """
    params: list[Any] = [access.user_id]
    wanted = [r.value for r in roles]
    if wanted:
        placeholders = ",".join(["?"] * len(wanted))
        sql += f" AND {alias}.role IN ({placeholders})"
        params.extend(wanted)
    return sql, params
