from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sportcamp.access import AccessContext, Role, require_club_role, resolve_access
from sportcamp.auth.sessions import get_session_user
from sportcamp.config import Config
from sportcamp.db import Database

_bearer = HTTPBearer(auto_error=False)

def _unauthorized(detail: str = "unauthorized") -> HTTPException:
    return HTTPException(status_code=401, detail=detail, headers={"WWW-Authenticate": "Bearer"})

def get_cfg(request: Request) -> Config:
    cfg = getattr(request.app.state, "cfg", None)
    if cfg is None:
        raise HTTPException(status_code=500, detail="server_config_missing")
    return cfg

def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=500, detail="database_unavailable")
    return db

def get_session_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    cfg: Config = Depends(get_cfg),
) -> Optional[str]:
    """Session id from `Authorization: Bearer <id>` or, failing that, the session cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(cfg.SESSION_COOKIE_NAME) or None

def get_optional_user(
    session_id: Optional[str] = Depends(get_session_id),
    db: Database = Depends(get_db),
) -> Optional[Dict[str, Any]]:
    if not session_id:
        return None
    with db.connection() as conn:
        return get_session_user(conn, session_id)

def get_current_user(user: Optional[Dict[str, Any]] = Depends(get_optional_user)) -> Dict[str, Any]:
    # Missing, unknown and expired sessions all look the same to the caller.
    if user is None:
        raise _unauthorized()
    return user

def get_access(
    user: Dict[str, Any] = Depends(get_current_user),
    db: Database = Depends(get_db),
) -> AccessContext:
    with db.connection() as conn:
        access = resolve_access(conn, user)
    if access is None:
        raise _unauthorized()
    return access

def require_roles(*roles: Role) -> Callable[..., AccessContext]:
    """Dependency factory: 403 unless the caller's coarse role is one of `roles`.

    Passing the coarse check is not enough to touch a particular club; handlers still
    call `require_club_role` for the target club.
    """
    allowed = frozenset(roles)

    def _dep(access: AccessContext = Depends(get_access)) -> AccessContext:
        if access.role not in allowed:
            raise HTTPException(status_code=403, detail="forbidden")
        return access

    return _dep

require_superadmin = require_roles(Role.superadmin)
require_staff = require_roles(Role.superadmin, Role.admin)
require_trainer = require_roles(Role.superadmin, Role.admin, Role.coach)

def ensure_club_role(conn: Any, access: AccessContext, club_id: int, allowed: Iterable[Role]) -> Role:
    """Per-club authorization re-check (403 on failure)."""
    try:
        return require_club_role(conn, access, club_id, allowed)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e) or "forbidden")
