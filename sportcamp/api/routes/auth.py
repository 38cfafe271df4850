from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel

from sportcamp.auth.crud import (
    create_user,
    normalize_email,
    touch_last_login,
    user_payload,
    verify_user_credentials,
)
from sportcamp.auth.sessions import create_session, delete_session
from sportcamp.config import Config
from sportcamp.db import Database

from ..deps import get_cfg, get_db, get_optional_user, get_session_id
from ..errors import http_error


def _debug(msg: str) -> None:
    print(f"[auth] {msg}")


router = APIRouter(prefix="/auth", tags=["auth"])


def set_session_cookie(response: Response, *, session_id: str, cfg: Config) -> None:
    """httpOnly session cookie; lifetime matches the session row."""
    response.set_cookie(
        key=cfg.SESSION_COOKIE_NAME,
        value=str(session_id),
        httponly=True,
        samesite=cfg.SESSION_COOKIE_SAMESITE,
        secure=bool(cfg.SESSION_COOKIE_SECURE),
        max_age=int(cfg.SESSION_TTL_DAYS) * 24 * 60 * 60,
        path=cfg.SESSION_COOKIE_PATH,
    )


def clear_session_cookie(response: Response, cfg: Config) -> None:
    response.delete_cookie(key=cfg.SESSION_COOKIE_NAME, path=cfg.SESSION_COOKIE_PATH)


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    fullName: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


@router.post("/signup")
def signup(
    payload: SignupRequest,
    response: Response,
    cfg: Config = Depends(get_cfg),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    email = normalize_email(payload.email or "")
    password = payload.password or ""
    if not email:
        raise HTTPException(status_code=400, detail="email_required")
    if not password:
        raise HTTPException(status_code=400, detail="password_required")

    with db.connection() as conn:
        try:
            user = create_user(conn, email=email, password=password, full_name=payload.fullName)
        except ValueError as e:
            raise http_error(e)
        session_id, _ = create_session(conn, int(user["user_id"]), ttl_days=cfg.SESSION_TTL_DAYS)

    _debug(f"Signup user_id={user['user_id']}")
    set_session_cookie(response, session_id=session_id, cfg=cfg)
    return {"user": user_payload(user)}


@router.post("/login")
def login(
    payload: LoginRequest,
    response: Response,
    cfg: Config = Depends(get_cfg),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.email or not payload.password:
        raise HTTPException(status_code=400, detail="email_and_password_required")

    with db.connection() as conn:
        row = verify_user_credentials(conn, payload.email, payload.password)
        if row is None:
            _debug("Login failed")
            raise HTTPException(status_code=401, detail="invalid_credentials")
        user_id = int(row["user_id"])
        touch_last_login(conn, user_id)
        session_id, _ = create_session(conn, user_id, ttl_days=cfg.SESSION_TTL_DAYS)

    _debug(f"Login user_id={user_id}")
    set_session_cookie(response, session_id=session_id, cfg=cfg)
    return {"user": user_payload(row)}


@router.post("/logout")
def logout(
    response: Response,
    session_id: Optional[str] = Depends(get_session_id),
    cfg: Config = Depends(get_cfg),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if session_id:
        with db.connection() as conn:
            delete_session(conn, session_id)
    clear_session_cookie(response, cfg)
    return {"ok": True}


@router.get("/me")
def me(user: Optional[Dict[str, Any]] = Depends(get_optional_user)) -> Dict[str, Any]:
    return {"user": user_payload(user) if user is not None else None}
