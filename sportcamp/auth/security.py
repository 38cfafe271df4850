from __future__ import annotations

import secrets
import uuid

from passlib.context import CryptContext


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _pwd.verify(password, password_hash)
    except ValueError:
        # Malformed / unknown hash format.
        return False


def new_session_id() -> str:
    return str(uuid.uuid4())


def new_qr_token() -> str:
    return secrets.token_urlsafe(24)
