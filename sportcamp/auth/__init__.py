"""Authentication helpers.

Auth is deliberately small:

- Users table (email / password hash / superadmin flag)
- Opaque server-side sessions (`user_sessions`), referenced by an httpOnly cookie

Request-level dependencies (current user, access context, role gates) live in
`sportcamp.api.deps`.
"""

from .crud import bootstrap_superadmin, create_user, verify_user_credentials
from .sessions import create_session, delete_session, get_session_user

__all__ = [
    "bootstrap_superadmin",
    "create_user",
    "verify_user_credentials",
    "create_session",
    "delete_session",
    "get_session_user",
]
