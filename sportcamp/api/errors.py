"""Translate domain exceptions into HTTP errors.

Domain modules raise ValueError / LookupError / PermissionError carrying a short
detail code; routes re-raise them through `http_error`.
"""

from __future__ import annotations

from fastapi import HTTPException


# ValueError codes that describe a conflict with existing state rather than bad input.
CONFLICT_CODES = frozenset(
    {
        "email_exists",
        "already_member",
        "request_pending",
        "duplicate",
    }
)


def http_error(e: Exception) -> HTTPException:
    detail = str(e) or "invalid_request"
    if isinstance(e, PermissionError):
        return HTTPException(status_code=403, detail=detail)
    if isinstance(e, LookupError):
        return HTTPException(status_code=404, detail=detail)
    if detail in CONFLICT_CODES:
        return HTTPException(status_code=409, detail=detail)
    return HTTPException(status_code=400, detail=detail)
