from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from sportcamp.access import AccessContext
from sportcamp.db import Database
from sportcamp.reports import clamp
from sportcamp.util.time import utcnow_iso

from ..deps import get_access, get_db


router = APIRouter(prefix="/notifications", tags=["notifications"])


class MarkRead(BaseModel):
    ids: Optional[List[int]] = None
    all: bool = False


@router.get("")
def list_notifications(
    limit: Optional[str] = Query(None),
    unread: Optional[str] = Query(None),
    type_: Optional[str] = Query(None, alias="type"),
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    n = clamp(limit, 5, 50, 10)
    where = ["user_id = ?"]
    params: List[Any] = [access.user_id]
    if unread == "1":
        where.append("read_at IS NULL")
    if type_:
        where.append("type = ?")
        params.append(type_)

    with db.connection() as conn:
        rows = conn.execute(
            f"""
            SELECT notification_id, type, title, body, created_at, read_at
            FROM notifications
            WHERE {" AND ".join(where)}
            ORDER BY created_at DESC, notification_id DESC
            LIMIT ?
            """,
            (*params, n),
        ).fetchall()
        unread_count = conn.execute(
            "SELECT COUNT(*) AS n FROM notifications WHERE user_id=? AND read_at IS NULL",
            (access.user_id,),
        ).fetchone()["n"]

    return {
        "notifications": [
            {
                "id": r["notification_id"],
                "type": r["type"],
                "title": r["title"],
                "body": r["body"],
                "createdAt": r["created_at"],
                "readAt": r["read_at"],
            }
            for r in rows
        ],
        "unreadCount": int(unread_count or 0),
    }


@router.patch("")
def mark_read(
    payload: MarkRead,
    access: AccessContext = Depends(get_access),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Mark the caller's own notifications read: a list of ids, or everything unread."""
    if not payload.all and not payload.ids:
        raise HTTPException(status_code=400, detail="no_notifications_selected")

    now = utcnow_iso()
    with db.connection() as conn:
        if payload.all:
            cur = conn.execute(
                "UPDATE notifications SET read_at=? WHERE user_id=? AND read_at IS NULL",
                (now, access.user_id),
            )
        else:
            ids = [int(i) for i in payload.ids or []]
            placeholders = ",".join(["?"] * len(ids))
            cur = conn.execute(
                f"UPDATE notifications SET read_at=? WHERE user_id=? AND notification_id IN ({placeholders})",
                (now, access.user_id, *ids),
            )
        updated = cur.rowcount
    return {"updated": int(updated or 0)}
