from __future__ import annotations

import math
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from sportcamp.access import AccessContext, Role, club_id_for, scope_join
from sportcamp.billing import charge_monthly_unconditional
from sportcamp.db import Database
from sportcamp.wallets import TRANSACTION_REASONS, apply_transaction, get_wallet

from ..deps import ensure_club_role, get_db, require_staff
from ..errors import http_error


router = APIRouter(prefix="/wallets", tags=["wallets"])


class TransactionCreate(BaseModel):
    walletId: Optional[int] = None
    amount: Optional[float] = None
    reason: Optional[str] = None
    note: Optional[str] = None


def _admin_scope(access: AccessContext, club_col: str) -> tuple[str, list[Any]]:
    return scope_join(access, club_col, roles=[Role.admin], alias="cm_admin")


@router.get("")
def list_wallets(
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    join, params = _admin_scope(access, "w.club_id")
    with db.connection() as conn:
        rows = conn.execute(
            f"""
            SELECT w.wallet_id, w.balance, w.club_id, c.name AS club_name,
                   w.student_id, u.full_name AS student_name
            FROM wallets w
            JOIN clubs c ON c.club_id = w.club_id
            JOIN users u ON u.user_id = w.student_id
            {join}
            ORDER BY w.created_at DESC, w.wallet_id DESC
            """,
            tuple(params),
        ).fetchall()
    return {
        "wallets": [
            {
                "id": r["wallet_id"],
                "balance": float(r["balance"]),
                "clubId": r["club_id"],
                "clubName": r["club_name"],
                "studentId": r["student_id"],
                "studentName": r["student_name"],
            }
            for r in rows
        ]
    }


@router.get("/transactions")
def latest_transactions(
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    join, params = _admin_scope(access, "w.club_id")
    with db.connection() as conn:
        rows = conn.execute(
            f"""
            SELECT t.transaction_id, t.amount, t.reason, t.note, t.created_at, t.wallet_id,
                   c.name AS club_name, u.full_name AS student_name
            FROM wallet_transactions t
            JOIN wallets w ON w.wallet_id = t.wallet_id
            JOIN clubs c ON c.club_id = w.club_id
            JOIN users u ON u.user_id = w.student_id
            {join}
            ORDER BY t.created_at DESC, t.transaction_id DESC
            LIMIT 10
            """,
            tuple(params),
        ).fetchall()
    return {
        "transactions": [
            {
                "id": r["transaction_id"],
                "amount": float(r["amount"]),
                "reason": r["reason"],
                "note": r["note"],
                "createdAt": r["created_at"],
                "walletId": r["wallet_id"],
                "clubName": r["club_name"],
                "studentName": r["student_name"],
            }
            for r in rows
        ]
    }


@router.post("/transactions")
def create_transaction(
    payload: TransactionCreate,
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not payload.walletId or payload.amount is None or not payload.reason:
        raise HTTPException(status_code=400, detail="wallet_amount_reason_required")
    if not math.isfinite(payload.amount):
        raise HTTPException(status_code=400, detail="invalid_amount")
    if payload.reason not in TRANSACTION_REASONS:
        raise HTTPException(status_code=400, detail="invalid_reason")

    with db.connection() as conn:
        club_id = club_id_for(conn, "wallets", payload.walletId)
        if club_id is None:
            raise HTTPException(status_code=404, detail="wallet_not_found")
        ensure_club_role(conn, access, club_id, [Role.admin])
        try:
            transaction_id = apply_transaction(
                conn,
                wallet_id=payload.walletId,
                amount=payload.amount,
                reason=payload.reason,
                note=(payload.note or "").strip() or None,
                created_by=access.user_id,
            )
        except ValueError as e:
            raise http_error(e)
        wallet = get_wallet(conn, payload.walletId)
    return {"transactionId": transaction_id, "balance": float(wallet["balance"])}


@router.post("/charge-monthly")
def charge_monthly(
    access: AccessContext = Depends(require_staff),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    """Debit the monthly fee from every wallet in scope, regardless of balance."""
    join, params = _admin_scope(access, "w.club_id")
    with db.connection() as conn:
        rows = conn.execute(f"SELECT w.wallet_id FROM wallets w {join}", tuple(params)).fetchall()
        if not rows:
            raise HTTPException(status_code=400, detail="no_wallets")
        try:
            billed = charge_monthly_unconditional(
                conn,
                wallet_ids=[int(r["wallet_id"]) for r in rows],
                created_by=access.user_id,
            )
        except ValueError as e:
            raise http_error(e)
    return {"ok": True, "billed": billed}
