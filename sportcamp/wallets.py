"""Wallet ledger.

A wallet holds one student's credit inside one club. Its balance only changes
through `wallet_transactions` rows; every helper here inserts the ledger row and
moves the balance in the same transaction so balance == SUM(amount).
"""

from __future__ import annotations

from typing import Any, Optional

from sportcamp.util.time import utcnow_iso


TRANSACTION_REASONS = ("topup", "adjustment", "registration", "monthly")


def ensure_wallet(conn: Any, *, student_id: int, club_id: int) -> int:
    """Return the wallet id for (student, club), creating an empty wallet if needed."""
    conn.execute(
        """
        INSERT INTO wallets (student_id, club_id, balance, created_at)
        VALUES (?, ?, 0, ?)
        ON CONFLICT(student_id, club_id) DO NOTHING
        """,
        (int(student_id), int(club_id), utcnow_iso()),
    )
    row = conn.execute(
        "SELECT wallet_id FROM wallets WHERE student_id=? AND club_id=?",
        (int(student_id), int(club_id)),
    ).fetchone()
    return int(row["wallet_id"])


def apply_transaction(
    conn: Any,
    *,
    wallet_id: int,
    amount: float,
    reason: str,
    note: Optional[str] = None,
    created_by: Optional[int] = None,
) -> int:
    """Append a signed ledger entry and apply it to the wallet balance."""
    if reason not in TRANSACTION_REASONS:
        raise ValueError("invalid_reason")

    row = conn.execute(
        """
        INSERT INTO wallet_transactions (wallet_id, amount, reason, note, created_by, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        RETURNING transaction_id
        """,
        (int(wallet_id), float(amount), reason, note, created_by, utcnow_iso()),
    ).fetchone()
    conn.execute(
        "UPDATE wallets SET balance = balance + ? WHERE wallet_id=?",
        (float(amount), int(wallet_id)),
    )
    return int(row["transaction_id"])


def get_wallet(conn: Any, wallet_id: int) -> Optional[Any]:
    return conn.execute(
        "SELECT wallet_id, student_id, club_id, balance FROM wallets WHERE wallet_id=?",
        (int(wallet_id),),
    ).fetchone()


def ledger_sum(conn: Any, wallet_id: int) -> float:
    row = conn.execute(
        "SELECT COALESCE(SUM(amount), 0) AS total FROM wallet_transactions WHERE wallet_id=?",
        (int(wallet_id),),
    ).fetchone()
    return float(row["total"] or 0)
