"""Fee settings and wallet billing.

Monthly billing is idempotent per calendar month: the `billing_runs.run_month`
unique constraint is claimed first, inside the same transaction as the debits, so a
second run in the same month inserts nothing and reports `ran: False`.

Registration fees are idempotent per wallet: a wallet is charged only if it has no
`registration` transaction yet. That check is not protected by a lock, so two
concurrent runs can both pass it for the same wallet (see DESIGN.md).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sportcamp.util.case import camelize
from sportcamp.util.time import month_start, to_iso, utcnow, utcnow_iso
from sportcamp.wallets import apply_transaction


def _debug(msg: str) -> None:
    print(f"[billing] {msg}")


# -----------------------------
# Settings
# -----------------------------


def get_fees(conn: Any) -> Dict[str, float]:
    row = conn.execute(
        "SELECT registration_fee, monthly_fee FROM app_settings WHERE singleton=1"
    ).fetchone()
    if row is None:
        return {"registration_fee": 0.0, "monthly_fee": 0.0}
    return {
        "registration_fee": float(row["registration_fee"] or 0),
        "monthly_fee": float(row["monthly_fee"] or 0),
    }


def update_fees(conn: Any, *, registration_fee: float, monthly_fee: float) -> Dict[str, float]:
    if registration_fee < 0 or monthly_fee < 0:
        raise ValueError("invalid_fees")
    now = utcnow_iso()
    conn.execute(
        """
        INSERT INTO app_settings (singleton, registration_fee, monthly_fee, updated_at)
        VALUES (1, ?, ?, ?)
        ON CONFLICT(singleton) DO UPDATE SET
            registration_fee=excluded.registration_fee,
            monthly_fee=excluded.monthly_fee,
            updated_at=excluded.updated_at
        """,
        (float(registration_fee), float(monthly_fee), now),
    )
    return get_fees(conn)


# -----------------------------
# Monthly fee
# -----------------------------


def run_monthly_billing(conn: Any, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Charge the monthly fee once per calendar month.

    Must run inside a single transaction (one `Database.connection()` block): the
    run_month claim and the debits commit or roll back together.
    """
    when = now or utcnow()
    monthly_fee = get_fees(conn)["monthly_fee"]
    if monthly_fee <= 0:
        return {"ran": False, "reason": "monthly_fee_not_configured"}

    run_month = month_start(when)
    claimed = conn.execute(
        """
        INSERT INTO billing_runs (run_month, executed_at, monthly_fee)
        VALUES (?, ?, ?)
        ON CONFLICT(run_month) DO NOTHING
        RETURNING run_id
        """,
        (run_month, to_iso(when), monthly_fee),
    ).fetchone()
    if claimed is None:
        return {"ran": False, "reason": "already_charged", "runMonth": run_month[:7]}

    total = int(conn.execute("SELECT COUNT(*) AS n FROM wallets").fetchone()["n"])
    eligible = int(
        conn.execute(
            "SELECT COUNT(*) AS n FROM wallets WHERE balance >= ?",
            (monthly_fee,),
        ).fetchone()["n"]
    )

    note = f"Monthly fee {run_month[:7]}"
    cur = conn.execute(
        """
        INSERT INTO wallet_transactions (wallet_id, amount, reason, note, created_by, created_at)
        SELECT w.wallet_id, ?, 'monthly', ?, NULL, ?
        FROM wallets w
        WHERE w.balance >= ?
        """,
        (-monthly_fee, note, to_iso(when), monthly_fee),
    )
    charged = cur.rowcount
    # Same predicate, same transaction: exactly the wallets debited above.
    conn.execute(
        "UPDATE wallets SET balance = balance - ? WHERE balance >= ?",
        (monthly_fee, monthly_fee),
    )

    skipped = max(0, total - eligible)
    conn.execute(
        "UPDATE billing_runs SET charged_count=?, skipped_count=? WHERE run_month=?",
        (charged, skipped, run_month),
    )

    _debug(f"Monthly run {run_month[:7]}: charged={charged} skipped={skipped} fee={monthly_fee}")
    return {
        "ran": True,
        "charged": charged,
        "skipped": skipped,
        "monthlyFee": monthly_fee,
        "runMonth": run_month[:7],
    }


# -----------------------------
# Registration fee
# -----------------------------


def run_registration_fees(conn: Any) -> Dict[str, Any]:
    """Charge the registration fee to every wallet that has never paid it and can afford it."""
    registration_fee = get_fees(conn)["registration_fee"]
    if registration_fee <= 0:
        return {"ran": False, "reason": "registration_fee_not_configured"}

    unpaid = """
        NOT EXISTS (
            SELECT 1 FROM wallet_transactions t
            WHERE t.wallet_id = w.wallet_id AND t.reason = 'registration'
        )
    """
    total = int(conn.execute(f"SELECT COUNT(*) AS n FROM wallets w WHERE {unpaid}").fetchone()["n"])
    rows = conn.execute(
        f"SELECT w.wallet_id FROM wallets w WHERE w.balance >= ? AND {unpaid} ORDER BY w.wallet_id",
        (registration_fee,),
    ).fetchall()

    charged = 0
    now = utcnow_iso()
    for r in rows:
        wallet_id = int(r["wallet_id"])
        cur = conn.execute(
            """
            INSERT INTO wallet_transactions (wallet_id, amount, reason, note, created_by, created_at)
            SELECT ?, ?, 'registration', 'Registration fee', NULL, ?
            WHERE NOT EXISTS (
                SELECT 1 FROM wallet_transactions
                WHERE wallet_id = ? AND reason = 'registration'
            )
            """,
            (wallet_id, -registration_fee, now, wallet_id),
        )
        if cur.rowcount:
            conn.execute(
                "UPDATE wallets SET balance = balance - ? WHERE wallet_id=?",
                (registration_fee, wallet_id),
            )
            charged += 1

    skipped = max(0, total - len(rows))
    _debug(f"Registration fees: charged={charged} skipped={skipped} fee={registration_fee}")
    return {
        "ran": True,
        "charged": charged,
        "skipped": skipped,
        "registrationFee": registration_fee,
    }


def run_billing_cycle(db: Any, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Monthly fee (own transaction) followed by registration fees (separate transaction)."""
    with db.connection() as conn:
        monthly = run_monthly_billing(conn, now=now)
    with db.connection() as conn:
        registration = run_registration_fees(conn)
    return {"monthly": monthly, "registration": registration}


def latest_billing_run(conn: Any, *, now: Optional[datetime] = None) -> Dict[str, Any]:
    row = conn.execute(
        """
        SELECT run_month, executed_at, monthly_fee, charged_count, skipped_count
        FROM billing_runs
        ORDER BY executed_at DESC
        LIMIT 1
        """
    ).fetchone()
    current = conn.execute(
        "SELECT 1 FROM billing_runs WHERE run_month=?",
        (month_start(now),),
    ).fetchone()

    last_run = None
    if row is not None:
        last_run = camelize(row)
        last_run["monthlyFee"] = float(last_run["monthlyFee"])
    return {"lastRun": last_run, "currentMonthBilled": current is not None}


def charge_monthly_unconditional(
    conn: Any,
    *,
    wallet_ids: Iterable[int],
    created_by: Optional[int] = None,
) -> int:
    """Manual charge: debit the monthly fee from every listed wallet, balance permitting or not.

    Not tied to billing_runs; this is the admin "charge now" button.
    """
    monthly_fee = get_fees(conn)["monthly_fee"]
    if monthly_fee <= 0:
        raise ValueError("monthly_fee_not_configured")

    n = 0
    for wallet_id in wallet_ids:
        apply_transaction(
            conn,
            wallet_id=int(wallet_id),
            amount=-monthly_fee,
            reason="monthly",
            note="Monthly fee",
            created_by=created_by,
        )
        n += 1
    return n
