"""Database schema for Sportcamp.

SQLite is the default engine (local dev, tests); Postgres is supported for deployments.

Timestamps are ISO-8601 TEXT (UTC, with 'Z') so both engines compare them the same way:
ISO strings sort lexicographically in time order, so `expires_at > now_iso` behaves correctly.

NOTE: The Postgres schema is generated from the SQLite schema with a small set of
transformations (types + autoincrement).
"""

from __future__ import annotations

import re


SCHEMA_SQLITE = r"""
PRAGMA foreign_keys = ON;

-- Users / Auth
-- is_superadmin is only ever set by operator tooling (scripts/seed_superadmin.py).
CREATE TABLE IF NOT EXISTS users (
    user_id INTEGER PRIMARY KEY AUTOINCREMENT,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    full_name TEXT,
    phone TEXT,
    is_superadmin INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    last_login_at TEXT
);

-- Opaque browser sessions. Expired rows are ignored on lookup, not swept.
CREATE TABLE IF NOT EXISTS user_sessions (
    session_id TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    expires_at TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_user_sessions_user ON user_sessions (user_id);

CREATE TABLE IF NOT EXISTS sports (
    sport_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_by INTEGER REFERENCES users(user_id) ON DELETE SET NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS clubs (
    club_id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    sport_id INTEGER NOT NULL REFERENCES sports(sport_id) ON DELETE CASCADE,
    created_by INTEGER REFERENCES users(user_id) ON DELETE SET NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_clubs_sport ON clubs (sport_id);

-- Role is scoped per club. One row per (club, user).
CREATE TABLE IF NOT EXISTS club_memberships (
    membership_id INTEGER PRIMARY KEY AUTOINCREMENT,
    club_id INTEGER NOT NULL REFERENCES clubs(club_id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    role TEXT NOT NULL CHECK (role IN ('admin','coach','student')),
    created_at TEXT NOT NULL,
    UNIQUE (club_id, user_id)
);
CREATE INDEX IF NOT EXISTS idx_memberships_user ON club_memberships (user_id, role);

CREATE TABLE IF NOT EXISTS club_join_requests (
    request_id INTEGER PRIMARY KEY AUTOINCREMENT,
    club_id INTEGER NOT NULL REFERENCES clubs(club_id) ON DELETE CASCADE,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending','approved','rejected')),
    note TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_join_requests_club ON club_join_requests (club_id, status);
CREATE INDEX IF NOT EXISTS idx_join_requests_user ON club_join_requests (user_id, created_at);

-- Training sessions. qr_token is the opaque value embedded in /scan?token=...
CREATE TABLE IF NOT EXISTS training_sessions (
    session_id INTEGER PRIMARY KEY AUTOINCREMENT,
    club_id INTEGER NOT NULL REFERENCES clubs(club_id) ON DELETE CASCADE,
    sport_id INTEGER NOT NULL REFERENCES sports(sport_id) ON DELETE CASCADE,
    coach_id INTEGER REFERENCES users(user_id) ON DELETE SET NULL,
    title TEXT NOT NULL,
    starts_at TEXT NOT NULL,
    location TEXT,
    capacity INTEGER,
    qr_token TEXT NOT NULL UNIQUE,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_training_sessions_club_start ON training_sessions (club_id, starts_at);

CREATE TABLE IF NOT EXISTS attendance (
    attendance_id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id INTEGER NOT NULL REFERENCES training_sessions(session_id) ON DELETE CASCADE,
    student_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    status TEXT NOT NULL DEFAULT 'present',
    scanned_at TEXT NOT NULL,
    UNIQUE (session_id, student_id)
);
CREATE INDEX IF NOT EXISTS idx_attendance_student ON attendance (student_id, scanned_at);

-- One wallet per (student, club). balance is maintained alongside the ledger below.
CREATE TABLE IF NOT EXISTS wallets (
    wallet_id INTEGER PRIMARY KEY AUTOINCREMENT,
    student_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    club_id INTEGER NOT NULL REFERENCES clubs(club_id) ON DELETE CASCADE,
    balance REAL NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL,
    UNIQUE (student_id, club_id)
);

-- Append-only ledger.
CREATE TABLE IF NOT EXISTS wallet_transactions (
    transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
    wallet_id INTEGER NOT NULL REFERENCES wallets(wallet_id) ON DELETE CASCADE,
    amount REAL NOT NULL,
    reason TEXT NOT NULL CHECK (reason IN ('topup','adjustment','registration','monthly')),
    note TEXT,
    created_by INTEGER REFERENCES users(user_id) ON DELETE SET NULL,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_wallet_transactions_wallet ON wallet_transactions (wallet_id, reason);
CREATE INDEX IF NOT EXISTS idx_wallet_transactions_created ON wallet_transactions (created_at);

-- Fee settings (exactly one row).
CREATE TABLE IF NOT EXISTS app_settings (
    singleton INTEGER PRIMARY KEY CHECK (singleton = 1),
    registration_fee REAL NOT NULL DEFAULT 0,
    monthly_fee REAL NOT NULL DEFAULT 0,
    updated_at TEXT NOT NULL
);

-- Monthly billing idempotency: one row per calendar month.
CREATE TABLE IF NOT EXISTS billing_runs (
    run_id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_month TEXT NOT NULL UNIQUE,
    executed_at TEXT NOT NULL,
    monthly_fee REAL NOT NULL,
    charged_count INTEGER NOT NULL DEFAULT 0,
    skipped_count INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS notifications (
    notification_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES users(user_id) ON DELETE CASCADE,
    club_id INTEGER REFERENCES clubs(club_id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    title TEXT NOT NULL,
    body TEXT,
    dedupe_key TEXT UNIQUE,
    created_at TEXT NOT NULL,
    read_at TEXT
);
CREATE INDEX IF NOT EXISTS idx_notifications_user_created ON notifications (user_id, created_at);
"""


def _sqlite_to_postgres(ddl: str) -> str:
    # Remove SQLite pragmas
    lines: list[str] = []
    for line in ddl.splitlines():
        if line.strip().upper().startswith("PRAGMA "):
            continue
        lines.append(line)
    out = "\n".join(lines)

    # Types
    out = re.sub(r"\bREAL\b", "DOUBLE PRECISION", out)

    # AUTOINCREMENT primary keys
    out = re.sub(
        r"INTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT",
        "BIGSERIAL PRIMARY KEY",
        out,
        flags=re.IGNORECASE,
    )
    out = re.sub(r"\bAUTOINCREMENT\b", "", out, flags=re.IGNORECASE)

    # Foreign keys onto BIGSERIAL columns
    out = re.sub(r"INTEGER(\s+(?:NOT NULL\s+)?REFERENCES)", r"BIGINT\1", out)

    return out


SCHEMA_POSTGRES = _sqlite_to_postgres(SCHEMA_SQLITE)


def get_schema_sql(dialect: str) -> str:
    d = (dialect or "").lower()
    if d.startswith("post"):
        return SCHEMA_POSTGRES
    return SCHEMA_SQLITE
