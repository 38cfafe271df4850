"""
Pytest configuration and fixtures for sportcamp tests.

Every test gets its own throw-away SQLite file.
"""

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from sportcamp.access import Role
from sportcamp.api.server import create_app
from sportcamp.auth.crud import create_user
from sportcamp.config import Config
from sportcamp.db import Database, init_db
from sportcamp.memberships import add_membership
from sportcamp.util.time import utcnow_iso

PASSWORD = "correct horse battery"


@pytest.fixture
def cfg(tmp_path):
    return Config(
        DB_DSN=str(tmp_path / "sportcamp-test.sqlite"),
        SESSION_COOKIE_SECURE=False,
        PUBLIC_APP_URL="https://club.example.com",
        CORS_ALLOW_ORIGINS="",
        SUPERADMIN_EMAIL=None,
        SUPERADMIN_PASSWORD=None,
    )


@pytest.fixture
def db(cfg):
    init_db(cfg.DB_DSN)
    database = Database.from_config(cfg).open()
    yield database
    database.close()


class Seeder:
    """Inserts fixture rows, each in its own committed transaction."""

    def __init__(self, db: Database):
        self.db = db
        self._n = 0

    def user(self, email: Optional[str] = None, *, full_name: Optional[str] = None, superadmin: bool = False) -> int:
        self._n += 1
        email = email or f"user{self._n}@example.com"
        with self.db.connection() as conn:
            u = create_user(conn, email=email, password=PASSWORD, full_name=full_name, is_superadmin=superadmin)
        return int(u["user_id"])

    def sport(self, name: str = "Football") -> int:
        with self.db.connection() as conn:
            row = conn.execute(
                "INSERT INTO sports (name, created_at) VALUES (?, ?) RETURNING sport_id",
                (name, utcnow_iso()),
            ).fetchone()
        return int(row["sport_id"])

    def club(self, name: str, sport_id: int) -> int:
        with self.db.connection() as conn:
            row = conn.execute(
                "INSERT INTO clubs (name, sport_id, created_at) VALUES (?, ?, ?) RETURNING club_id",
                (name, sport_id, utcnow_iso()),
            ).fetchone()
        return int(row["club_id"])

    def member(self, user_id: int, club_id: int, role: Role) -> int:
        with self.db.connection() as conn:
            return add_membership(conn, club_id=club_id, user_id=user_id, role=role)

    def training(self, club_id: int, *, title: str = "Practice", starts_at: Optional[str] = None, qr_token: Optional[str] = None) -> Dict[str, Any]:
        self._n += 1
        token = qr_token or f"qr-token-{self._n}"
        with self.db.connection() as conn:
            sport_id = conn.execute("SELECT sport_id FROM clubs WHERE club_id=?", (club_id,)).fetchone()["sport_id"]
            row = conn.execute(
                """
                INSERT INTO training_sessions (club_id, sport_id, title, starts_at, qr_token, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING session_id
                """,
                (club_id, sport_id, title, starts_at or utcnow_iso(), token, utcnow_iso()),
            ).fetchone()
        return {"id": int(row["session_id"]), "token": token}

    def wallet_balance(self, wallet_id: int, balance: float) -> None:
        with self.db.connection() as conn:
            conn.execute("UPDATE wallets SET balance=? WHERE wallet_id=?", (balance, wallet_id))

    def set_fees(self, *, registration_fee: float = 0, monthly_fee: float = 0) -> None:
        with self.db.connection() as conn:
            conn.execute(
                "UPDATE app_settings SET registration_fee=?, monthly_fee=? WHERE singleton=1",
                (registration_fee, monthly_fee),
            )


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def client(cfg, db):
    """API client against the same database file the `seed` fixture writes to."""
    app = create_app(cfg)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def login(client, cfg):
    """Log in and return Bearer headers; the client's cookie jar is left empty."""

    def _login(email: str, password: str = PASSWORD) -> Dict[str, str]:
        resp = client.post("/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        session_id = resp.cookies.get(cfg.SESSION_COOKIE_NAME)
        assert session_id
        client.cookies.clear()
        return {"Authorization": f"Bearer {session_id}"}

    return _login
