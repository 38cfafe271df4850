from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence
from urllib.parse import urlparse

from sportcamp.schema import get_schema_sql
from sportcamp.util.time import utcnow_iso


def _debug(msg: str) -> None:
    print(f"[db] {msg}")


class IntegrityError(Exception):
    """Unique / foreign-key violation raised through the Postgres adapter.

    SQLite raises `sqlite3.IntegrityError` directly; the API maps both to 409.
    """


def _detect_dialect(dsn: str) -> str:
    """Return 'postgres' or 'sqlite'."""
    s = (dsn or "").strip()
    if not s:
        return "sqlite"
    try:
        scheme = urlparse(s).scheme.lower()
    except ValueError:
        scheme = ""
    if scheme in ("postgres", "postgresql"):
        return "postgres"
    return "sqlite"


def _qmark_to_pct(sql: str) -> str:
    """Convert SQLite qmark placeholders (?) to psycopg2 placeholders (%s).

    Skips '?' inside single/double-quoted literals. Literal '%' is escaped as '%%'
    because psycopg2 treats it as a format character when parameters are passed.
    """
    out: List[str] = []
    in_single = False
    in_double = False
    i = 0
    while i < len(sql):
        ch = sql[i]

        if ch == "'" and not in_double:
            out.append(ch)
            if in_single:
                # Escaped single quote: ''
                if i + 1 < len(sql) and sql[i + 1] == "'":
                    out.append("'")
                    i += 2
                    continue
                in_single = False
            else:
                in_single = True
            i += 1
            continue

        if ch == '"' and not in_single:
            out.append(ch)
            in_double = not in_double
            i += 1
            continue

        if ch == "%":
            out.append("%%")
            i += 1
            continue

        if ch == "?" and not in_single and not in_double:
            out.append("%s")
            i += 1
            continue

        out.append(ch)
        i += 1

    return "".join(out)


class PGCursor:
    def __init__(self, cur: Any):
        self._cur = cur

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> "PGCursor":
        import psycopg2

        try:
            self._cur.execute(_qmark_to_pct(sql), tuple(params or ()))
        except psycopg2.IntegrityError as e:
            raise IntegrityError(str(e)) from e
        return self

    def fetchone(self) -> Any:
        return self._cur.fetchone()

    def fetchall(self) -> Any:
        return self._cur.fetchall()

    @property
    def rowcount(self) -> int:
        return int(self._cur.rowcount or 0)

    def close(self) -> None:
        self._cur.close()


class PGConnection:
    """A tiny adapter that makes psycopg2 connections look like sqlite3 connections."""

    dialect = "postgres"

    def __init__(self, conn: Any):
        self._conn = conn

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> PGCursor:
        wrapper = PGCursor(self._conn.cursor())
        wrapper.execute(sql, params)
        return wrapper

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()


def _sqlite_path(dsn: str) -> str:
    # Support sqlite:///path style
    if dsn.lower().startswith("sqlite:///"):
        return dsn[len("sqlite:///") :]
    return dsn


def _open_sqlite(dsn: str) -> sqlite3.Connection:
    path = _sqlite_path(dsn)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, timeout=30, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Concurrency pragmas (safe defaults for one API process + scripts)
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA busy_timeout=5000;")  # 5s
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def connect(db_dsn: str) -> Iterator[Any]:
    """One-off connection (scripts). Commits on success, rolls back on error.

    The API goes through `Database.connection()` instead so Postgres connections are pooled.
    """
    dsn = (db_dsn or "").strip()
    if _detect_dialect(dsn) == "postgres":
        import psycopg2
        import psycopg2.extras

        # RealDictCursor makes fetchone()/fetchall() rows act like dicts.
        raw = psycopg2.connect(dsn, cursor_factory=psycopg2.extras.RealDictCursor)
        conn = PGConnection(raw)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            raw.close()
        return

    conn = _open_sqlite(dsn)
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


class Database:
    """Process-wide database handle.

    Created once at startup, injected into request handlers (see `sportcamp.api.deps`)
    and closed at shutdown. For Postgres it owns a thread-safe connection pool; for
    SQLite each `connection()` opens a short-lived connection.
    """

    def __init__(
        self,
        dsn: str,
        *,
        pool_min: int = 1,
        pool_max: int = 20,
        connect_timeout: int = 2,
    ):
        self.dsn = (dsn or "").strip()
        self.dialect = _detect_dialect(self.dsn)
        self.pool_min = max(1, int(pool_min))
        self.pool_max = max(self.pool_min, int(pool_max))
        self.connect_timeout = int(connect_timeout)
        self._pool: Optional[Any] = None

    @classmethod
    def from_config(cls, cfg: Any) -> "Database":
        return cls(
            cfg.DB_DSN,
            pool_min=cfg.DB_POOL_MIN,
            pool_max=cfg.DB_POOL_MAX,
            connect_timeout=cfg.DB_CONNECT_TIMEOUT_SECONDS,
        )

    def open(self) -> "Database":
        if self.dialect == "postgres" and self._pool is None:
            import psycopg2.extras
            import psycopg2.pool

            self._pool = psycopg2.pool.ThreadedConnectionPool(
                self.pool_min,
                self.pool_max,
                self.dsn,
                cursor_factory=psycopg2.extras.RealDictCursor,
                connect_timeout=self.connect_timeout,
            )
            _debug(f"Opened Postgres pool (min={self.pool_min} max={self.pool_max})")
        return self

    def close(self) -> None:
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
            _debug("Closed Postgres pool")

    @contextmanager
    def connection(self) -> Iterator[Any]:
        """Yield a connection inside one transaction: commit on success, roll back on error."""
        if self.dialect != "postgres":
            with connect(self.dsn) as conn:
                yield conn
            return

        if self._pool is None:
            self.open()
        raw = self._pool.getconn()
        conn = PGConnection(raw)
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(raw)

    def init_schema(self) -> None:
        init_db(self.dsn)


def init_db(db_dsn: str) -> None:
    """Create all tables and the singleton settings row."""
    dialect = _detect_dialect(db_dsn)
    _debug(f"Initializing DB ({dialect})")
    with connect(db_dsn) as conn:
        schema_sql = get_schema_sql(dialect)
        # Ensure only one process runs schema DDL at a time.
        # - Postgres: use an advisory lock.
        # - SQLite: DDL already takes an exclusive database lock.
        if dialect == "postgres":
            conn.execute("SELECT pg_advisory_lock(2147483646);")
            try:
                _exec_schema(conn, schema_sql, dialect=dialect)
            finally:
                conn.execute("SELECT pg_advisory_unlock(2147483646);")
        else:
            _exec_schema(conn, schema_sql, dialect=dialect)

        conn.execute(
            """
            INSERT INTO app_settings (singleton, registration_fee, monthly_fee, updated_at)
            VALUES (1, 0, 0, ?)
            ON CONFLICT(singleton) DO NOTHING
            """,
            (utcnow_iso(),),
        )


def _exec_schema(conn: Any, ddl: str, *, dialect: str) -> None:
    if dialect == "postgres":
        # Execute multi-statement DDL (naive split is OK for our schema)
        statements = [s.strip() for s in ddl.split(";") if s.strip()]
        for stmt in statements:
            conn.execute(stmt)
        return

    # SQLite can run it in one go
    conn.executescript(ddl)
