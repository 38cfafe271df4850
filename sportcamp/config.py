import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load a local .env file if present (no-op otherwise).
load_dotenv()


def _env_bool(name: str, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a boolean environment variable.

    Returns:
      - True/False if the env var is set to a recognizable value
      - default if unset or unrecognized

    Accepted truthy: 1, true, yes, y, on
    Accepted falsy:  0, false, no, n, off
    """

    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip().lower()
    if v in ("1", "true", "yes", "y", "on"):
        return True
    if v in ("0", "false", "no", "n", "off"):
        return False
    return default


@dataclass(frozen=True)
class Config:
    """Runtime configuration.

    Credentials (database URL, superadmin bootstrap password) come from the
    environment or a .env file. Do not hardcode them in source code.
    """

    # -----------------
    # Database
    # -----------------
    # Preferred: set SPORTCAMP_DATABASE_URL (or DATABASE_URL) to use Postgres.
    # Fallback: SPORTCAMP_DB_PATH for SQLite.
    DB_DSN: str = (
        os.environ.get("SPORTCAMP_DATABASE_URL")
        or os.environ.get("DATABASE_URL")
        or os.environ.get("SPORTCAMP_DB_PATH", "./sportcamp.sqlite")
    )

    # Postgres connection pool (ignored for SQLite).
    DB_POOL_MIN: int = int(os.environ.get("DB_POOL_MIN", "1"))
    DB_POOL_MAX: int = int(os.environ.get("DB_POOL_MAX", "20"))
    DB_CONNECT_TIMEOUT_SECONDS: int = int(os.environ.get("DB_CONNECT_TIMEOUT_SECONDS", "2"))

    # -----------------
    # Sessions (cookie)
    # -----------------
    SESSION_COOKIE_NAME: str = os.environ.get("SESSION_COOKIE_NAME", "sportcamp_session")
    SESSION_TTL_DAYS: int = int(os.environ.get("SESSION_TTL_DAYS", "14"))
    SESSION_COOKIE_PATH: str = os.environ.get("SESSION_COOKIE_PATH", "/")
    SESSION_COOKIE_SAMESITE: str = os.environ.get("SESSION_COOKIE_SAMESITE", "lax")

    # Public site, used to build QR check-in URLs (/scan?token=...).
    PUBLIC_APP_URL: str = os.environ.get("PUBLIC_APP_URL", "http://localhost:3000")

    # If SESSION_COOKIE_SECURE is unset, default to secure cookies when PUBLIC_APP_URL is https.
    SESSION_COOKIE_SECURE: bool = (
        _env_bool("SESSION_COOKIE_SECURE", None)
        if _env_bool("SESSION_COOKIE_SECURE", None) is not None
        else PUBLIC_APP_URL.lower().startswith("https://")
    )

    # -----------------
    # CORS (development)
    # -----------------
    CORS_ALLOW_ORIGINS: str = os.environ.get(
        "CORS_ALLOW_ORIGINS",
        "http://localhost:3000,http://127.0.0.1:3000",
    )

    # -----------------
    # Superadmin bootstrap (operator tooling)
    # -----------------
    SUPERADMIN_EMAIL: str | None = os.environ.get("SUPERADMIN_EMAIL")
    SUPERADMIN_PASSWORD: str | None = os.environ.get("SUPERADMIN_PASSWORD")
    SUPERADMIN_NAME: str = os.environ.get("SUPERADMIN_NAME", "Super Admin")

    # -----------------
    # Batch schedules
    # -----------------
    # Read here so every process sees the same values; the schedulers themselves run elsewhere.
    BILLING_CRON: str = os.environ.get("BILLING_CRON", "0 2 * * *")
    BILLING_TZ: str = os.environ.get("BILLING_TZ", "UTC")
    NOTIFY_CRON: str = os.environ.get("NOTIFY_CRON", "0 * * * *")
    NOTIFY_TZ: str = os.environ.get("NOTIFY_TZ", os.environ.get("BILLING_TZ", "UTC"))


def load_config() -> Config:
    return Config()
