"""Create or promote the platform superadmin.

Usage:
  SUPERADMIN_EMAIL=root@example.com SUPERADMIN_PASSWORD='...' python scripts/seed_superadmin.py
  python scripts/seed_superadmin.py --email root@example.com --password '...'

The API never grants the superadmin flag; this script is the only way to set it.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sportcamp.auth.crud import bootstrap_superadmin
from sportcamp.config import load_config
from sportcamp.db import init_db


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", default=None)
    ap.add_argument("--password", default=None)
    ap.add_argument("--full-name", default=None)
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    u = bootstrap_superadmin(cfg, email=args.email, password=args.password, full_name=args.full_name)
    if u is None:
        print("Missing superadmin email/password (set SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD or pass --email/--password).")
        sys.exit(1)

    print(f"Superadmin ready: user_id={u['user_id']} email={u['email']}")


if __name__ == "__main__":
    main()
