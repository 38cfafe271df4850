"""Create a user, optionally with a club membership.

Usage:
  python scripts/create_user.py --email alice@example.com --password '...' --full-name 'Alice'
  python scripts/create_user.py --email bob@example.com --password '...' --club-id 1 --role coach

NOTE: This is intended for local/dev.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sportcamp.access import Role
from sportcamp.config import load_config
from sportcamp.db import init_db, connect
from sportcamp.auth.crud import create_user
from sportcamp.memberships import add_membership


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--full-name", default=None)
    ap.add_argument("--club-id", type=int, default=None)
    ap.add_argument("--role", choices=["admin", "coach", "student"], default="student")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    with connect(cfg.DB_DSN) as conn:
        u = create_user(conn, email=args.email, password=args.password, full_name=args.full_name)
        if args.club_id is not None:
            add_membership(conn, club_id=args.club_id, user_id=int(u["user_id"]), role=Role(args.role))

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
