import sys
from pathlib import Path

# Ensure project root is on sys.path when running as a script
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sportcamp.config import load_config
from sportcamp.db import connect, init_db
from sportcamp.billing import get_fees


def main() -> None:
    cfg = load_config()
    init_db(cfg.DB_DSN)
    with connect(cfg.DB_DSN) as conn:
        fees = get_fees(conn)

    print(f"DB initialized: {cfg.DB_DSN}")
    print(f"Fees: registration={fees['registration_fee']} monthly={fees['monthly_fee']}")


if __name__ == "__main__":
    main()
