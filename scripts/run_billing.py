"""Run one billing cycle now: this month's fee (at most once) plus outstanding registration fees.

Scheduling is left to the host (cron, systemd timer, ...); see BILLING_CRON / BILLING_TZ.
"""

import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from sportcamp.billing import run_billing_cycle
from sportcamp.config import load_config
from sportcamp.db import Database


def main() -> None:
    cfg = load_config()
    db = Database.from_config(cfg).open()
    try:
        result = run_billing_cycle(db)
    finally:
        db.close()
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
