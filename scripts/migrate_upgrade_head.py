"""Apply vault schema migrations (forward only).

Usage:
  python scripts/migrate_upgrade_head.py            # upgrade to head
  python scripts/migrate_upgrade_head.py --sql      # print the SQL instead (offline)
  python scripts/migrate_upgrade_head.py --revision 0001_initial_vault

DATABASE_URL comes from the environment or `.env` (see app.core.env).
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from alembic import command
from alembic.config import Config


BACKEND_DIR = Path(__file__).resolve().parents[1] / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from app.core.db import get_database_url  # noqa: E402


def alembic_config(url: str) -> Config:
    cfg = Config(str(BACKEND_DIR / "alembic.ini"))
    cfg.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--revision", default="head")
    ap.add_argument("--sql", action="store_true", help="emit SQL without touching the database")
    args = ap.parse_args()

    try:
        url = get_database_url()
    except RuntimeError as e:
        print(f"FAIL: {e}")
        return 2

    command.upgrade(alembic_config(url), args.revision, sql=args.sql)
    if not args.sql:
        print(f"PASS: schema at {args.revision}.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
