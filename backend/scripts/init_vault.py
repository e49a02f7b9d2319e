"""Initialize the vault once: create the global state and grant the deployer roles.

Usage:
  python backend/scripts/init_vault.py

Requires VAULT_ADMIN_ID (deployer identity, receives ROOT and ADMINISTRATOR) and
VAULT_BANK_CAP_USD (USD with 8 decimals) alongside the usual DATABASE_URL and price
source settings. Running it twice fails: the vault refuses a second initialization.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

# Add backend to sys.path
BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from app.core.settings import get_settings  # noqa: E402
from app.services.vault_service import get_vault  # noqa: E402
from ledger.core.errors import VaultError  # noqa: E402


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    settings = get_settings()
    if not settings.admin_id or settings.bank_cap_usd is None:
        print("Missing VAULT_ADMIN_ID or VAULT_BANK_CAP_USD.")
        return 2

    vault = get_vault()
    try:
        vault.initialize(settings.admin_id, settings.bank_cap_usd)
    except VaultError as e:
        print(f"FAIL: {type(e).__name__}: {e}")
        return 1

    status = vault.status()
    print(f"PASS: vault initialized by {settings.admin_id}.")
    print(f"bank_cap_usd={status.bank_cap_usd} deposits_paused={status.deposits_paused}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
