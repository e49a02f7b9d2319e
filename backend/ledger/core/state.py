from __future__ import annotations

from sqlalchemy.orm import Session

from app.models.vault_state import VAULT_STATE_ID, VaultState
from ledger.core.errors import NotFound


def load_vault_state(db: Session, *, for_update: bool = False) -> VaultState:
    """Fetch the singleton global state row (row-locked when mutating)."""
    state = db.get(VaultState, VAULT_STATE_ID, with_for_update=for_update)
    if state is None:
        raise NotFound("Vault is not initialized.")
    return state
