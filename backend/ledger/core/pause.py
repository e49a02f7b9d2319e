"""Deposit pause switch.

A deposit-only brake: withdrawals, internal transfers and administration keep working
while it is set.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ledger.core.errors import InvalidInput, PausedState
from ledger.core.state import load_vault_state


class PauseSwitch:
    def __init__(self, db: Session) -> None:
        self._db = db

    def is_paused(self) -> bool:
        return load_vault_state(self._db).deposits_paused

    def require_open(self) -> None:
        if self.is_paused():
            raise PausedState("Deposits are paused.")

    def pause(self) -> None:
        state = load_vault_state(self._db, for_update=True)
        if state.deposits_paused:
            raise PausedState("Deposits are already paused.")
        state.deposits_paused = True
        self._db.flush()

    def unpause(self) -> None:
        state = load_vault_state(self._db, for_update=True)
        if not state.deposits_paused:
            raise InvalidInput("Deposits are not paused.")
        state.deposits_paused = False
        self._db.flush()
