"""USD deposit cap enforcement.

The check and the commit of a reservation happen inside the same serialized operation
and database transaction, so no other deposit can interleave between them.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.base import UINT256_MAX
from ledger.core.errors import AccountingUnderflow, CapExceeded, InvalidInput
from ledger.core.state import load_vault_state


@dataclass(frozen=True, slots=True)
class CapReservation:
    """Headroom approved for one deposit; commit it with the balance credit."""

    usd_delta: int
    total_before: int
    bank_cap: int

    @property
    def total_after(self) -> int:
        return self.total_before + self.usd_delta


class CapEnforcer:
    def __init__(self, db: Session) -> None:
        self._db = db

    def bank_cap(self) -> int:
        return load_vault_state(self._db).bank_cap_usd

    def total_deposited(self) -> int:
        return load_vault_state(self._db).total_deposited_usd

    def check_and_reserve(self, usd_delta: int) -> CapReservation:
        """Succeeds iff total + usd_delta <= cap. Nothing is written yet."""
        state = load_vault_state(self._db, for_update=True)
        total = state.total_deposited_usd
        if total + usd_delta > state.bank_cap_usd:
            raise CapExceeded(
                f"Deposit worth {usd_delta} USD(1e8) exceeds the bank cap: "
                f"total {total} + {usd_delta} > cap {state.bank_cap_usd}."
            )
        return CapReservation(usd_delta=usd_delta, total_before=total, bank_cap=state.bank_cap_usd)

    def commit(self, reservation: CapReservation) -> int:
        state = load_vault_state(self._db, for_update=True)
        if state.total_deposited_usd != reservation.total_before:
            # Serialized execution makes this unreachable; refuse rather than over-commit.
            raise CapExceeded("USD total changed between reservation and commit.")
        state.total_deposited_usd = reservation.total_after
        self._db.flush()
        return state.total_deposited_usd

    def release(self, usd_delta: int) -> int:
        """Subtract a withdrawal's USD value (priced at withdrawal time)."""
        state = load_vault_state(self._db, for_update=True)
        if usd_delta > state.total_deposited_usd:
            raise AccountingUnderflow(
                f"Withdrawal worth {usd_delta} USD(1e8) exceeds the recorded USD total "
                f"{state.total_deposited_usd}."
            )
        state.total_deposited_usd -= usd_delta
        self._db.flush()
        return state.total_deposited_usd

    def increase_bank_cap(self, new_cap: int) -> int:
        """Raise the cap. Returns the previous cap; the cap never decreases."""
        state = load_vault_state(self._db, for_update=True)
        old_cap = state.bank_cap_usd
        if new_cap <= old_cap:
            raise InvalidInput(f"New bank cap {new_cap} must exceed the current cap {old_cap}.")
        if new_cap > UINT256_MAX:
            raise InvalidInput("New bank cap exceeds the uint256 range.")
        state.bank_cap_usd = new_cap
        self._db.flush()
        return old_cap
