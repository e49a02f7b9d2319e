"""Balance ledger.

Owns per-account native balances and the (account, token) → amount map.

Invariants:
- Balances are unsigned. A debit larger than the balance raises InsufficientFunds and
  writes nothing; nothing ever wraps.
- A balance may only change for an identity that has an Account.
- Internal transfers move already-deposited funds between owners and never touch the
  USD deposit total or any external asset.

Every mutation is flushed immediately so the operation's transaction, and any database
constraint, sees it before an external transfer is attempted.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.base import UINT256_MAX
from app.models.account import Account, TokenBalance
from ledger.core.errors import AccountAlreadyExists, InsufficientFunds, InvalidInput, NotFound

logger = logging.getLogger(__name__)


def _checked_add(balance: int, amount: int) -> int:
    total = balance + amount
    if total > UINT256_MAX:
        raise InvalidInput("Balance would exceed the uint256 range.")
    return total


class Ledger:
    def __init__(self, db: Session) -> None:
        self._db = db

    # ---- accounts ---------------------------------------------------------

    def find_account(self, identity: str, *, for_update: bool = False) -> Optional[Account]:
        account = self._db.get(Account, identity, with_for_update=for_update)
        if account is None or not account.exists:
            return None
        return account

    def require_account(self, identity: str, *, for_update: bool = False) -> Account:
        account = self.find_account(identity, for_update=for_update)
        if account is None:
            raise NotFound(f"No account for {identity}.")
        return account

    def create_account(self, identity: str, *, created_by: str) -> Account:
        """Open a zero-balance account. The Client grant is the caller's job."""
        if self._db.get(Account, identity) is not None:
            raise AccountAlreadyExists(f"Account for {identity} already exists.")
        account = Account(owner=identity, native_balance=0, exists=True, created_by=created_by)
        self._db.add(account)
        self._db.flush()
        return account

    # ---- native -----------------------------------------------------------

    def native_balance(self, identity: str) -> int:
        return self.require_account(identity).native_balance

    def credit_native(self, identity: str, amount: int) -> int:
        account = self.require_account(identity, for_update=True)
        account.native_balance = _checked_add(account.native_balance, amount)
        self._db.flush()
        return account.native_balance

    def debit_native(self, identity: str, amount: int) -> int:
        account = self.require_account(identity, for_update=True)
        if amount > account.native_balance:
            raise InsufficientFunds(
                f"Insufficient native balance for {identity}: {account.native_balance} < {amount}."
            )
        account.native_balance -= amount
        self._db.flush()
        return account.native_balance

    def transfer_native_internal(self, sender: str, recipient: str, amount: int) -> tuple[int, int]:
        """Debit sender, credit recipient. Returns both new balances."""
        if sender == recipient:
            raise InvalidInput("Sender and recipient must differ.")
        # Lock rows in a stable order to avoid deadlocks between concurrent writers.
        for owner in sorted((sender, recipient)):
            self.require_account(owner, for_update=True)
        sender_balance = self.debit_native(sender, amount)
        recipient_balance = self.credit_native(recipient, amount)
        return sender_balance, recipient_balance

    # ---- tokens -----------------------------------------------------------

    def token_balance(self, identity: str, token_id: str) -> int:
        self.require_account(identity)
        row = self._db.get(TokenBalance, (identity, token_id))
        return 0 if row is None else row.amount

    def credit_token(self, identity: str, token_id: str, amount: int) -> int:
        self.require_account(identity)
        row = self._db.get(TokenBalance, (identity, token_id), with_for_update=True)
        if row is None:
            row = TokenBalance(owner=identity, token_id=token_id, amount=0)
            self._db.add(row)
        row.amount = _checked_add(row.amount, amount)
        self._db.flush()
        return row.amount

    def debit_token(self, identity: str, token_id: str, amount: int) -> int:
        self.require_account(identity)
        row = self._db.get(TokenBalance, (identity, token_id), with_for_update=True)
        held = 0 if row is None else row.amount
        if row is None or amount > held:
            raise InsufficientFunds(
                f"Insufficient {token_id} balance for {identity}: {held} < {amount}."
            )
        row.amount -= amount
        self._db.flush()
        return row.amount
