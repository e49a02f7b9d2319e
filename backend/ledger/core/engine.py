"""Transfer engine: the public operations of the vault.

Every mutating operation follows the same order:
  authorize → global gates (pause) → USD effect via oracle (native deposits/withdrawals)
  → cap check (native deposits) → ledger mutation → audit event → external transfer
  (if any) → commit → publish.

Atomicity:
- Each operation runs in one database transaction. Any error rolls back every staged
  change: balances, the USD total, role sets, the allow-list, the pause flag and the
  audit rows.
- External transfers run after the staged mutation is flushed and before the commit.
  A failed transfer raises ExternalTransferFailed, so the ledger never records a
  credit the vault did not receive, nor a debit for an asset that did not leave.

Concurrency:
- A process-wide re-entrant lock serializes all operations (views included).
- Mutating operations additionally hold the reentrancy guard, so a collaborator that
  calls back into the vault mid-operation is rejected instead of interleaving.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.orm import Session, sessionmaker

from app.models.ledger_event import LedgerEventType
from app.models.vault_state import VAULT_STATE_ID, VaultState
from app.security.roles import Role
from ledger.core.assets import AssetTransferError, NativeTransport, TokenDirectory
from ledger.core.audit import AuditLog, EventPublisher
from ledger.core.book import Ledger
from ledger.core.cap import CapEnforcer
from ledger.core.errors import ExternalTransferFailed, InvalidInput, OraclePriceInvalid, VaultError
from ledger.core.guard import ReentrancyGuard
from ledger.core.oracle import PriceOracleAdapter
from ledger.core.pause import PauseSwitch
from ledger.core.roles import RoleRegistry
from ledger.core.state import load_vault_state
from ledger.core.tokens import AllowList
from ledger.core.validation import require_identity, require_positive


logger = logging.getLogger("capvault.ledger")


def _log(event: dict[str, Any]) -> None:
    logger.info(json.dumps(event, ensure_ascii=False))


@dataclass(frozen=True, slots=True)
class VaultStatus:
    bank_cap_usd: int
    total_deposited_usd: int
    deposits_paused: bool
    latest_price: Optional[int]  # None while the oracle reports an invalid price


@dataclass(slots=True)
class _Unit:
    """Components bound to one operation's session."""

    db: Session
    roles: RoleRegistry
    book: Ledger
    cap: CapEnforcer
    pause: PauseSwitch
    allow_list: AllowList
    audit: AuditLog


def _bind(db: Session) -> _Unit:
    return _Unit(
        db=db,
        roles=RoleRegistry(db),
        book=Ledger(db),
        cap=CapEnforcer(db),
        pause=PauseSwitch(db),
        allow_list=AllowList(db),
        audit=AuditLog(db),
    )


class TransferEngine:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        oracle: PriceOracleAdapter,
        native: NativeTransport,
        tokens: TokenDirectory,
        custody: str,
        publisher: Optional[EventPublisher] = None,
    ) -> None:
        self._session_factory = session_factory
        self._oracle = oracle
        self._native = native
        self._tokens = tokens
        self._custody = require_identity(custody, field="custody")
        self._publisher = publisher
        self._serial = threading.RLock()
        self._guard = ReentrancyGuard()
        native.on_direct_transfer(self.reject_direct_transfer)

    # ---- transactional boundary ------------------------------------------

    @contextmanager
    def _mutation(self, operation: str, caller: str) -> Iterator[_Unit]:
        with self._serial:
            try:
                with self._guard.hold(operation):
                    with self._session_factory() as db, db.begin():
                        unit = _bind(db)
                        yield unit
            except VaultError as e:
                _log(
                    {
                        "event": "vault_operation",
                        "operation": operation,
                        "caller": caller,
                        "status": "rejected",
                        "error": type(e).__name__,
                        "detail": str(e),
                    }
                )
                raise
            _log(
                {
                    "event": "vault_operation",
                    "operation": operation,
                    "caller": caller,
                    "status": "committed",
                    "events": [m["event_type"] for m in unit.audit.emitted],
                }
            )
            self._publish(unit.audit.emitted)

    @contextmanager
    def _view(self) -> Iterator[_Unit]:
        with self._serial, self._session_factory() as db:
            yield _bind(db)

    def _publish(self, messages: list[dict[str, Any]]) -> None:
        if self._publisher is None:
            return
        for message in messages:
            self._publisher.publish(message)

    def _receive_native(self, sender: str, amount: int) -> None:
        try:
            ok = self._native.receive(sender, amount)
        except AssetTransferError as e:
            raise ExternalTransferFailed(f"Native transfer from {sender} failed: {e}") from e
        if not ok:
            raise ExternalTransferFailed(f"Native transfer of {amount} from {sender} was not received.")

    def _send_native(self, to: str, amount: int) -> None:
        try:
            ok = self._native.send(to, amount)
        except AssetTransferError as e:
            raise ExternalTransferFailed(f"Native transfer to {to} failed: {e}") from e
        if not ok:
            raise ExternalTransferFailed(f"Native transfer of {amount} to {to} was not accepted.")

    def _move_token(self, token_id: str, *, sender: Optional[str], to: str, amount: int) -> None:
        asset = self._tokens.resolve(token_id)
        try:
            if sender is None:
                ok = asset.transfer(to, amount)
            else:
                ok = asset.transfer_from(sender, to, amount)
        except AssetTransferError as e:
            raise ExternalTransferFailed(f"{token_id} transfer to {to} failed: {e}") from e
        if not ok:
            raise ExternalTransferFailed(f"{token_id} transfer of {amount} to {to} was not accepted.")

    # ---- bootstrap --------------------------------------------------------

    def initialize(self, deployer: str, bank_cap_usd: int) -> None:
        """Create the global state and grant ROOT + ADMINISTRATOR to the deployer."""
        require_identity(deployer, field="deployer")
        require_positive(bank_cap_usd, field="bank_cap_usd")
        with self._mutation("initialize", deployer) as u:
            if u.db.get(VaultState, VAULT_STATE_ID) is not None:
                raise InvalidInput("Vault is already initialized.")
            u.db.add(
                VaultState(
                    id=VAULT_STATE_ID,
                    bank_cap_usd=bank_cap_usd,
                    total_deposited_usd=0,
                    deposits_paused=False,
                    initialized_by=deployer,
                )
            )
            u.db.flush()
            for role in (Role.ROOT, Role.ADMINISTRATOR):
                u.roles.grant(role, deployer, granted_by=deployer)
                u.audit.emit(
                    LedgerEventType.ROLE_GRANTED, actor=deployer, subject=deployer, details={"role": role.value}
                )

    # ---- accounts ---------------------------------------------------------

    def create_account(self, caller: str, identity: str) -> None:
        with self._mutation("create_account", caller) as u:
            u.roles.require(Role.ADMINISTRATOR, caller)
            require_identity(identity)
            u.book.create_account(identity, created_by=caller)
            u.roles.grant(Role.CLIENT, identity, granted_by=caller)
            u.audit.emit(LedgerEventType.ACCOUNT_CREATED, actor=caller, subject=identity)

    def get_balance(self, caller: str) -> int:
        with self._view() as u:
            u.roles.require(Role.CLIENT, caller)
            return u.book.native_balance(caller)

    def get_token_balance(self, caller: str, token_id: str) -> int:
        with self._view() as u:
            u.roles.require(Role.CLIENT, caller)
            require_identity(token_id, field="token")
            return u.book.token_balance(caller, token_id)

    # ---- native asset -----------------------------------------------------

    def deposit(self, caller: str, amount: int) -> int:
        """Pull `amount` of native asset from the caller into custody and credit it.

        Returns the caller's new balance. Nothing is credited unless the transport
        confirms receipt before the commit.
        """
        with self._mutation("deposit", caller) as u:
            u.roles.require(Role.CLIENT, caller)
            u.book.require_account(caller)
            require_positive(amount)
            u.pause.require_open()
            usd = self._oracle.usd_value(amount)
            reservation = u.cap.check_and_reserve(usd)
            balance = u.book.credit_native(caller, amount)
            total = u.cap.commit(reservation)
            u.audit.emit(
                LedgerEventType.DEPOSIT_MADE,
                actor=caller,
                subject=caller,
                amount=amount,
                usd_value=usd,
                details={"total_deposited_usd": str(total)},
            )
            self._receive_native(caller, amount)
        return balance

    def withdraw(self, caller: str, amount: int) -> int:
        """Debit and send native asset to the caller. Returns the new balance.

        The USD total is reduced at the price observed now, not the deposit-time price.
        """
        with self._mutation("withdraw", caller) as u:
            u.roles.require(Role.CLIENT, caller)
            u.book.require_account(caller)
            require_positive(amount)
            balance = u.book.debit_native(caller, amount)
            usd = self._oracle.usd_value(amount)
            total = u.cap.release(usd)
            u.audit.emit(
                LedgerEventType.WITHDRAWAL_MADE,
                actor=caller,
                subject=caller,
                amount=amount,
                usd_value=usd,
                details={"total_deposited_usd": str(total)},
            )
            self._send_native(caller, amount)
        return balance

    def transfer_to(self, caller: str, to: str, amount: int) -> int:
        """Move native balance between two accounts. Returns the sender's new balance."""
        with self._mutation("transfer_to", caller) as u:
            u.roles.require(Role.CLIENT, caller)
            u.book.require_account(caller)
            require_identity(to, field="recipient")
            if to == caller:
                raise InvalidInput("Cannot transfer to yourself.")
            require_positive(amount)
            u.book.require_account(to)
            sender_balance, _ = u.book.transfer_native_internal(caller, to, amount)
            u.audit.emit(
                LedgerEventType.TRANSFER_MADE, actor=caller, subject=caller, counterparty=to, amount=amount
            )
        return sender_balance

    def reject_direct_transfer(self, sender: str, amount: int) -> None:
        """Registered with the native transport for value arriving outside `deposit`; always refuses."""
        _log({"event": "direct_transfer_rejected", "sender": sender, "amount": str(amount)})
        raise InvalidInput("Direct transfers are not accepted; use deposit.")

    # ---- tokens -----------------------------------------------------------

    def deposit_token(self, caller: str, token_id: str, amount: int) -> int:
        """Pull `amount` of an allowed token from the caller. Returns the new token balance."""
        with self._mutation("deposit_token", caller) as u:
            u.roles.require(Role.CLIENT, caller)
            u.book.require_account(caller)
            require_identity(token_id, field="token")
            require_positive(amount)
            u.pause.require_open()
            u.allow_list.require_allowed(token_id)
            balance = u.book.credit_token(caller, token_id, amount)
            u.audit.emit(
                LedgerEventType.TOKEN_DEPOSIT, actor=caller, subject=caller, token_id=token_id, amount=amount
            )
            self._move_token(token_id, sender=caller, to=self._custody, amount=amount)
        return balance

    def withdraw_token(self, caller: str, token_id: str, amount: int) -> int:
        """Send held tokens back to the caller; allowed or not. Returns the new token balance."""
        with self._mutation("withdraw_token", caller) as u:
            u.roles.require(Role.CLIENT, caller)
            u.book.require_account(caller)
            require_identity(token_id, field="token")
            require_positive(amount)
            balance = u.book.debit_token(caller, token_id, amount)
            u.audit.emit(
                LedgerEventType.TOKEN_WITHDRAWAL, actor=caller, subject=caller, token_id=token_id, amount=amount
            )
            self._move_token(token_id, sender=None, to=caller, amount=amount)
        return balance

    def allow_token(self, caller: str, token_id: str) -> None:
        with self._mutation("allow_token", caller) as u:
            u.roles.require(Role.MANAGER, caller)
            require_identity(token_id, field="token")
            u.allow_list.add(token_id, allowed_by=caller)
            u.audit.emit(LedgerEventType.TOKEN_ALLOWED, actor=caller, token_id=token_id)

    def disallow_token(self, caller: str, token_id: str) -> None:
        with self._mutation("disallow_token", caller) as u:
            u.roles.require(Role.MANAGER, caller)
            require_identity(token_id, field="token")
            u.allow_list.remove(token_id)
            u.audit.emit(LedgerEventType.TOKEN_DISALLOWED, actor=caller, token_id=token_id)

    def is_token_allowed(self, token_id: str) -> bool:
        with self._view() as u:
            return u.allow_list.contains(token_id)

    # ---- manager ----------------------------------------------------------

    def view_balance_as_manager(self, caller: str, client: str) -> int:
        with self._view() as u:
            u.roles.require(Role.MANAGER, caller)
            require_identity(client, field="client")
            return u.book.native_balance(client)

    def view_token_balance_as_manager(self, caller: str, client: str, token_id: str) -> int:
        with self._view() as u:
            u.roles.require(Role.MANAGER, caller)
            require_identity(client, field="client")
            require_identity(token_id, field="token")
            return u.book.token_balance(client, token_id)

    def increase_bank_cap(self, caller: str, new_cap: int) -> None:
        with self._mutation("increase_bank_cap", caller) as u:
            u.roles.require(Role.MANAGER, caller)
            require_positive(new_cap, field="new_cap")
            old_cap = u.cap.increase_bank_cap(new_cap)
            u.audit.emit(
                LedgerEventType.BANK_CAP_INCREASED,
                actor=caller,
                details={"old_cap": str(old_cap), "new_cap": str(new_cap)},
            )

    def pause_deposits(self, caller: str) -> None:
        with self._mutation("pause_deposits", caller) as u:
            u.roles.require(Role.MANAGER, caller)
            u.pause.pause()
            u.audit.emit(LedgerEventType.DEPOSITS_PAUSED, actor=caller)

    def unpause_deposits(self, caller: str) -> None:
        with self._mutation("unpause_deposits", caller) as u:
            u.roles.require(Role.MANAGER, caller)
            u.pause.unpause()
            u.audit.emit(LedgerEventType.DEPOSITS_UNPAUSED, actor=caller)

    # ---- roles ------------------------------------------------------------

    def _change_role(self, u: _Unit, caller: str, role: Role, user: str, *, grant: bool) -> bool:
        require_identity(user, field="user")
        if grant:
            changed = u.roles.grant(role, user, granted_by=caller)
            event_type = LedgerEventType.ROLE_GRANTED
        else:
            changed = u.roles.revoke(role, user)
            event_type = LedgerEventType.ROLE_REVOKED
        if changed:
            u.audit.emit(event_type, actor=caller, subject=user, details={"role": role.value})
        return changed

    def grant_manager_role(self, caller: str, user: str) -> bool:
        with self._mutation("grant_manager_role", caller) as u:
            u.roles.require(Role.ADMINISTRATOR, caller)
            return self._change_role(u, caller, Role.MANAGER, user, grant=True)

    def revoke_manager_role(self, caller: str, user: str) -> bool:
        with self._mutation("revoke_manager_role", caller) as u:
            u.roles.require(Role.ADMINISTRATOR, caller)
            return self._change_role(u, caller, Role.MANAGER, user, grant=False)

    def revoke_any_role(self, caller: str, role: Role, user: str) -> bool:
        """Incident-response escape hatch: an Administrator may strip any role."""
        with self._mutation("revoke_any_role", caller) as u:
            u.roles.require(Role.ADMINISTRATOR, caller)
            return self._change_role(u, caller, role, user, grant=False)

    def grant_role(self, caller: str, role: Role, user: str) -> bool:
        with self._mutation("grant_role", caller) as u:
            u.roles.require_admin_of(role, caller)
            return self._change_role(u, caller, role, user, grant=True)

    def revoke_role(self, caller: str, role: Role, user: str) -> bool:
        with self._mutation("revoke_role", caller) as u:
            u.roles.require_admin_of(role, caller)
            return self._change_role(u, caller, role, user, grant=False)

    def renounce_role(self, caller: str, role: Role) -> None:
        with self._mutation("renounce_role", caller) as u:
            u.roles.require(role, caller)
            self._change_role(u, caller, role, caller, grant=False)

    def has_role(self, role: Role, identity: str) -> bool:
        with self._view() as u:
            return u.roles.has(role, identity)

    def require_role(self, role: Role, identity: str) -> None:
        with self._view() as u:
            u.roles.require(role, identity)

    # ---- global views -----------------------------------------------------

    def status(self) -> VaultStatus:
        with self._view() as u:
            state = load_vault_state(u.db)
            try:
                price: Optional[int] = self._oracle.latest_price()
            except OraclePriceInvalid:
                price = None
            return VaultStatus(
                bank_cap_usd=state.bank_cap_usd,
                total_deposited_usd=state.total_deposited_usd,
                deposits_paused=state.deposits_paused,
                latest_price=price,
            )
