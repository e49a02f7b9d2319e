from __future__ import annotations

import pytest

from conftest import ALICE, BOB, CUSTODY, MANAGER, UNIT
from ledger.core.errors import ReentrantCall
from ledger.core.guard import ReentrancyGuard


class _CallbackTransport:
    """Native transport that calls back into the vault before completing the send."""

    def __init__(self, *, swallow: bool) -> None:
        self.vault = None
        self.swallow = swallow
        self.rejected: list[ReentrantCall] = []
        self.sent: list[tuple[str, int]] = []

    def receive(self, sender: str, amount: int) -> bool:
        return True

    def on_direct_transfer(self, handler) -> None:
        pass

    def send(self, to: str, amount: int) -> bool:
        try:
            self.vault.withdraw(to, amount)
        except ReentrantCall as e:
            if not self.swallow:
                raise
            self.rejected.append(e)
        self.sent.append((to, amount))
        return True


def _with_native(vault, transport):
    vault._native = transport
    transport.vault = vault
    return vault


def test_reentrant_withdraw_is_rejected_and_outer_completes(vault):
    transport = _CallbackTransport(swallow=True)
    _with_native(vault, transport)
    vault.deposit(ALICE, 10 * UNIT)

    assert vault.withdraw(ALICE, 4 * UNIT) == 6 * UNIT

    assert len(transport.rejected) == 1
    assert transport.sent == [(ALICE, 4 * UNIT)]
    assert vault.get_balance(ALICE) == 6 * UNIT


def test_reentrancy_error_aborts_outer_operation(vault):
    transport = _CallbackTransport(swallow=False)
    _with_native(vault, transport)
    vault.deposit(ALICE, 10 * UNIT)

    with pytest.raises(ReentrantCall):
        vault.withdraw(ALICE, 4 * UNIT)

    assert vault.get_balance(ALICE) == 10 * UNIT
    assert vault.status().total_deposited_usd == 20_000 * 10**8


def test_token_hook_cannot_reenter(vault, tokens):
    usdc = tokens["USDC"]
    calls: list[str] = []
    original = usdc.transfer_from

    def hooked(sender: str, to: str, amount: int) -> bool:
        try:
            vault.transfer_to(ALICE, BOB, 1)
        except ReentrantCall:
            calls.append("rejected")
        return original(sender, to, amount)

    usdc.transfer_from = hooked
    vault.allow_token(MANAGER, "USDC")
    usdc.mint(ALICE, 10)
    usdc.approve(ALICE, CUSTODY, 10)

    assert vault.deposit_token(ALICE, "USDC", 10) == 10
    assert calls == ["rejected"]
    assert vault.get_balance(BOB) == 0


def test_guard_released_after_failure():
    guard = ReentrancyGuard()
    with pytest.raises(RuntimeError):
        with guard.hold("withdraw"):
            assert guard.held_by == "withdraw"
            raise RuntimeError("boom")
    assert guard.held_by is None

    with guard.hold("deposit"):
        with pytest.raises(ReentrantCall):
            with guard.hold("withdraw"):
                pass
    assert guard.held_by is None
