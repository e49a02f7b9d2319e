from __future__ import annotations

import pytest

from app.models.ledger_event import LedgerEventType
from app.security.roles import Role
from conftest import ADMIN, ALICE, BANK_CAP, BOB, MANAGER, OUTSIDER, PRICE, UNIT, WALLET, recorded_events
from ledger.core.errors import (
    AccountingUnderflow,
    CapExceeded,
    ExternalTransferFailed,
    InsufficientFunds,
    InvalidInput,
    NotFound,
    OraclePriceInvalid,
    PausedState,
    Unauthorized,
)


def test_deposit_credits_balance_and_usd_total(vault, session_factory):
    assert vault.deposit(ALICE, 10 * UNIT) == 10 * UNIT

    status = vault.status()
    assert status.total_deposited_usd == 20_000 * 10**8
    assert status.latest_price == PRICE

    last = recorded_events(session_factory)[-1]
    assert last.event_type == LedgerEventType.DEPOSIT_MADE
    assert last.amount == 10 * UNIT
    assert last.usd_value == 20_000 * 10**8


def test_deposit_over_cap_is_rejected_and_changes_nothing(vault, session_factory):
    vault.deposit(ALICE, 10 * UNIT)
    events_before = len(recorded_events(session_factory))

    # 45 more units = $90,000 -> total would be $110,000 > $100,000.
    with pytest.raises(CapExceeded):
        vault.deposit(ALICE, 45 * UNIT)

    assert vault.get_balance(ALICE) == 10 * UNIT
    assert vault.status().total_deposited_usd == 20_000 * 10**8
    assert len(recorded_events(session_factory)) == events_before


def test_deposit_up_to_exact_cap_is_allowed(vault):
    vault.deposit(ALICE, 50 * UNIT)
    status = vault.status()
    assert status.total_deposited_usd == status.bank_cap_usd == BANK_CAP
    with pytest.raises(CapExceeded):
        vault.deposit(BOB, UNIT)


def test_raising_cap_admits_more_deposits(vault, session_factory):
    vault.deposit(ALICE, 50 * UNIT)
    vault.increase_bank_cap(MANAGER, 2 * BANK_CAP)
    vault.deposit(BOB, 10 * UNIT)
    assert vault.status().total_deposited_usd == 120_000 * 10**8

    ev = [e for e in recorded_events(session_factory) if e.event_type == LedgerEventType.BANK_CAP_INCREASED]
    assert ev[0].details == {"old_cap": str(BANK_CAP), "new_cap": str(2 * BANK_CAP)}


@pytest.mark.parametrize("new_cap", [BANK_CAP, BANK_CAP - 1])
def test_cap_never_decreases(vault, new_cap):
    with pytest.raises(InvalidInput):
        vault.increase_bank_cap(MANAGER, new_cap)
    assert vault.status().bank_cap_usd == BANK_CAP


def test_increase_cap_requires_manager(vault):
    with pytest.raises(Unauthorized):
        vault.increase_bank_cap(ALICE, 2 * BANK_CAP)


@pytest.mark.parametrize("amount", [0, -1, True, 1.5])
def test_non_positive_or_non_integer_amounts_are_rejected(vault, amount):
    with pytest.raises(InvalidInput):
        vault.deposit(ALICE, amount)
    with pytest.raises(InvalidInput):
        vault.withdraw(ALICE, amount)
    assert vault.get_balance(ALICE) == 0


def test_deposit_requires_client_role(vault):
    with pytest.raises(Unauthorized):
        vault.deposit(OUTSIDER, UNIT)
    with pytest.raises(Unauthorized):
        vault.deposit(MANAGER, UNIT)


def test_client_without_account_is_not_found(vault):
    vault.grant_role(ADMIN, Role.CLIENT, OUTSIDER)
    with pytest.raises(NotFound):
        vault.deposit(OUTSIDER, UNIT)


def test_invalid_price_blocks_deposit(vault, feed):
    feed.set_answer(0)
    with pytest.raises(OraclePriceInvalid):
        vault.deposit(ALICE, UNIT)
    assert vault.get_balance(ALICE) == 0
    assert vault.status().total_deposited_usd == 0
    assert vault.status().latest_price is None


def test_withdraw_debits_sends_and_releases_usd(vault, native, session_factory):
    vault.deposit(ALICE, 10 * UNIT)
    assert vault.withdraw(ALICE, 4 * UNIT) == 6 * UNIT

    assert native.sent == [(ALICE, 4 * UNIT)]
    assert vault.status().total_deposited_usd == 12_000 * 10**8
    last = recorded_events(session_factory)[-1]
    assert last.event_type == LedgerEventType.WITHDRAWAL_MADE
    assert last.usd_value == 8_000 * 10**8


def test_withdraw_more_than_balance_fails(vault, native):
    vault.deposit(ALICE, UNIT)
    with pytest.raises(InsufficientFunds):
        vault.withdraw(ALICE, UNIT + 1)
    assert vault.get_balance(ALICE) == UNIT
    assert native.sent == []


def test_failed_native_transfer_rolls_back_withdrawal(vault, native, session_factory):
    vault.deposit(ALICE, 10 * UNIT)
    events_before = len(recorded_events(session_factory))
    native.fail_transfers = True

    with pytest.raises(ExternalTransferFailed):
        vault.withdraw(ALICE, 5 * UNIT)

    assert vault.get_balance(ALICE) == 10 * UNIT
    assert vault.status().total_deposited_usd == 20_000 * 10**8
    assert len(recorded_events(session_factory)) == events_before


def test_usd_total_is_released_at_withdrawal_price(vault, feed):
    vault.deposit(ALICE, 10 * UNIT)  # $20,000 at $2,000
    feed.set_answer(1_000 * 10**8)
    vault.withdraw(ALICE, 10 * UNIT)  # releases only $10,000
    assert vault.get_balance(ALICE) == 0
    assert vault.status().total_deposited_usd == 10_000 * 10**8


def test_usd_total_underflow_fails_withdrawal(vault, feed):
    vault.deposit(ALICE, 10 * UNIT)  # $20,000
    feed.set_answer(4_000 * 10**8)
    with pytest.raises(AccountingUnderflow):
        vault.withdraw(ALICE, 10 * UNIT)  # $40,000 > recorded total
    assert vault.get_balance(ALICE) == 10 * UNIT
    assert vault.status().total_deposited_usd == 20_000 * 10**8


def test_pause_blocks_deposits_but_not_withdrawals(vault, session_factory):
    vault.deposit(ALICE, 2 * UNIT)
    vault.pause_deposits(MANAGER)

    with pytest.raises(PausedState):
        vault.deposit(ALICE, UNIT)
    assert vault.withdraw(ALICE, UNIT) == UNIT
    assert vault.transfer_to(ALICE, BOB, UNIT) == 0

    vault.unpause_deposits(MANAGER)
    assert vault.deposit(ALICE, UNIT) == UNIT

    kinds = [e.event_type for e in recorded_events(session_factory)]
    assert LedgerEventType.DEPOSITS_PAUSED in kinds
    assert LedgerEventType.DEPOSITS_UNPAUSED in kinds


def test_pause_toggle_errors(vault):
    with pytest.raises(InvalidInput):
        vault.unpause_deposits(MANAGER)
    vault.pause_deposits(MANAGER)
    with pytest.raises(PausedState):
        vault.pause_deposits(MANAGER)
    with pytest.raises(Unauthorized):
        vault.unpause_deposits(ALICE)
    assert vault.status().deposits_paused is True


def test_direct_transfers_are_rejected(vault, native):
    with pytest.raises(InvalidInput):
        native.transfer_direct(ALICE, UNIT)

    assert native.wallets[ALICE] == WALLET
    assert native.custody_balance == 0
    assert vault.get_balance(ALICE) == 0


def test_deposit_moves_native_into_custody(vault, native):
    vault.deposit(ALICE, 3 * UNIT)

    assert native.received == [(ALICE, 3 * UNIT)]
    assert native.wallets[ALICE] == WALLET - 3 * UNIT
    assert native.custody_balance == 3 * UNIT


@pytest.mark.parametrize("unfunded", [True, False], ids=["wallet_short", "transport_down"])
def test_deposit_without_received_native_credits_nothing(vault, native, session_factory, unfunded):
    vault.deposit(ALICE, UNIT)
    events_before = len(recorded_events(session_factory))
    if unfunded:
        native.wallets[ALICE] = 0
    else:
        native.fail_transfers = True

    with pytest.raises(ExternalTransferFailed):
        vault.deposit(ALICE, UNIT)

    assert vault.get_balance(ALICE) == UNIT
    assert vault.status().total_deposited_usd == 2_000 * 10**8
    assert len(recorded_events(session_factory)) == events_before
    assert native.received == [(ALICE, UNIT)]
    assert native.custody_balance == UNIT
