from __future__ import annotations

import pytest

from app.models.ledger_event import LedgerEventType
from conftest import ALICE, BOB, MANAGER, OUTSIDER, UNIT, recorded_events
from ledger.core.errors import InsufficientFunds, InvalidInput, NotFound, Unauthorized


def test_transfer_and_reverse_restore_balances(vault, session_factory):
    vault.deposit(ALICE, 10 * UNIT)
    total = vault.status().total_deposited_usd

    assert vault.transfer_to(ALICE, BOB, 10) == 10 * UNIT - 10
    assert vault.get_balance(BOB) == 10
    assert vault.transfer_to(BOB, ALICE, 10) == 0

    assert vault.get_balance(ALICE) == 10 * UNIT
    assert vault.status().total_deposited_usd == total

    last = recorded_events(session_factory)[-1]
    assert last.event_type == LedgerEventType.TRANSFER_MADE
    assert (last.subject, last.counterparty, last.amount) == (BOB, ALICE, 10)


def test_transfer_to_self_is_rejected(vault):
    vault.deposit(ALICE, UNIT)
    with pytest.raises(InvalidInput):
        vault.transfer_to(ALICE, ALICE, 1)


def test_transfer_of_zero_is_rejected(vault):
    vault.deposit(ALICE, UNIT)
    with pytest.raises(InvalidInput):
        vault.transfer_to(ALICE, BOB, 0)


def test_transfer_to_unknown_account_is_not_found(vault):
    vault.deposit(ALICE, UNIT)
    with pytest.raises(NotFound):
        vault.transfer_to(ALICE, OUTSIDER, 1)
    assert vault.get_balance(ALICE) == UNIT


def test_transfer_beyond_balance_fails(vault):
    vault.deposit(ALICE, UNIT)
    with pytest.raises(InsufficientFunds):
        vault.transfer_to(ALICE, BOB, UNIT + 1)
    assert vault.get_balance(BOB) == 0


def test_transfer_requires_client_role(vault):
    with pytest.raises(Unauthorized):
        vault.transfer_to(MANAGER, ALICE, 1)


def test_manager_balance_override(vault):
    vault.deposit(BOB, 3 * UNIT)
    assert vault.view_balance_as_manager(MANAGER, BOB) == 3 * UNIT
    with pytest.raises(Unauthorized):
        vault.view_balance_as_manager(ALICE, BOB)
    with pytest.raises(NotFound):
        vault.view_balance_as_manager(MANAGER, OUTSIDER)
