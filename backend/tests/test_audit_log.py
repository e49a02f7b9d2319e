from __future__ import annotations

import logging

import pytest
from sqlalchemy import select

from app.models.account import Account, AccountDeletionError
from app.models.ledger_event import LedgerEvent, LedgerEventImmutabilityError, LedgerEventType
from conftest import ALICE, MANAGER, OUTSIDER, UNIT, recorded_events
from ledger.core.errors import InsufficientFunds, Unauthorized


class _ListPublisher:
    def __init__(self) -> None:
        self.messages: list[dict] = []

    def publish(self, message: dict) -> None:
        self.messages.append(message)


def test_ledger_event_cannot_be_updated(vault, session_factory):
    vault.deposit(ALICE, UNIT)
    with session_factory() as s:
        ev = s.execute(select(LedgerEvent).order_by(LedgerEvent.seq.desc())).scalars().first()
        ev.actor = "0xforged"
        with pytest.raises(LedgerEventImmutabilityError):
            s.flush()
        s.rollback()


def test_ledger_event_cannot_be_deleted(vault, session_factory):
    with session_factory() as s:
        ev = s.execute(select(LedgerEvent)).scalars().first()
        s.delete(ev)
        with pytest.raises(LedgerEventImmutabilityError):
            s.flush()
        s.rollback()


def test_accounts_cannot_be_deleted(vault, session_factory):
    with session_factory() as s:
        s.delete(s.get(Account, ALICE))
        with pytest.raises(AccountDeletionError):
            s.flush()
        s.rollback()


def test_sequence_is_strictly_increasing(vault, session_factory):
    vault.deposit(ALICE, UNIT)
    vault.withdraw(ALICE, UNIT)
    seqs = [e.seq for e in recorded_events(session_factory)]
    assert seqs == sorted(seqs)
    assert len(set(seqs)) == len(seqs)


def test_committed_events_are_published_after_commit(vault):
    publisher = _ListPublisher()
    vault._publisher = publisher

    vault.deposit(ALICE, 2 * UNIT)
    with pytest.raises(InsufficientFunds):
        vault.withdraw(ALICE, 3 * UNIT)

    assert [m["event_type"] for m in publisher.messages] == ["DepositMade"]
    msg = publisher.messages[0]
    assert msg["amount"] == str(2 * UNIT)
    assert msg["subject"] == ALICE


def test_operations_are_logged_as_json(vault, caplog):
    caplog.set_level(logging.INFO, logger="capvault.ledger")
    vault.deposit(ALICE, UNIT)
    with pytest.raises(Unauthorized):
        vault.create_account(MANAGER, OUTSIDER)

    lines = [r.getMessage() for r in caplog.records if r.name == "capvault.ledger"]
    committed = [ln for ln in lines if '"status": "committed"' in ln]
    rejected = [ln for ln in lines if '"status": "rejected"' in ln]
    assert any('"operation": "deposit"' in ln and LedgerEventType.DEPOSIT_MADE.value in ln for ln in committed)
    assert any('"error": "Unauthorized"' in ln for ln in rejected)
