"""Audit log writer.

Appends LedgerEvent rows inside the current operation's transaction. Nothing is
committed here; the engine commits (or rolls back) the whole operation and only then
hands the emitted messages to the publisher.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol

from sqlalchemy.orm import Session

from app.models.ledger_event import LedgerEvent, LedgerEventType


class EventPublisher(Protocol):
    def publish(self, message: dict[str, Any]) -> None: ...


class AuditLog:
    def __init__(self, db: Session) -> None:
        self._db = db
        self.emitted: list[dict[str, Any]] = []

    def emit(
        self,
        event_type: LedgerEventType,
        *,
        actor: str,
        subject: Optional[str] = None,
        counterparty: Optional[str] = None,
        token_id: Optional[str] = None,
        amount: Optional[int] = None,
        usd_value: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ) -> LedgerEvent:
        ev = LedgerEvent(
            event_type=event_type,
            actor=actor,
            subject=subject,
            counterparty=counterparty,
            token_id=token_id,
            amount=amount,
            usd_value=usd_value,
            details=details or {},
        )
        self._db.add(ev)
        self._db.flush()
        # Captured now: attributes expire once the session commits.
        self.emitted.append(ev.as_message())
        return ev
