"""Ledger event repository (read-only)."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import Select, select

from app.models.ledger_event import LedgerEvent, LedgerEventType
from app.repositories.base import BaseRepository


@dataclass(frozen=True, slots=True)
class LedgerEventDTO:
    seq: int
    event_id: str
    event_type: str
    actor: str
    subject: Optional[str]
    counterparty: Optional[str]
    token_id: Optional[str]
    amount: Optional[int]
    usd_value: Optional[int]
    created_at: datetime
    details: dict[str, Any] = field(default_factory=dict)


class LedgerEventRepository(BaseRepository[LedgerEvent]):
    """Audit log reads in sequence order, for indexers and managers."""

    def list_events(
        self,
        *,
        after_seq: int = 0,
        event_type: Optional[LedgerEventType] = None,
        subject: Optional[str] = None,
        limit: int = 100,
    ) -> Sequence[LedgerEventDTO]:
        """Events with seq > after_seq, oldest first (cursor pagination)."""
        stmt: Select = select(LedgerEvent).where(LedgerEvent.seq > after_seq)
        if event_type is not None:
            stmt = stmt.where(LedgerEvent.event_type == event_type)
        if subject is not None:
            stmt = stmt.where(LedgerEvent.subject == subject)
        stmt = stmt.order_by(LedgerEvent.seq.asc()).limit(limit)
        return [_to_event_dto(r) for r in self._scalars(stmt)]


def _to_event_dto(m: LedgerEvent) -> LedgerEventDTO:
    return LedgerEventDTO(
        seq=int(m.seq),
        event_id=str(m.event_id),
        event_type=m.event_type.value,
        actor=m.actor,
        subject=m.subject,
        counterparty=m.counterparty,
        token_id=m.token_id,
        amount=m.amount,
        usd_value=m.usd_value,
        created_at=m.created_at,
        details=dict(m.details or {}),
    )
