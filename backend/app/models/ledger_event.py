"""LedgerEvent model.

Custody rationale:
LedgerEvent is the audit log of the vault. One row is appended per successful mutating
operation, in the same database transaction as the mutation it describes, so a rolled
back operation leaves no trace and a committed one always has its record.

Immutability is mandatory because:
- Reconciliation against external asset movements relies on a stable history.
- Indexers consume the log by sequence number; rewriting rows breaks them.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, DateTime, Index, Integer, String, Uuid, event, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.sqltypes import Enum as SAEnum

from app.core.base import Base, Uint256


class LedgerEventImmutabilityError(RuntimeError):
    """Raised when an attempt is made to mutate or delete a LedgerEvent."""


class LedgerEventType(str, Enum):
    ACCOUNT_CREATED = "AccountCreated"
    DEPOSIT_MADE = "DepositMade"
    WITHDRAWAL_MADE = "WithdrawalMade"
    TRANSFER_MADE = "TransferMade"
    TOKEN_DEPOSIT = "TokenDeposit"
    TOKEN_WITHDRAWAL = "TokenWithdrawal"
    ROLE_GRANTED = "RoleGranted"
    ROLE_REVOKED = "RoleRevoked"
    TOKEN_ALLOWED = "TokenAllowed"
    TOKEN_DISALLOWED = "TokenDisallowed"
    BANK_CAP_INCREASED = "BankCapIncreased"
    DEPOSITS_PAUSED = "DepositsPaused"
    DEPOSITS_UNPAUSED = "DepositsUnpaused"


class LedgerEvent(Base):
    """Append-only audit record. No field may change after insert."""

    __tablename__ = "ledger_events"

    # SQLite only auto-increments INTEGER primary keys.
    seq: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, unique=True, default=uuid.uuid4)

    event_type: Mapped[LedgerEventType] = mapped_column(
        SAEnum(LedgerEventType, name="ledger_event_type"),
        nullable=False,
    )

    actor: Mapped[str] = mapped_column(String(128), nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    counterparty: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    token_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    amount: Mapped[Optional[int]] = mapped_column(Uint256, nullable=True)
    usd_value: Mapped[Optional[int]] = mapped_column(Uint256, nullable=True)

    # Event-specific extras, e.g. {"role": "MANAGER"} or {"old_cap": "...", "new_cap": "..."}
    details: Mapped[dict[str, Any]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=dict,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_ledger_events_event_type", "event_type"),
        Index("ix_ledger_events_subject", "subject"),
    )

    def as_message(self) -> dict[str, Any]:
        """JSON-safe representation for pub/sub consumers."""
        return {
            "seq": self.seq,
            "event_id": str(self.event_id),
            "event_type": self.event_type.value,
            "actor": self.actor,
            "subject": self.subject,
            "counterparty": self.counterparty,
            "token_id": self.token_id,
            "amount": None if self.amount is None else str(self.amount),
            "usd_value": None if self.usd_value is None else str(self.usd_value),
            "details": dict(self.details or {}),
        }

    def __repr__(self) -> str:
        return f"<LedgerEvent(seq={self.seq}, type={self.event_type.value}, actor={self.actor})>"


@event.listens_for(LedgerEvent, "before_update", propagate=True)
def _ledger_event_prevent_updates(mapper, connection, target) -> None:
    raise LedgerEventImmutabilityError(
        "LedgerEvent is append-only: rows cannot be updated. Emit a new event instead."
    )


@event.listens_for(LedgerEvent, "before_delete", propagate=True)
def _ledger_event_prevent_delete(mapper, connection, target) -> None:
    raise LedgerEventImmutabilityError(
        "LedgerEvent deletion is forbidden. The audit log must remain complete."
    )
