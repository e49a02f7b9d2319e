"""VaultState model.

Singleton row holding the global gates of the vault: the USD bank cap, the running
USD deposit total and the deposit pause flag.

Rules:
- Created once by explicit initialization; there is no implicit default row.
- `bank_cap_usd` only ever increases.
- `total_deposited_usd` is an accumulator (deposit-time and withdraw-time prices),
  not a revaluation of holdings.
"""

from __future__ import annotations

from datetime import datetime
from typing import Final, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.base import Base, CreatedAtMixin, Uint256


VAULT_STATE_ID: Final[int] = 1


class VaultState(CreatedAtMixin, Base):
    __tablename__ = "vault_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=VAULT_STATE_ID)

    bank_cap_usd: Mapped[int] = mapped_column(Uint256, nullable=False)
    total_deposited_usd: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    deposits_paused: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    initialized_by: Mapped[str] = mapped_column(String(128), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=func.now(),
    )

    __table_args__ = (CheckConstraint("id = 1", name="ck_vault_state_singleton"),)

    def __repr__(self) -> str:
        return (
            f"<VaultState(cap={self.bank_cap_usd}, total={self.total_deposited_usd}, "
            f"paused={self.deposits_paused})>"
        )
