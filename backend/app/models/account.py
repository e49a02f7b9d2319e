"""Account and TokenBalance models.

An Account is created explicitly by an Administrator and never deleted. Token balances
hang off the owning account; a missing TokenBalance row means a zero balance.
"""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, String, event
from sqlalchemy.orm import Mapped, mapped_column

from app.core.base import Base, CreatedAtMixin, UpdatedAtMixin, Uint256


class AccountDeletionError(RuntimeError):
    """Raised when an attempt is made to delete an Account."""


class Account(CreatedAtMixin, UpdatedAtMixin, Base):
    __tablename__ = "accounts"

    owner: Mapped[str] = mapped_column(String(128), primary_key=True)
    native_balance: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)
    exists: Mapped[bool] = mapped_column("account_exists", Boolean, nullable=False, default=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    def __repr__(self) -> str:
        return f"<Account(owner={self.owner}, native_balance={self.native_balance})>"


class TokenBalance(UpdatedAtMixin, Base):
    __tablename__ = "token_balances"

    owner: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("accounts.owner", name="fk_token_balances_owner", ondelete="RESTRICT"),
        primary_key=True,
    )
    token_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    amount: Mapped[int] = mapped_column(Uint256, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TokenBalance(owner={self.owner}, token={self.token_id}, amount={self.amount})>"


@event.listens_for(Account, "before_delete", propagate=True)
def _account_prevent_delete(mapper, connection, target) -> None:
    """Accounts persist for the lifetime of the vault."""
    raise AccountDeletionError(f"Account {target.owner} cannot be deleted.")
