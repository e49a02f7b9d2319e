from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.base import Base, CreatedAtMixin


class AllowedToken(CreatedAtMixin, Base):
    """A token enabled for new deposits.

    Removing the row blocks new deposits only; held balances stay withdrawable.
    """

    __tablename__ = "allowed_tokens"

    token_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    allowed_by: Mapped[str] = mapped_column(String(128), nullable=False)
