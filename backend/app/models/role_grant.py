from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.sqltypes import Enum as SAEnum

from app.core.base import Base, CreatedAtMixin
from app.security.roles import Role


class RoleGrant(CreatedAtMixin, Base):
    """Membership of one identity in one role. Revocation deletes the row."""

    __tablename__ = "role_grants"

    role: Mapped[Role] = mapped_column(SAEnum(Role, name="vault_role"), primary_key=True)
    identity: Mapped[str] = mapped_column(String(128), primary_key=True, index=True)
    granted_by: Mapped[str] = mapped_column(String(128), nullable=False)

    def __repr__(self) -> str:
        return f"<RoleGrant(role={self.role.value}, identity={self.identity})>"
