"""Role registry.

Pure authorization lookup over the `role_grants` table plus membership mutation.
No balance or cap interaction. Callers decide who may mutate membership; the registry
only records it.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.role_grant import RoleGrant
from app.security.roles import Role, admin_role_of
from ledger.core.errors import Unauthorized

logger = logging.getLogger(__name__)


class RoleRegistry:
    """Role membership bound to one database session (one operation)."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def has(self, role: Role, identity: str) -> bool:
        return self._db.get(RoleGrant, (role, identity)) is not None

    def require(self, role: Role, identity: str) -> None:
        """Default-deny capability check; first step of every guarded operation."""
        if not self.has(role, identity):
            raise Unauthorized(f"{identity} does not hold role {role.value}.")

    def require_admin_of(self, role: Role, identity: str) -> None:
        """Require the role that administers `role` (ROOT for every role)."""
        self.require(admin_role_of(role), identity)

    def grant(self, role: Role, identity: str, *, granted_by: str) -> bool:
        """Add membership. Returns False if the identity already held the role."""
        if self.has(role, identity):
            return False
        self._db.add(RoleGrant(role=role, identity=identity, granted_by=granted_by))
        self._db.flush()
        logger.debug("role granted: %s -> %s", role.value, identity)
        return True

    def revoke(self, role: Role, identity: str) -> bool:
        """Remove membership. Returns False if the identity did not hold the role."""
        grant = self._db.get(RoleGrant, (role, identity))
        if grant is None:
            return False
        self._db.delete(grant)
        self._db.flush()
        logger.debug("role revoked: %s -> %s", role.value, identity)
        return True

    def roles_of(self, identity: str) -> set[Role]:
        stmt = select(RoleGrant.role).where(RoleGrant.identity == identity)
        return set(self._db.execute(stmt).scalars().all())

    def members(self, role: Role) -> list[str]:
        stmt = select(RoleGrant.identity).where(RoleGrant.role == role).order_by(RoleGrant.identity)
        return list(self._db.execute(stmt).scalars().all())
