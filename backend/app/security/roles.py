"""Role model for vault access control."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Vault roles.

    ROOT administers every role (grant/revoke through the generic entry points).
    The deployer holds ROOT and ADMINISTRATOR after initialization.
    """

    ROOT = "ROOT"
    ADMINISTRATOR = "ADMINISTRATOR"
    MANAGER = "MANAGER"
    CLIENT = "CLIENT"


def admin_role_of(role: Role) -> Role:
    """Role whose holders may grant or revoke `role` (ROOT for every role)."""
    return Role.ROOT
