"""SQLAlchemy models package.

All ORM classes must be registered deterministically so mapper configuration and
`Base.metadata` are complete regardless of import order.
"""

from app.models import (  # noqa: F401
    account,
    allowed_token,
    ledger_event,
    role_grant,
    vault_state,
)
