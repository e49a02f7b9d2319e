"""API dependencies.

- Every vault endpoint requires an authenticated principal; the vault itself decides
  whether the principal's identity holds the required role.
- Database sessions handed to request paths are read-only by discipline. Writes go
  through the transfer engine only.
"""

from __future__ import annotations

from collections.abc import Generator

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.db import get_session_factory
from app.services.vault_service import get_vault
from ledger.core.engine import TransferEngine


def get_db_session() -> Generator[Session, None, None]:
    """Provide a database session for request scope (read-only discipline)."""
    session: Session = get_session_factory()()
    try:
        session.autoflush = False
        yield session
        if session.new or session.dirty or session.deleted:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Read-only invariant violated: pending DB changes detected.",
            )
    finally:
        session.close()


def get_vault_engine() -> TransferEngine:
    return get_vault()
