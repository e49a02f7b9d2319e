"""Read-only repository base.

Vault state is written only by the transfer engine inside its own transaction.
Repositories back the API's read paths and refuse anything that could write: non-SELECT
statements, and sessions that already hold pending changes.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.engine import ScalarResult
from sqlalchemy.orm import Session


class RepositoryReadOnlyViolation(RuntimeError):
    """Raised when a repository detects a write or mutation attempt."""


T = TypeVar("T")


class BaseRepository(Generic[T]):
    def __init__(self, session: Session) -> None:
        self._session = session

    def _require_clean(self) -> None:
        s = self._session
        if s.new or s.dirty or s.deleted:
            raise RepositoryReadOnlyViolation(
                f"Session has pending changes (new={len(s.new)}, dirty={len(s.dirty)}, deleted={len(s.deleted)})."
            )

    def _scalars(self, stmt: Any) -> ScalarResult[T]:
        if not isinstance(stmt, Select):
            raise RepositoryReadOnlyViolation(f"Only SELECT statements are allowed (got {type(stmt).__name__}).")
        self._require_clean()
        result = self._session.execute(stmt).scalars()
        self._require_clean()
        return result
