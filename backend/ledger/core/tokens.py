from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.allowed_token import AllowedToken
from ledger.core.errors import InvalidInput, TokenNotAllowed


class AllowList:
    """Tokens enabled for new deposits. Held balances never depend on membership."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def contains(self, token_id: str) -> bool:
        return self._db.get(AllowedToken, token_id) is not None

    def require_allowed(self, token_id: str) -> None:
        if not self.contains(token_id):
            raise TokenNotAllowed(f"Token {token_id} is not allowed for deposit.")

    def add(self, token_id: str, *, allowed_by: str) -> None:
        if self.contains(token_id):
            raise InvalidInput(f"Token {token_id} is already allowed.")
        self._db.add(AllowedToken(token_id=token_id, allowed_by=allowed_by))
        self._db.flush()

    def remove(self, token_id: str) -> None:
        row = self._db.get(AllowedToken, token_id)
        if row is None:
            raise InvalidInput(f"Token {token_id} is not on the allow-list.")
        self._db.delete(row)
        self._db.flush()

    def all(self) -> list[str]:
        return list(self._db.execute(select(AllowedToken.token_id).order_by(AllowedToken.token_id)).scalars())
