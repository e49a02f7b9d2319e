"""Input checks shared by the ledger components."""

from __future__ import annotations

from typing import Final

from app.core.base import UINT256_MAX
from ledger.core.errors import InvalidInput


ZERO_IDENTITY: Final[str] = "0x0000000000000000000000000000000000000000"
MAX_IDENTITY_LENGTH: Final[int] = 128


def require_identity(value: str, *, field: str = "identity") -> str:
    """Reject empty, zero or oversized identities (also used for token ids)."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{field} must be a non-empty identifier.")
    if value.lower() == ZERO_IDENTITY:
        raise InvalidInput(f"{field} must not be the zero address.")
    if len(value) > MAX_IDENTITY_LENGTH:
        raise InvalidInput(f"{field} exceeds {MAX_IDENTITY_LENGTH} characters.")
    return value


def require_positive(amount: int, *, field: str = "amount") -> int:
    # bool is an int subclass; True must not pass as 1.
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidInput(f"{field} must be an integer in atomic units.")
    if amount <= 0:
        raise InvalidInput(f"{field} must be greater than zero.")
    if amount > UINT256_MAX:
        raise InvalidInput(f"{field} exceeds the uint256 range.")
    return amount
