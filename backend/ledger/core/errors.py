from __future__ import annotations

"""Vault operation errors.

Custody intent:
- Every rejected operation surfaces exactly one of these to the caller.
- Nothing here is retried or swallowed; a raised error means nothing was committed.
- Each class is a distinct, user-visible failure reason.
"""


class VaultError(RuntimeError):
    """Base error for vault operations; the whole call is rolled back."""


class Unauthorized(VaultError):
    """Raised when the caller lacks the role required by the operation."""


class NotFound(VaultError):
    """Raised when an account, role or the vault state itself is absent."""


class InvalidInput(VaultError):
    """Raised for zero amounts, zero identities, self-transfers and similar misuse."""


class AccountAlreadyExists(InvalidInput):
    """Raised when creating an account for an identity that already has one."""


class InsufficientFunds(VaultError):
    """Raised when a debit exceeds the available balance."""


class CapExceeded(VaultError):
    """Raised when a deposit would push the USD total above the bank cap."""


class PausedState(VaultError):
    """Raised when deposits are initiated while the pause switch is set."""


class TokenNotAllowed(VaultError):
    """Raised when depositing a token that is not on the allow-list."""


class OraclePriceInvalid(VaultError):
    """Raised when the price feed reports a non-positive price or cannot be read."""


class ExternalTransferFailed(VaultError):
    """Raised when an outbound or inbound asset transfer does not succeed."""


class ReentrantCall(VaultError):
    """Raised when an external collaborator calls back into a guarded operation."""


class AccountingUnderflow(VaultError):
    """Raised when a withdrawal would drive the USD deposit total below zero."""
