"""Schemas for vault endpoints.

Amounts are integers in atomic units (native: 10**18 per unit by default; tokens: the
token's own unit). USD values are integers with 8 decimals. Range and sign checks are
left to the vault so every rejection carries the vault's own error kind.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.security.roles import Role


Identity = str


class AmountRequest(BaseModel):
    amount: int = Field(..., description="Amount in atomic units")


class TransferRequest(BaseModel):
    to: Identity = Field(..., max_length=128, description="Recipient identity")
    amount: int = Field(..., description="Amount in atomic units")


class CreateAccountRequest(BaseModel):
    identity: Identity = Field(..., max_length=128)


class BankCapRequest(BaseModel):
    new_cap: int = Field(..., description="New cap, USD with 8 decimals; must exceed the current cap")


class BalanceResponse(BaseModel):
    identity: Identity
    balance: int


class TokenBalanceResponse(BaseModel):
    identity: Identity
    token: str
    balance: int


class TokenAllowanceResponse(BaseModel):
    token: str
    allowed: bool


class RoleChangeResponse(BaseModel):
    role: Role
    identity: Identity
    changed: bool = Field(..., description="False when membership already matched the request")


class VaultStatusResponse(BaseModel):
    bank_cap_usd: int
    total_deposited_usd: int
    deposits_paused: bool
    latest_price: Optional[int] = Field(None, description="Native/USD, 8 decimals; null while invalid")


class LedgerEventRead(BaseModel):
    seq: int
    event_id: UUID
    event_type: str
    actor: str
    subject: Optional[str] = None
    counterparty: Optional[str] = None
    token_id: Optional[str] = None
    amount: Optional[int] = None
    usd_value: Optional[int] = None
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    detail: str
    error: str
