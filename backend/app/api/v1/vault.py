"""Client vault endpoints.

The caller identity is the token subject. Role checks, validation and atomicity all
live in the transfer engine; these handlers only translate HTTP to engine calls.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from app.api.deps import get_vault_engine
from app.schemas.vault import (
    AmountRequest,
    BalanceResponse,
    TokenAllowanceResponse,
    TokenBalanceResponse,
    TransferRequest,
    VaultStatusResponse,
)
from app.security.auth import Principal, get_current_principal
from ledger.core.engine import TransferEngine


router = APIRouter()


@router.get("/status", response_model=VaultStatusResponse, summary="Vault cap, USD total and pause state")
def vault_status(
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> VaultStatusResponse:
    s = vault.status()
    return VaultStatusResponse(
        bank_cap_usd=s.bank_cap_usd,
        total_deposited_usd=s.total_deposited_usd,
        deposits_paused=s.deposits_paused,
        latest_price=s.latest_price,
    )


@router.get("/balance", response_model=BalanceResponse, summary="Caller's native balance")
def get_balance(
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> BalanceResponse:
    return BalanceResponse(identity=principal.sub, balance=vault.get_balance(principal.sub))


@router.post("/deposit", response_model=BalanceResponse, summary="Move native asset from the caller into custody")
def deposit(
    data: AmountRequest,
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> BalanceResponse:
    balance = vault.deposit(principal.sub, data.amount)
    return BalanceResponse(identity=principal.sub, balance=balance)


@router.post("/withdraw", response_model=BalanceResponse, summary="Withdraw native asset to the caller")
def withdraw(
    data: AmountRequest,
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> BalanceResponse:
    balance = vault.withdraw(principal.sub, data.amount)
    return BalanceResponse(identity=principal.sub, balance=balance)


@router.post("/transfer", response_model=BalanceResponse, summary="Move native balance to another account")
def transfer_to(
    data: TransferRequest,
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> BalanceResponse:
    balance = vault.transfer_to(principal.sub, data.to, data.amount)
    return BalanceResponse(identity=principal.sub, balance=balance)


@router.get("/tokens/{token}", response_model=TokenAllowanceResponse, summary="Whether a token accepts deposits")
def token_allowance(
    token: str = Path(..., min_length=1, max_length=128, description="Token identifier"),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenAllowanceResponse:
    return TokenAllowanceResponse(token=token, allowed=vault.is_token_allowed(token))


@router.get("/tokens/{token}/balance", response_model=TokenBalanceResponse, summary="Caller's token balance")
def get_token_balance(
    token: str = Path(..., min_length=1, max_length=128, description="Token identifier"),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenBalanceResponse:
    balance = vault.get_token_balance(principal.sub, token)
    return TokenBalanceResponse(identity=principal.sub, token=token, balance=balance)


@router.post("/tokens/{token}/deposit", response_model=TokenBalanceResponse, summary="Deposit an allowed token")
def deposit_token(
    data: AmountRequest,
    token: str = Path(..., min_length=1, max_length=128, description="Token identifier"),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenBalanceResponse:
    balance = vault.deposit_token(principal.sub, token, data.amount)
    return TokenBalanceResponse(identity=principal.sub, token=token, balance=balance)


@router.post("/tokens/{token}/withdraw", response_model=TokenBalanceResponse, summary="Withdraw held tokens")
def withdraw_token(
    data: AmountRequest,
    token: str = Path(..., min_length=1, max_length=128, description="Token identifier"),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenBalanceResponse:
    balance = vault.withdraw_token(principal.sub, token, data.amount)
    return TokenBalanceResponse(identity=principal.sub, token=token, balance=balance)
