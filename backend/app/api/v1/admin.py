"""Manager and administrator endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_db_session, get_vault_engine
from app.models.ledger_event import LedgerEventType
from app.repositories.ledger_event_repo import LedgerEventRepository
from app.schemas.vault import (
    BalanceResponse,
    BankCapRequest,
    CreateAccountRequest,
    LedgerEventRead,
    RoleChangeResponse,
    TokenAllowanceResponse,
    TokenBalanceResponse,
    VaultStatusResponse,
)
from app.security.auth import Principal, get_current_principal
from app.security.roles import Role
from ledger.core.engine import TransferEngine


router = APIRouter()


# ---- administrator ---------------------------------------------------------


@router.post(
    "/accounts",
    response_model=BalanceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a client account",
)
def create_account(
    data: CreateAccountRequest,
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> BalanceResponse:
    vault.create_account(principal.sub, data.identity)
    return BalanceResponse(identity=data.identity, balance=0)


@router.put("/roles/manager/{user}", response_model=RoleChangeResponse, summary="Grant the manager role")
def grant_manager_role(
    user: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> RoleChangeResponse:
    changed = vault.grant_manager_role(principal.sub, user)
    return RoleChangeResponse(role=Role.MANAGER, identity=user, changed=changed)


@router.delete("/roles/manager/{user}", response_model=RoleChangeResponse, summary="Revoke the manager role")
def revoke_manager_role(
    user: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> RoleChangeResponse:
    changed = vault.revoke_manager_role(principal.sub, user)
    return RoleChangeResponse(role=Role.MANAGER, identity=user, changed=changed)


@router.delete("/roles/{role}/{user}", response_model=RoleChangeResponse, summary="Revoke any role")
def revoke_any_role(
    role: Role,
    user: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> RoleChangeResponse:
    changed = vault.revoke_any_role(principal.sub, role, user)
    return RoleChangeResponse(role=role, identity=user, changed=changed)


# ---- manager ---------------------------------------------------------------


@router.put("/tokens/{token}", response_model=TokenAllowanceResponse, summary="Allow deposits of a token")
def allow_token(
    token: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenAllowanceResponse:
    vault.allow_token(principal.sub, token)
    return TokenAllowanceResponse(token=token, allowed=True)


@router.delete("/tokens/{token}", response_model=TokenAllowanceResponse, summary="Block new deposits of a token")
def disallow_token(
    token: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenAllowanceResponse:
    vault.disallow_token(principal.sub, token)
    return TokenAllowanceResponse(token=token, allowed=False)


@router.get("/accounts/{client}/balance", response_model=BalanceResponse, summary="Read a client's native balance")
def view_balance_as_manager(
    client: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> BalanceResponse:
    return BalanceResponse(identity=client, balance=vault.view_balance_as_manager(principal.sub, client))


@router.get(
    "/accounts/{client}/tokens/{token}/balance",
    response_model=TokenBalanceResponse,
    summary="Read a client's token balance",
)
def view_token_balance_as_manager(
    client: str = Path(..., min_length=1, max_length=128),
    token: str = Path(..., min_length=1, max_length=128),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> TokenBalanceResponse:
    balance = vault.view_token_balance_as_manager(principal.sub, client, token)
    return TokenBalanceResponse(identity=client, token=token, balance=balance)


@router.post("/bank-cap", response_model=VaultStatusResponse, summary="Raise the USD bank cap")
def increase_bank_cap(
    data: BankCapRequest,
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> VaultStatusResponse:
    vault.increase_bank_cap(principal.sub, data.new_cap)
    return _status(vault)


@router.post("/pause", response_model=VaultStatusResponse, summary="Pause new deposits")
def pause_deposits(
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> VaultStatusResponse:
    vault.pause_deposits(principal.sub)
    return _status(vault)


@router.post("/unpause", response_model=VaultStatusResponse, summary="Resume deposits")
def unpause_deposits(
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
) -> VaultStatusResponse:
    vault.unpause_deposits(principal.sub)
    return _status(vault)


@router.get("/events", response_model=list[LedgerEventRead], summary="Audit log, oldest first")
def list_events(
    after_seq: int = Query(0, ge=0),
    event_type: Optional[LedgerEventType] = None,
    subject: Optional[str] = Query(None, min_length=1, max_length=128),
    limit: int = Query(100, ge=1, le=500),
    principal: Principal = Depends(get_current_principal),
    vault: TransferEngine = Depends(get_vault_engine),
    db: Session = Depends(get_db_session),
) -> list[LedgerEventRead]:
    vault.require_role(Role.MANAGER, principal.sub)
    repo = LedgerEventRepository(db)
    events = repo.list_events(after_seq=after_seq, event_type=event_type, subject=subject, limit=limit)
    return [
        LedgerEventRead(
            seq=e.seq,
            event_id=e.event_id,
            event_type=e.event_type,
            actor=e.actor,
            subject=e.subject,
            counterparty=e.counterparty,
            token_id=e.token_id,
            amount=e.amount,
            usd_value=e.usd_value,
            details=e.details,
            created_at=e.created_at,
        )
        for e in events
    ]


def _status(vault: TransferEngine) -> VaultStatusResponse:
    s = vault.status()
    return VaultStatusResponse(
        bank_cap_usd=s.bank_cap_usd,
        total_deposited_usd=s.total_deposited_usd,
        deposits_paused=s.deposits_paused,
        latest_price=s.latest_price,
    )
