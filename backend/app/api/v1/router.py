"""API v1 root router."""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.admin import router as admin_router
from app.api.v1.vault import router as vault_router


router = APIRouter()
router.include_router(vault_router, prefix="/vault", tags=["vault"])
router.include_router(admin_router, prefix="/vault/admin", tags=["vault-admin"])
