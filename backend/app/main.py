"""FastAPI application (custodial vault).

Operational goals:
- Every rejected vault operation maps to a specific status and error kind.
- Request-id propagation and structured access logs (tokens never logged).
- Safe failure modes: database outages answer 503, nothing is half-applied.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from app.api.router import router as api_router
import app.models as _models  # noqa: F401  (register all ORM models deterministically)
from ledger.core.errors import (
    AccountAlreadyExists,
    AccountingUnderflow,
    CapExceeded,
    ExternalTransferFailed,
    InsufficientFunds,
    InvalidInput,
    NotFound,
    OraclePriceInvalid,
    PausedState,
    ReentrantCall,
    TokenNotAllowed,
    Unauthorized,
    VaultError,
)


logger = logging.getLogger("capvault")
logger.setLevel(logging.INFO)


# Most specific first: AccountAlreadyExists is an InvalidInput.
ERROR_STATUS: tuple[tuple[type[VaultError], int], ...] = (
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (AccountAlreadyExists, status.HTTP_409_CONFLICT),
    (InvalidInput, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InsufficientFunds, status.HTTP_409_CONFLICT),
    (CapExceeded, status.HTTP_409_CONFLICT),
    (PausedState, status.HTTP_409_CONFLICT),
    (TokenNotAllowed, status.HTTP_409_CONFLICT),
    (ReentrantCall, status.HTTP_409_CONFLICT),
    (AccountingUnderflow, status.HTTP_409_CONFLICT),
    (OraclePriceInvalid, status.HTTP_503_SERVICE_UNAVAILABLE),
    (ExternalTransferFailed, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: VaultError) -> int:
    for cls, code in ERROR_STATUS:
        if isinstance(exc, cls):
            return code
    return status.HTTP_400_BAD_REQUEST


def create_app() -> FastAPI:
    app = FastAPI(
        title="capvault Custody API",
        version="1.0.0",
        openapi_url="/openapi.json",
        docs_url=None,
        redoc_url=None,
        description="Custodial native/token vault with a USD deposit cap and role-gated operations.",
    )

    app.include_router(api_router)

    @app.exception_handler(VaultError)
    async def vault_error_handler(request: Request, exc: VaultError) -> JSONResponse:
        return JSONResponse(
            status_code=status_for(exc),
            content={"detail": str(exc), "error": type(exc).__name__},
        )

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        start = time.time()
        try:
            response = await call_next(request)
        except OperationalError:
            return JSONResponse(
                status_code=503,
                content={"detail": "Service temporarily unavailable.", "error": "ServiceUnavailable"},
                headers={"x-request-id": request_id},
            )
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal error.", "error": "InternalError"},
                headers={"x-request-id": request_id},
            )

        duration_ms = int((time.time() - start) * 1000)
        response.headers["x-request-id"] = request_id

        # Structured access log (no credentials, no bodies).
        logger.info(
            json.dumps(
                {
                    "event": "access",
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": getattr(response, "status_code", None),
                    "duration_ms": duration_ms,
                }
            )
        )
        return response

    return app


app = create_app()
