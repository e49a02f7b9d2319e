"""Authentication (token-based).

Design:
- Bearer JWT tokens (HS256) provisioned out-of-band; `sub` is the caller identity.
- Tokens carry no roles. Authorization is decided by the vault's role registry on
  every operation, so a revoked role takes effect immediately.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import time
from dataclasses import dataclass
from typing import Any

from fastapi import HTTPException, Request, status

from ledger.core.errors import InvalidInput
from ledger.core.validation import require_identity


class AuthError(HTTPException):
    pass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller extracted from token claims."""

    sub: str
    token_fingerprint: str  # stable, non-sensitive identifier for audit logs


def _b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _get_jwt_secret() -> bytes:
    secret = os.environ.get("VAULT_JWT_SECRET")
    if not secret:
        raise RuntimeError("Missing required env var VAULT_JWT_SECRET.")
    return secret.encode("utf-8")


def _hmac_sha256(key: bytes, msg: bytes) -> bytes:
    return hmac.new(key, msg, hashlib.sha256).digest()


def _unauthorized(detail: str) -> AuthError:
    return AuthError(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_and_verify_jwt(token: str) -> dict[str, Any]:
    """Verify HS256 JWT signature and minimal standard claims.

    Required claims:
    - sub: caller identity (vault address)
    Optional:
    - exp: unix epoch seconds
    """
    try:
        header_b64, payload_b64, sig_b64 = token.split(".")
    except ValueError as e:
        raise _unauthorized("Invalid token format.") from e

    signing_input = f"{header_b64}.{payload_b64}".encode("ascii")
    expected_sig = _b64url_encode(_hmac_sha256(_get_jwt_secret(), signing_input))
    if not hmac.compare_digest(expected_sig, sig_b64):
        raise _unauthorized("Invalid token signature.")

    try:
        header = json.loads(_b64url_decode(header_b64))
        payload = json.loads(_b64url_decode(payload_b64))
    except (ValueError, UnicodeDecodeError) as e:
        raise _unauthorized("Invalid token encoding.") from e

    if header.get("alg") != "HS256" or header.get("typ") != "JWT":
        raise _unauthorized("Unsupported token header.")

    exp = payload.get("exp")
    if exp is not None:
        try:
            exp_i = int(exp)
        except (TypeError, ValueError) as e:
            raise _unauthorized("Invalid exp claim.") from e
        if int(time.time()) >= exp_i:
            raise _unauthorized("Token expired.")

    if "sub" not in payload:
        raise _unauthorized("Missing required claims.")

    return payload


def token_fingerprint(token: str) -> str:
    """Non-reversible token fingerprint for audit logs."""
    raw = hashlib.sha256(token.encode("utf-8")).digest()
    return _b64url_encode(raw[:18])


def get_current_principal(request: Request) -> Principal:
    """Extract and validate bearer token, returning Principal."""
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        raise _unauthorized("Missing bearer token.")
    token = auth.split(" ", 1)[1].strip()
    if not token:
        raise _unauthorized("Missing bearer token.")

    claims = decode_and_verify_jwt(token)
    sub = str(claims["sub"]).strip()
    try:
        require_identity(sub, field="sub")
    except InvalidInput as e:
        raise _unauthorized("Invalid sub claim.") from e

    return Principal(sub=sub, token_fingerprint=token_fingerprint(token))
