"""Vault settings (environment variables only).

Loaded once per process after `.env` files are applied. Invalid values fail fast with
the offending variable name; nothing falls back silently.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from app.core.env import load_env_if_present


class VaultSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    custody_id: str = Field(min_length=1, max_length=128)
    admin_id: Optional[str] = Field(default=None, max_length=128)
    bank_cap_usd: Optional[int] = Field(default=None, gt=0)
    native_decimals: int = Field(default=18, ge=0, le=77)
    price_feed_url: Optional[str] = None
    static_price: Optional[int] = None
    redis_url: Optional[str] = None

    @model_validator(mode="after")
    def _one_price_source(self) -> "VaultSettings":
        if self.price_feed_url and self.static_price is not None:
            raise ValueError("Set only one of VAULT_PRICE_FEED_URL and VAULT_STATIC_PRICE.")
        return self


_ENV_FIELDS = {
    "VAULT_CUSTODY_ID": "custody_id",
    "VAULT_ADMIN_ID": "admin_id",
    "VAULT_BANK_CAP_USD": "bank_cap_usd",
    "VAULT_NATIVE_DECIMALS": "native_decimals",
    "VAULT_PRICE_FEED_URL": "price_feed_url",
    "VAULT_STATIC_PRICE": "static_price",
    "REDIS_URL": "redis_url",
}


def settings_from_env(environ: Optional[dict[str, str]] = None) -> VaultSettings:
    env = os.environ if environ is None else environ
    if "VAULT_CUSTODY_ID" not in env:
        raise RuntimeError("Missing required env var VAULT_CUSTODY_ID.")
    values = {field: env[var] for var, field in _ENV_FIELDS.items() if env.get(var)}
    try:
        return VaultSettings(**values)
    except ValidationError as e:
        names = {field: var for var, field in _ENV_FIELDS.items()}
        bad = sorted(names.get(str(err["loc"][0]), str(err["loc"][0])) for err in e.errors() if err["loc"])
        raise RuntimeError(f"Invalid vault settings ({', '.join(bad) or 'model'}): {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> VaultSettings:
    load_env_if_present()
    return settings_from_env()
