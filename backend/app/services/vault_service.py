"""Process-wide vault wiring.

Builds the single TransferEngine used by the API from settings: one price feed, the
asset transports, and the optional Redis event sink.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from app.core.db import get_session_factory
from app.core.settings import VaultSettings, get_settings
from app.services.redis_client import RedisEventPublisher
from ledger.core.assets import NativeTransport, TokenDirectory
from ledger.core.engine import TransferEngine
from ledger.core.oracle import HttpPriceFeed, PriceFeed, PriceOracleAdapter, StaticPriceFeed
from ledger.core.simulated import SimulatedNativeTransport

logger = logging.getLogger(__name__)


def build_price_feed(settings: VaultSettings) -> PriceFeed:
    if settings.price_feed_url:
        return HttpPriceFeed(settings.price_feed_url)
    if settings.static_price is not None:
        return StaticPriceFeed(settings.static_price)
    raise RuntimeError("No price source configured: set VAULT_PRICE_FEED_URL or VAULT_STATIC_PRICE.")


def build_vault(
    settings: VaultSettings,
    session_factory: sessionmaker[Session],
    *,
    native: Optional[NativeTransport] = None,
    tokens: Optional[TokenDirectory] = None,
) -> TransferEngine:
    """Assemble the engine. Without explicit transports, assets are simulated in-process."""
    if native is None:
        logger.warning("no native transport configured; using the simulated transport")
        native = SimulatedNativeTransport()
    publisher = RedisEventPublisher.from_url(settings.redis_url) if settings.redis_url else None
    return TransferEngine(
        session_factory,
        oracle=PriceOracleAdapter(build_price_feed(settings), native_decimals=settings.native_decimals),
        native=native,
        tokens=tokens or TokenDirectory(),
        custody=settings.custody_id,
        publisher=publisher,
    )


@lru_cache(maxsize=1)
def get_vault() -> TransferEngine:
    return build_vault(get_settings(), get_session_factory())
