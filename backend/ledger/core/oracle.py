"""Price oracle adapter.

Wraps exactly one native-asset/USD price source.

Rules:
- Prices carry 8 decimals.
- A price <= 0 is invalid and aborts the calling operation. There is no fallback to a
  stale or default price, and no second source.
- No freshness window is applied: `updated_at` is carried through for observability
  only. Feed staleness is a known, accepted gap.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Final, Optional, Protocol

import httpx

from ledger.core.errors import OraclePriceInvalid

logger = logging.getLogger(__name__)

PRICE_DECIMALS: Final[int] = 8
DEFAULT_NATIVE_DECIMALS: Final[int] = 18


@dataclass(frozen=True, slots=True)
class RoundData:
    """One price report as published by the feed."""

    round_id: int
    answer: int  # signed; USD price with PRICE_DECIMALS decimals
    started_at: int
    updated_at: int
    answered_in_round: int


class PriceFeed(Protocol):
    def latest_round_data(self) -> RoundData: ...


class StaticPriceFeed:
    """Settable in-process feed for development and tests."""

    def __init__(self, answer: int, *, updated_at: int = 0) -> None:
        self._round_id = 1
        self._answer = int(answer)
        self._updated_at = updated_at

    def set_answer(self, answer: int, *, updated_at: Optional[int] = None) -> None:
        self._round_id += 1
        self._answer = int(answer)
        if updated_at is not None:
            self._updated_at = updated_at

    def latest_round_data(self) -> RoundData:
        return RoundData(
            round_id=self._round_id,
            answer=self._answer,
            started_at=self._updated_at,
            updated_at=self._updated_at,
            answered_in_round=self._round_id,
        )


class HttpPriceFeed:
    """Price feed served as JSON over HTTP.

    Expected body (Chainlink `latestRoundData` field names):
        {"roundId": 1, "answer": 200000000000, "startedAt": 0,
         "updatedAt": 0, "answeredInRound": 1}
    """

    def __init__(self, url: str, *, client: Optional[httpx.Client] = None, timeout: float = 5.0) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    def latest_round_data(self) -> RoundData:
        try:
            resp = self._client.get(self._url)
            resp.raise_for_status()
            body: dict[str, Any] = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise OraclePriceInvalid(f"Price feed unavailable: {e}") from e

        try:
            return RoundData(
                round_id=int(body["roundId"]),
                answer=int(body["answer"]),
                started_at=int(body.get("startedAt", 0)),
                updated_at=int(body.get("updatedAt", 0)),
                answered_in_round=int(body.get("answeredInRound", body["roundId"])),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise OraclePriceInvalid(f"Malformed price report: {e}") from e

    def close(self) -> None:
        self._client.close()


class PriceOracleAdapter:
    """Latest native/USD price plus the pure amount → USD conversion."""

    def __init__(self, feed: PriceFeed, *, native_decimals: int = DEFAULT_NATIVE_DECIMALS) -> None:
        if native_decimals < 0:
            raise ValueError("native_decimals must be >= 0")
        self._feed = feed
        self.native_decimals = native_decimals
        self._native_scale = 10**native_decimals

    def latest_price(self) -> int:
        """Latest price (8 decimals). Raises OraclePriceInvalid if not strictly positive."""
        data = self._feed.latest_round_data()
        if data.answer <= 0:
            logger.warning("oracle reported non-positive price %s (round %s)", data.answer, data.round_id)
            raise OraclePriceInvalid(f"Oracle price must be positive (got {data.answer}).")
        return data.answer

    def usd_value(self, native_amount: int) -> int:
        """floor(native_amount * price / 10**native_decimals), 8-decimal USD."""
        return (native_amount * self.latest_price()) // self._native_scale
