from __future__ import annotations

import httpx
import pytest

from conftest import PRICE, UNIT
from ledger.core.errors import OraclePriceInvalid
from ledger.core.oracle import HttpPriceFeed, PriceOracleAdapter, StaticPriceFeed


def _http_feed(handler) -> HttpPriceFeed:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HttpPriceFeed("https://feed.test/eth-usd", client=client)


def test_usd_value_uses_eight_decimal_price():
    oracle = PriceOracleAdapter(StaticPriceFeed(PRICE))
    assert oracle.usd_value(10 * UNIT) == 20_000 * 10**8
    assert oracle.usd_value(UNIT // 2) == 1_000 * 10**8


def test_usd_value_floors_fractions():
    oracle = PriceOracleAdapter(StaticPriceFeed(3 * 10**8), native_decimals=2)
    # 0.01 native at $3 is $0.03.
    assert oracle.usd_value(1) == 3 * 10**6
    oracle = PriceOracleAdapter(StaticPriceFeed(1), native_decimals=2)
    assert oracle.usd_value(99) == 0


@pytest.mark.parametrize("answer", [0, -1])
def test_non_positive_price_is_invalid(answer):
    oracle = PriceOracleAdapter(StaticPriceFeed(answer))
    with pytest.raises(OraclePriceInvalid):
        oracle.latest_price()
    with pytest.raises(OraclePriceInvalid):
        oracle.usd_value(UNIT)


def test_static_feed_round_advances():
    feed = StaticPriceFeed(PRICE)
    first = feed.latest_round_data()
    feed.set_answer(PRICE + 1, updated_at=1_700_000_000)
    second = feed.latest_round_data()
    assert second.round_id == first.round_id + 1
    assert second.answer == PRICE + 1
    assert second.updated_at == 1_700_000_000


def test_http_feed_reads_round_data():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/eth-usd"
        return httpx.Response(
            200,
            json={"roundId": 7, "answer": PRICE, "startedAt": 1, "updatedAt": 2, "answeredInRound": 7},
        )

    data = _http_feed(handler).latest_round_data()
    assert data.round_id == 7
    assert data.answer == PRICE
    assert data.updated_at == 2


def test_http_feed_errors_become_invalid_price():
    oracle = PriceOracleAdapter(_http_feed(lambda request: httpx.Response(503)))
    with pytest.raises(OraclePriceInvalid):
        oracle.latest_price()


def test_http_feed_malformed_body_is_invalid():
    feed = _http_feed(lambda request: httpx.Response(200, json={"price": "2000"}))
    with pytest.raises(OraclePriceInvalid):
        feed.latest_round_data()
