"""Reference rate sources."""

from __future__ import annotations

from decimal import Decimal

import httpx
import pytest

from app.config import AppSettings
from app.services.quotes import (
    AwesomeApiRateSource,
    StaticRateSource,
    build_rate_source,
    resolve_reference_rate,
)
from finance_cloud.errors import UpstreamUnavailable

QUOTE_URL = "https://quotes.test/json/last/USD-BRL"


def _source(handler) -> AwesomeApiRateSource:
    return AwesomeApiRateSource(QUOTE_URL, transport=httpx.MockTransport(handler))


async def test_reads_bid_from_payload():
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"USDBRL": {"code": "USD", "bid": "5.4321"}})

    rate = await _source(handler).fetch_reference_rate()

    assert rate == Decimal("5.4321")
    assert str(requests[0].url) == QUOTE_URL


async def test_http_error_is_upstream_unavailable():
    source = _source(lambda request: httpx.Response(503, text="busy"))

    with pytest.raises(UpstreamUnavailable):
        await source.fetch_reference_rate()


async def test_invalid_payloads_are_upstream_unavailable():
    for response in (
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"USDBRL": {"bid": "0"}}),
        httpx.Response(200, json=[1, 2, 3]),
    ):
        source = _source(lambda request, response=response: response)
        with pytest.raises(UpstreamUnavailable):
            await source.fetch_reference_rate()


async def test_resolve_falls_back_to_zero():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert await resolve_reference_rate(_source(handler)) == Decimal("0")
    assert await resolve_reference_rate(StaticRateSource("5.1")) == Decimal("5.1")


def test_build_rate_source_without_url_is_static():
    source = build_rate_source(AppSettings(quote_url=None))
    live = build_rate_source(AppSettings(quote_url=QUOTE_URL))

    assert isinstance(source, StaticRateSource)
    assert isinstance(live, AwesomeApiRateSource)


class _BrokenSource:
    async def fetch_reference_rate(self) -> Decimal:
        raise RuntimeError("dns exploded")


async def test_resolve_treats_any_failure_as_unavailable():
    assert await resolve_reference_rate(_BrokenSource()) == Decimal("0")
