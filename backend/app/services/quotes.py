"""Reference rate (USD-BRL) sources used by the automation run."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Protocol

import httpx

from app.config import AppSettings
from finance_cloud.errors import UpstreamUnavailable
from finance_cloud.models import ZERO, to_decimal

logger = logging.getLogger(__name__)


class ReferenceRateSource(Protocol):
    async def fetch_reference_rate(self) -> Decimal:
        ...


class StaticRateSource:
    """Returns a fixed rate; ``0`` means the rate is unavailable."""

    def __init__(self, rate: Any = ZERO):
        self._rate = to_decimal(rate)

    async def fetch_reference_rate(self) -> Decimal:
        return self._rate


class AwesomeApiRateSource:
    """Single GET against the AwesomeAPI last-quote endpoint, reading ``USDBRL.bid``."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def fetch_reference_rate(self) -> Decimal:
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.get(self._url, headers={"Accept": "application/json"})
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise UpstreamUnavailable(f"Quote source returned HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Quote source request failed: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable("Quote source returned invalid JSON") from exc

        quote = payload.get("USDBRL") if isinstance(payload, dict) else None
        bid = quote.get("bid") if isinstance(quote, dict) else None
        rate = to_decimal(bid)
        if rate <= 0:
            raise UpstreamUnavailable("Quote source response has no usable USDBRL.bid")
        return rate


def build_rate_source(settings: AppSettings) -> ReferenceRateSource:
    if not settings.quote_url:
        return StaticRateSource(ZERO)
    return AwesomeApiRateSource(settings.quote_url, timeout=settings.quote_timeout_seconds)


async def resolve_reference_rate(source: ReferenceRateSource) -> Decimal:
    """Fetch the rate once; any failure yields ``0`` (rate unavailable)."""

    try:
        return to_decimal(await source.fetch_reference_rate())
    except Exception as exc:  # soft dependency: the run continues without a rate
        logger.warning("Reference rate unavailable: %s", exc)
        return ZERO


__all__ = [
    "AwesomeApiRateSource",
    "ReferenceRateSource",
    "StaticRateSource",
    "build_rate_source",
    "resolve_reference_rate",
]
