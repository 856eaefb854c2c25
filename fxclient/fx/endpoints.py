"""Endpoint catalog for the remote FX rate API."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from fxclient.transport.endpoint import HTTPEndpoint

from .settings import DEFAULT_LATEST_TTL, DEFAULT_SYMBOLS_TTL

DATE_FORMAT = "%Y-%m-%d"


def format_date(value: date | str) -> str:
    """Render ``value`` as ``YYYY-MM-DD``; strings are validated, not reformatted."""

    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    text = str(value).strip()
    date.fromisoformat(text)
    return text


def _currency_query(currencies: Sequence[str] | None) -> list[tuple[str, str]]:
    if not currencies:
        return []
    return [("currencies", ",".join(currencies))]


def health() -> HTTPEndpoint:
    """``GET /health``; the only call made without a token."""

    return HTTPEndpoint(path="/health", requires_auth=False)


def latest(
    currencies: Sequence[str] | None = None,
    *,
    ttl: float = DEFAULT_LATEST_TTL,
) -> HTTPEndpoint:
    return HTTPEndpoint(
        path="/fx/latest",
        query=tuple(_currency_query(currencies)),
        cache_ttl=ttl,
    )


def historical(on: date | str, currencies: Sequence[str] | None = None) -> HTTPEndpoint:
    return HTTPEndpoint(
        path=f"/fx/date/{format_date(on)}",
        query=tuple(_currency_query(currencies)),
    )


def timeframe(
    start: date | str,
    end: date | str,
    currencies: Sequence[str] | None = None,
) -> HTTPEndpoint:
    items = [("start", format_date(start)), ("end", format_date(end))]
    items.extend(_currency_query(currencies))
    return HTTPEndpoint(path="/fx/timeframe", query=tuple(items))


def convert(
    from_currency: str,
    to_currency: str,
    amount: float,
    on: date | str | None = None,
) -> HTTPEndpoint:
    items = [
        ("from", from_currency),
        ("to", to_currency),
        ("amount", repr(float(amount))),
    ]
    if on is not None:
        items.append(("date", format_date(on)))
    return HTTPEndpoint(path="/fx/convert", query=tuple(items))


def symbols(*, ttl: float = DEFAULT_SYMBOLS_TTL) -> HTTPEndpoint:
    return HTTPEndpoint(path="/fx/symbols", cache_ttl=ttl)
