"""Date-aware conversion engine built on top of :class:`FXService`."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime

from fxclient.fx.schemas import ConversionResult, ConvertResponse
from fxclient.utils.datetime import as_date, is_today

from .fx_conversion import convert_amount, extract_rate, normalize_currency, same_currency
from .rate_service import FXService

logger = logging.getLogger(__name__)

IDENTITY_SOURCE = "identity"


class FXEngine:
    """Routes conversions to live or historical data.

    * same currency: identity result, no I/O at all
    * today: latest snapshot (cache-first), falling back to ``/fx/convert``
    * any other day: ``/fx/convert`` with the date, never the latest cache
    """

    def __init__(self, service: FXService, today: Callable[[], date] = date.today) -> None:
        self._service = service
        self._today = today

    async def convert(
        self,
        amount: float,
        from_currency: str,
        to_currency: str,
        on: date | datetime | None = None,
    ) -> ConversionResult:
        on = on if on is not None else self._today()
        if same_currency(from_currency, to_currency):
            return _identity(amount, from_currency, on)

        source = normalize_currency(from_currency)
        target = normalize_currency(to_currency)

        if is_today(on, self._today()):
            await self._service.fetch_latest_rates([source, target])
            local = self._from_snapshot(amount, source, target)
            if local is not None:
                return local

            logger.info("No local rate for %s->%s; using server conversion", source, target)
            response = await self._service.convert(amount, source, target)
            return _from_response(response, amount, source, target, on, default_source="server")

        response = await self._service.convert(amount, source, target, as_date(on))
        return _from_response(response, amount, source, target, on, default_source="historical")

    def convert_locally_if_possible(
        self,
        amount: float,
        from_currency: str,
        to_currency: str,
    ) -> ConversionResult | None:
        if same_currency(from_currency, to_currency):
            return _identity(amount, from_currency, self._today())
        source = normalize_currency(from_currency)
        target = normalize_currency(to_currency)
        return self._from_snapshot(amount, source, target)

    def _from_snapshot(self, amount: float, source: str, target: str) -> ConversionResult | None:
        snapshot = self._service.current_rates
        if snapshot is None:
            return None
        rate = extract_rate(source, target, snapshot.base, snapshot.rates)
        if rate is None:
            return None
        return ConversionResult(
            original_amount=float(amount),
            converted_amount=convert_amount(amount, rate),
            rate_used=rate,
            from_currency=source,
            to_currency=target,
            as_of=snapshot.fetched_at,
            source=snapshot.source,
            is_estimated=snapshot.is_estimated,
        )


def _identity(amount: float, currency: str, on: date) -> ConversionResult:
    currency = str(currency).strip().upper()
    return ConversionResult(
        original_amount=float(amount),
        converted_amount=float(amount),
        rate_used=1.0,
        from_currency=currency,
        to_currency=currency,
        as_of=on,
        source=IDENTITY_SOURCE,
        is_estimated=False,
    )


def _from_response(
    response: ConvertResponse,
    amount: float,
    source: str,
    target: str,
    on: date,
    *,
    default_source: str,
) -> ConversionResult:
    return ConversionResult(
        original_amount=float(amount),
        converted_amount=response.result,
        rate_used=response.rate,
        from_currency=source,
        to_currency=target,
        as_of=on,
        source=response.source or default_source,
        is_estimated=bool(response.is_estimated),
    )
