"""Route handlers for rate lookups, conversions, and client maintenance."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from flask.views import MethodView

from fxclient.errors import APIError, fx_error_body
from fxclient.fx.endpoints import format_date
from fxclient.fx.errors import ConversionFailedError
from fxclient.fx.schemas import ConversionResult, RateSnapshot
from fxclient.schemas import (
    CacheStatsSchema,
    CircuitStateSchema,
    ConversionResultSchema,
    ConvertQuerySchema,
    CurrencyFilterSchema,
    DateRatesSchema,
    LocalConvertQuerySchema,
    SnapshotSchema,
    SymbolsSchema,
    TimeframeQuerySchema,
    TimeframeRatesSchema,
)
from fxclient.services import get_fx
from fxclient.services.fx_conversion import normalize_currency

from . import blp


def _split_currencies(raw: str | None) -> list[str] | None:
    if not raw:
        return None
    codes = [normalize_currency(code) for code in raw.split(",") if code.strip()]
    return codes or None


def _snapshot_payload(snapshot: RateSnapshot) -> dict[str, Any]:
    return {
        "base": snapshot.base,
        "rates": dict(snapshot.rates),
        "fetched_at": snapshot.fetched_at.isoformat(),
        "is_estimated": snapshot.is_estimated,
        "source": snapshot.source,
    }


def _conversion_payload(result: ConversionResult) -> dict[str, Any]:
    payload = asdict(result)
    payload["as_of"] = result.as_of.isoformat()
    return payload


def _circuit_payload() -> dict[str, Any]:
    state = get_fx().service.state()
    return {
        "circuit_open": state.is_circuit_open,
        "consecutive_auth_failures": state.consecutive_auth_failures,
        "last_error": fx_error_body(state.last_error) if state.last_error else None,
    }


def _cache_payload(removed: int | None = None) -> dict[str, Any]:
    service = get_fx().service
    return {
        "memory_entries": service.memory_cache_count(),
        "disk_entries": service.disk_cache_count(),
        "removed": removed,
    }


@blp.route("/latest")
class LatestRates(MethodView):
    @blp.arguments(CurrencyFilterSchema, location="query")
    @blp.response(200, SnapshotSchema())
    def get(self, query_params):
        fx = get_fx()
        codes = _split_currencies(query_params.get("currencies"))
        snapshot = fx.run(fx.service.fetch_latest_rates(codes))
        if snapshot is None:
            error = fx.service.last_error
            if error is not None:
                raise error
            raise APIError("Latest rates unavailable.", status_code=503)
        return _snapshot_payload(snapshot)


@blp.route("/snapshot")
class CurrentSnapshot(MethodView):
    @blp.response(200, SnapshotSchema())
    def get(self):
        """Return the in-memory snapshot without touching the network."""

        snapshot = get_fx().service.fresh_snapshot()
        if snapshot is None:
            raise APIError("No rates loaded yet.", status_code=404)
        return _snapshot_payload(snapshot)


@blp.route("/historical/<string:on>")
class HistoricalRates(MethodView):
    @blp.arguments(CurrencyFilterSchema, location="query")
    @blp.response(200, DateRatesSchema())
    def get(self, query_params, on: str):
        try:
            requested = format_date(on)
        except ValueError as exc:
            raise APIError("Date must use the YYYY-MM-DD format.", status_code=400) from exc

        fx = get_fx()
        codes = _split_currencies(query_params.get("currencies"))
        response = fx.run(fx.service.fetch_historical_rate(requested, codes))
        return asdict(response)


@blp.route("/timeframe")
class TimeframeRates(MethodView):
    @blp.arguments(TimeframeQuerySchema, location="query")
    @blp.response(200, TimeframeRatesSchema())
    def get(self, query_params):
        fx = get_fx()
        codes = _split_currencies(query_params.get("currencies"))
        response = fx.run(
            fx.service.fetch_timeframe(query_params["start"], query_params["end"], codes)
        )
        return asdict(response)


@blp.route("/symbols")
class Symbols(MethodView):
    @blp.response(200, SymbolsSchema())
    def get(self):
        fx = get_fx()
        return {"symbols": fx.run(fx.service.fetch_symbols())}


@blp.route("/convert")
class Convert(MethodView):
    @blp.arguments(ConvertQuerySchema, location="query")
    @blp.response(200, ConversionResultSchema())
    def get(self, query_params):
        fx = get_fx()
        result = fx.run(
            fx.engine.convert(
                query_params["amount"],
                query_params["from_currency"],
                query_params["to_currency"],
                query_params.get("date"),
            )
        )
        return _conversion_payload(result)


@blp.route("/convert/local")
class ConvertLocal(MethodView):
    @blp.arguments(LocalConvertQuerySchema, location="query")
    @blp.response(200, ConversionResultSchema())
    def get(self, query_params):
        """Convert with the in-memory snapshot only; never calls the API."""

        source = query_params["from_currency"]
        target = query_params["to_currency"]
        fx = get_fx()
        result = fx.call(
            fx.engine.convert_locally_if_possible, query_params["amount"], source, target
        )
        if result is None:
            raise ConversionFailedError(normalize_currency(source), normalize_currency(target))
        return _conversion_payload(result)


@blp.route("/circuit/reset")
class CircuitReset(MethodView):
    @blp.response(200, CircuitStateSchema())
    def post(self):
        fx = get_fx()
        fx.call(fx.service.reset_circuit_breaker)
        return _circuit_payload()


@blp.route("/cache")
class Cache(MethodView):
    @blp.response(200, CacheStatsSchema())
    def delete(self):
        fx = get_fx()
        fx.run(fx.service.clear_cache())
        return _cache_payload()


@blp.route("/cache/sweep")
class CacheSweep(MethodView):
    @blp.response(200, CacheStatsSchema())
    def post(self):
        fx = get_fx()
        removed = fx.run(fx.service.clear_expired_cache())
        return _cache_payload(removed)
