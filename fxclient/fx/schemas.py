"""Dataclasses and marshmallow schemas for FX API payloads."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from marshmallow import EXCLUDE, Schema, fields, post_load, pre_load

from fxclient.utils.datetime import ensure_utc, utc_now

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


@dataclass(frozen=True)
class RateSnapshot:
    """Immutable set of latest rates, replaced wholesale on every fetch."""

    base: str
    rates: Mapping[str, float]
    fetched_at: datetime
    is_estimated: bool = False
    source: str = "unknown"

    def __post_init__(self) -> None:
        rates = {str(k): float(v) for k, v in self.rates.items()}
        object.__setattr__(self, "rates", MappingProxyType(rates))
        object.__setattr__(self, "fetched_at", ensure_utc(self.fetched_at))

    @property
    def age(self) -> float:
        return (utc_now() - self.fetched_at).total_seconds()

    def is_expired(self, ttl: float) -> bool:
        return self.age > ttl


@dataclass(frozen=True)
class ConversionResult:
    original_amount: float
    converted_amount: float
    rate_used: float
    from_currency: str
    to_currency: str
    as_of: date
    source: str
    is_estimated: bool = False


@dataclass(frozen=True)
class LatestResponse:
    base: str
    rates: Dict[str, float]
    date_used: Optional[str] = None
    requested_date: Optional[str] = None
    provider: Optional[str] = None
    fetched_at: Optional[str] = None
    is_estimated: Optional[bool] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class DateResponse(LatestResponse):
    """Historical rates for one date; the server may fall back to a prior day."""


@dataclass(frozen=True)
class TimeframeResponse:
    base: str
    start: str
    end: str
    rates_by_date: Dict[str, Dict[str, float]] = field(default_factory=dict)
    provider: Optional[str] = None
    fetched_at: Optional[str] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class ConvertResponse:
    from_currency: str
    to_currency: str
    amount: float
    rate: float
    result: float
    base: str
    requested_date: Optional[str] = None
    date_used: Optional[str] = None
    provider: Optional[str] = None
    fetched_at: Optional[str] = None
    is_estimated: Optional[bool] = None
    source: Optional[str] = None


@dataclass(frozen=True)
class SymbolsResponse:
    symbols: Dict[str, str]
    provider: Optional[str] = None
    fetched_at: Optional[str] = None
    source: Optional[str] = None


class _ResponseSchema(Schema):
    """Accepts snake_case or camelCase top-level keys; nested keys stay untouched."""

    class Meta:
        unknown = EXCLUDE

    @pre_load
    def _normalize_keys(self, data: Any, **_kwargs: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {_to_snake(str(key)): value for key, value in data.items()}


class _ProvenanceMixin:
    provider = fields.String(load_default=None, allow_none=True)
    fetched_at = fields.String(load_default=None, allow_none=True)
    source = fields.String(load_default=None, allow_none=True)


class LatestResponseSchema(_ResponseSchema, _ProvenanceMixin):
    base = fields.String(required=True)
    date_used = fields.String(load_default=None, allow_none=True)
    rates = fields.Dict(keys=fields.String(), values=fields.Float(), required=True)
    requested_date = fields.String(load_default=None, allow_none=True)
    is_estimated = fields.Boolean(load_default=None, allow_none=True)

    @post_load
    def make(self, data: dict[str, Any], **_kwargs: Any) -> LatestResponse:
        return LatestResponse(**data)


class DateResponseSchema(LatestResponseSchema):
    @post_load
    def make(self, data: dict[str, Any], **_kwargs: Any) -> DateResponse:
        return DateResponse(**data)


class TimeframeResponseSchema(_ResponseSchema, _ProvenanceMixin):
    base = fields.String(required=True)
    start = fields.String(required=True)
    end = fields.String(required=True)
    rates_by_date = fields.Dict(
        keys=fields.String(),
        values=fields.Dict(keys=fields.String(), values=fields.Float()),
        required=True,
    )

    @post_load
    def make(self, data: dict[str, Any], **_kwargs: Any) -> TimeframeResponse:
        return TimeframeResponse(**data)


class ConvertResponseSchema(_ResponseSchema, _ProvenanceMixin):
    from_currency = fields.String(required=True, data_key="from")
    to_currency = fields.String(required=True, data_key="to")
    amount = fields.Float(required=True)
    rate = fields.Float(required=True)
    result = fields.Float(required=True)
    base = fields.String(required=True)
    requested_date = fields.String(load_default=None, allow_none=True)
    date_used = fields.String(load_default=None, allow_none=True)
    is_estimated = fields.Boolean(load_default=None, allow_none=True)

    @post_load
    def make(self, data: dict[str, Any], **_kwargs: Any) -> ConvertResponse:
        return ConvertResponse(**data)


class SymbolsResponseSchema(_ResponseSchema, _ProvenanceMixin):
    symbols = fields.Dict(keys=fields.String(), values=fields.String(), required=True)

    @post_load
    def make(self, data: dict[str, Any], **_kwargs: Any) -> SymbolsResponse:
        return SymbolsResponse(**data)
