from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
from freezegun import freeze_time
from marshmallow import ValidationError

from fxclient.fx.schemas import (
    ConvertResponseSchema,
    DateResponse,
    DateResponseSchema,
    LatestResponseSchema,
    RateSnapshot,
    SymbolsResponseSchema,
    TimeframeResponseSchema,
)


def test_latest_schema_accepts_camel_case(load_json_fixture):
    payload = load_json_fixture("latest_usd.json")

    result = LatestResponseSchema().load(payload)

    assert result.base == "USD"
    assert result.date_used == "2025-10-16"
    assert result.is_estimated is False
    assert result.fetched_at == "2025-10-16T12:00:00Z"
    assert result.provider == "openexchangerates"


def test_latest_schema_accepts_snake_case_and_ignores_unknown_keys():
    payload = {
        "base": "EUR",
        "date_used": "2025-10-16",
        "rates": {"USD": "1.08"},
        "is_estimated": True,
        "cache_hit": True,
    }

    result = LatestResponseSchema().load(payload)

    assert result.rates == {"USD": 1.08}
    assert result.is_estimated is True


def test_latest_schema_requires_rates():
    with pytest.raises(ValidationError):
        LatestResponseSchema().load({"base": "USD"})


def test_date_schema_builds_date_response():
    result = DateResponseSchema().load(
        {"base": "USD", "dateUsed": "2024-01-04", "requestedDate": "2024-01-05", "rates": {"EUR": 0.9}}
    )

    assert isinstance(result, DateResponse)
    assert result.requested_date == "2024-01-05"


def test_timeframe_nested_keys_are_untouched():
    result = TimeframeResponseSchema().load(
        {
            "base": "USD",
            "start": "2024-01-01",
            "end": "2024-01-01",
            "ratesByDate": {"2024-01-01": {"EUR": 0.9}},
        }
    )

    assert result.rates_by_date == {"2024-01-01": {"EUR": 0.9}}


def test_convert_schema_maps_from_and_to(load_json_fixture):
    result = ConvertResponseSchema().load(load_json_fixture("convert_historical.json"))

    assert result.from_currency == "USD"
    assert result.to_currency == "EUR"
    assert result.rate == 0.9
    assert result.result == 90.0
    assert result.date_used == "2024-01-15"


def test_symbols_schema(load_json_fixture):
    result = SymbolsResponseSchema().load(load_json_fixture("symbols.json"))

    assert result.symbols["EUR"] == "Euro"
    assert result.fetched_at is None


def test_rate_snapshot_normalises_values():
    naive = datetime(2025, 10, 16, 12, 0)
    offset = datetime(2025, 10, 16, 14, 0, tzinfo=timezone(timedelta(hours=2)))

    first = RateSnapshot(base="USD", rates={"EUR": 1}, fetched_at=naive)
    second = RateSnapshot(base="USD", rates={"EUR": 1}, fetched_at=offset)

    assert first.rates == {"EUR": 1.0}
    assert first.fetched_at.tzinfo == UTC
    assert first.fetched_at == second.fetched_at
    assert first.source == "unknown"
    assert first.is_estimated is False


def test_rate_snapshot_is_immutable():
    snapshot = RateSnapshot(base="USD", rates={"EUR": 0.9}, fetched_at=datetime(2025, 1, 1, tzinfo=UTC))

    with pytest.raises(AttributeError):
        snapshot.base = "EUR"  # type: ignore[misc]


@freeze_time("2025-10-16 13:00:00")
def test_rate_snapshot_age_and_expiry():
    snapshot = RateSnapshot(
        base="USD",
        rates={"EUR": 0.9},
        fetched_at=datetime(2025, 10, 16, 12, 0, tzinfo=UTC),
    )

    assert snapshot.age == pytest.approx(3600.0)
    assert snapshot.is_expired(7200) is False
    assert snapshot.is_expired(1800) is True
