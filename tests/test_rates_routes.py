from __future__ import annotations

import requests
import responses

from fxclient.services import get_fx

BASE_URL = "https://rates.test"
LATEST_URL = f"{BASE_URL}/fx/latest"
CONVERT_URL = f"{BASE_URL}/fx/convert"

LATEST_BODY = {
    "base": "USD",
    "dateUsed": "2025-10-16",
    "rates": {"EUR": 0.92, "DOP": 59.1},
    "isEstimated": False,
    "source": "kv",
}


@responses.activate
def test_latest_returns_snapshot(client):
    responses.add(responses.GET, LATEST_URL, json=LATEST_BODY)

    response = client.get("/rates/latest?currencies=eur,dop")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["base"] == "USD"
    assert payload["rates"] == {"EUR": 0.92, "DOP": 59.1}
    assert payload["source"] == "kv"
    assert payload["is_estimated"] is False
    assert "currencies=EUR%2CDOP" in responses.calls[0].request.url


@responses.activate
def test_latest_unauthorized_opens_circuit_then_reset(client):
    responses.add(
        responses.GET,
        LATEST_URL,
        json={"error": {"code": "unauthorized", "message": "expired", "requestId": "req-401"}},
        status=401,
    )

    first = client.get("/rates/latest")
    second = client.get("/rates/latest")

    assert first.status_code == 503
    assert first.get_json()["code"] == "circuit_open"
    assert first.get_json()["request_id"] == "req-401"
    assert second.status_code == 503
    assert len(responses.calls) == 1

    reset = client.post("/rates/circuit/reset")

    assert reset.status_code == 200
    assert reset.get_json() == {
        "circuit_open": False,
        "consecutive_auth_failures": 0,
        "last_error": None,
    }


def test_latest_without_token_returns_503(client, monkeypatch):
    monkeypatch.delenv("FX_API_TOKEN")

    response = client.get("/rates/latest")

    assert response.status_code == 503
    assert response.get_json()["code"] == "no_token"


@responses.activate
def test_latest_rate_limited_returns_429(client):
    responses.add(responses.GET, LATEST_URL, status=429)

    response = client.get("/rates/latest")

    assert response.status_code == 429
    assert response.get_json()["code"] == "rate_limited"


@responses.activate
def test_latest_network_failure_returns_502(client):
    responses.add(responses.GET, LATEST_URL, body=requests.exceptions.ConnectionError("offline"))

    response = client.get("/rates/latest")

    assert response.status_code == 502
    assert response.get_json()["code"] == "network_unavailable"


def test_latest_rejects_invalid_currency(client):
    response = client.get("/rates/latest?currencies=EURO")

    assert response.status_code == 422
    assert response.get_json()["code"] == "unsupported_currency"


@responses.activate
def test_snapshot_requires_loaded_rates(client):
    responses.add(responses.GET, LATEST_URL, json=LATEST_BODY)

    assert client.get("/rates/snapshot").status_code == 404

    client.get("/rates/latest")
    response = client.get("/rates/snapshot")

    assert response.status_code == 200
    assert response.get_json()["rates"]["DOP"] == 59.1
    assert len(responses.calls) == 1


@responses.activate
def test_historical_rates(client):
    responses.add(
        responses.GET,
        f"{BASE_URL}/fx/date/2024-01-05",
        json={"base": "USD", "dateUsed": "2024-01-04", "requestedDate": "2024-01-05",
              "rates": {"EUR": 0.91}, "isEstimated": True},
    )

    response = client.get("/rates/historical/2024-01-05?currencies=EUR")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["date_used"] == "2024-01-04"
    assert payload["is_estimated"] is True


def test_historical_rejects_malformed_date(client):
    response = client.get("/rates/historical/05-01-2024")

    assert response.status_code == 400


@responses.activate
def test_historical_upstream_not_found_passes_through(client):
    responses.add(
        responses.GET,
        f"{BASE_URL}/fx/date/1900-01-01",
        json={"error": {"message": "No data for date"}},
        status=404,
    )

    response = client.get("/rates/historical/1900-01-01")

    assert response.status_code == 404
    assert response.get_json()["message"] == "No data for date"


@responses.activate
def test_timeframe_rates(client):
    responses.add(
        responses.GET,
        f"{BASE_URL}/fx/timeframe",
        json={"base": "USD", "start": "2024-01-01", "end": "2024-01-02",
              "ratesByDate": {"2024-01-01": {"EUR": 0.9}, "2024-01-02": {"EUR": 0.91}}},
    )

    response = client.get("/rates/timeframe?start=2024-01-01&end=2024-01-02")

    assert response.status_code == 200
    assert response.get_json()["rates_by_date"]["2024-01-02"] == {"EUR": 0.91}
    assert "start=2024-01-01" in responses.calls[0].request.url


def test_timeframe_rejects_inverted_range(client):
    response = client.get("/rates/timeframe?start=2024-02-01&end=2024-01-01")

    assert response.status_code == 422


@responses.activate
def test_symbols(client, load_json_fixture):
    responses.add(responses.GET, f"{BASE_URL}/fx/symbols", json=load_json_fixture("symbols.json"))

    first = client.get("/rates/symbols")
    second = client.get("/rates/symbols")

    assert first.status_code == 200
    assert first.get_json()["symbols"]["USD"] == "United States Dollar"
    assert second.get_json() == first.get_json()
    assert len(responses.calls) == 1


@responses.activate
def test_convert_identity_needs_no_network(client):
    response = client.get("/rates/convert?from=usd&to=USD&amount=12.5")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["converted_amount"] == 12.5
    assert payload["source"] == "identity"
    assert payload["from"] == "USD"
    assert len(responses.calls) == 0


@responses.activate
def test_convert_today_uses_latest_rates(client):
    responses.add(responses.GET, LATEST_URL, json=LATEST_BODY)

    response = client.get("/rates/convert?from=USD&to=DOP&amount=1000")

    assert response.status_code == 200
    payload = response.get_json()
    assert abs(payload["converted_amount"] - 59100.0) < 1e-6
    assert payload["to"] == "DOP"
    assert payload["source"] == "kv"


@responses.activate
def test_convert_historical_date(client, load_json_fixture):
    responses.add(responses.GET, CONVERT_URL, json=load_json_fixture("convert_historical.json"))

    response = client.get("/rates/convert?from=USD&to=EUR&amount=100&date=2024-01-15")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["converted_amount"] == 90.0
    assert payload["as_of"] == "2024-01-15"
    assert "date=2024-01-15" in responses.calls[0].request.url


@responses.activate
def test_convert_upstream_bad_request_passes_through(client):
    responses.add(
        responses.GET,
        CONVERT_URL,
        json={"error": {"message": "Unknown currency XYZ", "requestId": "req-400"}},
        status=400,
    )

    response = client.get("/rates/convert?from=USD&to=XYZ&amount=1&date=2024-01-15")

    assert response.status_code == 400
    assert response.get_json()["request_id"] == "req-400"


def test_convert_requires_amount(client):
    response = client.get("/rates/convert?from=USD&to=EUR")

    assert response.status_code == 422


def test_convert_local_without_snapshot_fails(client):
    response = client.get("/rates/convert/local?from=USD&to=EUR&amount=5")

    assert response.status_code == 422
    assert response.get_json()["code"] == "conversion_failed"


@responses.activate
def test_convert_local_uses_loaded_snapshot(client):
    responses.add(responses.GET, LATEST_URL, json=LATEST_BODY)
    client.get("/rates/latest")

    response = client.get("/rates/convert/local?from=DOP&to=EUR&amount=1000")

    assert response.status_code == 200
    assert abs(response.get_json()["converted_amount"] - 1000 * 0.92 / 59.1) < 1e-3
    assert len(responses.calls) == 1


@responses.activate
def test_cache_clear_and_sweep(client, app):
    responses.add(responses.GET, LATEST_URL, json=LATEST_BODY)
    client.get("/rates/latest")

    swept = client.post("/rates/cache/sweep")
    assert swept.status_code == 200
    assert swept.get_json() == {"memory_entries": 1, "disk_entries": 1, "removed": 0}

    cleared = client.delete("/rates/cache")
    assert cleared.status_code == 200
    assert cleared.get_json()["memory_entries"] == 0
    assert cleared.get_json()["disk_entries"] == 0
    assert get_fx(app).service.memory_cache_count() == 0


def test_openapi_document_lists_rate_routes(client):
    response = client.get("/docs/openapi.json")

    assert response.status_code == 200
    paths = response.get_json()["paths"]
    assert "/rates/latest" in paths
    assert "/rates/convert" in paths
    assert "/health/fx" in paths
