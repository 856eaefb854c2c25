from __future__ import annotations

from unittest.mock import MagicMock

import responses

from fxclient.services import get_fx
from fxclient.services import scheduler as scheduler_module
from fxclient.services.scheduler import (
    SCHEDULER_EXT_KEY,
    ensure_maintenance_state,
    init_scheduler,
    run_cache_sweep,
    run_latest_refresh,
)

BASE_URL = "https://rates.test"


def test_scheduler_disabled_in_testing(app):
    assert init_scheduler(app) is None
    assert SCHEDULER_EXT_KEY not in app.extensions


def test_init_scheduler_registers_cron_jobs(app, monkeypatch):
    fake = MagicMock()
    monkeypatch.setattr(scheduler_module, "BackgroundScheduler", lambda **_: fake)
    monkeypatch.setattr(scheduler_module.atexit, "register", lambda *args: None)
    app.config["SCHEDULER_ENABLED"] = True
    app.config["FX_REFRESH_CRON"] = ""

    result = init_scheduler(app)

    assert result is fake
    assert app.extensions[SCHEDULER_EXT_KEY] is fake
    job_ids = [call.kwargs["id"] for call in fake.add_job.call_args_list]
    assert job_ids == ["sweep_fx_cache"]
    fake.start.assert_called_once()


@responses.activate
def test_run_latest_refresh_records_success(app):
    responses.add(
        responses.GET,
        f"{BASE_URL}/fx/latest",
        json={"base": "USD", "rates": {"EUR": 0.92}, "source": "kv"},
    )

    assert run_latest_refresh(app) is True

    state = ensure_maintenance_state(app)
    assert state["last_refresh_success"] is not None
    assert get_fx(app).service.current_rates.base == "USD"


@responses.activate
def test_run_latest_refresh_records_failure(app):
    responses.add(responses.GET, f"{BASE_URL}/fx/latest", status=500)

    assert run_latest_refresh(app) is False

    assert ensure_maintenance_state(app)["last_refresh_failure"] is not None


def test_run_cache_sweep_reports_removed_count(app):
    removed = run_cache_sweep(app)

    state = ensure_maintenance_state(app)
    assert removed == 0
    assert state["last_sweep_removed"] == 0
    assert state["last_sweep"] is not None


def test_ensure_maintenance_state_replaces_invalid_value(app):
    app.extensions["fx_maintenance_state"] = "broken"

    state = ensure_maintenance_state(app)

    assert state == {}
    assert app.extensions["fx_maintenance_state"] is state
