"""Scheduler setup for FX cache maintenance and periodic refresh."""

from __future__ import annotations

import atexit
import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from flask import Flask

from .extension import FXExtension, get_fx

logger = logging.getLogger(__name__)

SCHEDULER_EXT_KEY = "apscheduler"
MAINTENANCE_STATE_KEY = "fx_maintenance_state"


def ensure_maintenance_state(app: Flask) -> dict[str, Any]:
    """Ensure the maintenance state dict exists on app extensions."""

    state = app.extensions.setdefault(MAINTENANCE_STATE_KEY, {})
    if not isinstance(state, dict):
        new_state: dict[str, Any] = {}
        app.extensions[MAINTENANCE_STATE_KEY] = new_state
        return new_state
    return state


def run_cache_sweep(app: Flask) -> int:
    fx: FXExtension = get_fx(app)
    removed = fx.run(fx.service.clear_expired_cache())
    state = ensure_maintenance_state(app)
    state["last_sweep"] = datetime.now(UTC)
    state["last_sweep_removed"] = removed
    return removed


def run_latest_refresh(app: Flask) -> bool:
    fx: FXExtension = get_fx(app)
    snapshot = fx.run(fx.service.fetch_latest_rates())
    state = ensure_maintenance_state(app)
    if snapshot is None:
        state["last_refresh_failure"] = datetime.now(UTC)
        logger.error("Scheduled FX refresh failed: %s", fx.service.last_error)
        return False
    state["last_refresh_success"] = datetime.now(UTC)
    logger.info("Scheduled FX refresh completed using %s", snapshot.source)
    return True


def init_scheduler(app: Flask) -> BackgroundScheduler | None:
    """Initialise APScheduler with the cache sweep and refresh jobs if enabled."""

    ensure_maintenance_state(app)

    if not app.config.get("SCHEDULER_ENABLED", True):
        logger.info("Scheduler disabled via configuration.")
        return None

    if app.extensions.get(SCHEDULER_EXT_KEY):
        return app.extensions[SCHEDULER_EXT_KEY]

    scheduler = BackgroundScheduler(timezone=app.config.get("SCHEDULER_TIMEZONE", "UTC"))
    jobs = (
        ("sweep_fx_cache", app.config.get("FX_CACHE_SWEEP_CRON"), run_cache_sweep),
        ("refresh_fx_latest", app.config.get("FX_REFRESH_CRON"), run_latest_refresh),
    )
    for job_id, cron_expr, func in jobs:
        if not cron_expr:
            logger.info("Job %s disabled (no cron expression).", job_id)
            continue
        scheduler.add_job(
            func,
            trigger=CronTrigger.from_crontab(cron_expr),
            args=[app],
            id=job_id,
            replace_existing=True,
        )
        logger.info("Scheduled %s with cron '%s'", job_id, cron_expr)

    scheduler.start()
    atexit.register(_shutdown, scheduler)
    app.extensions[SCHEDULER_EXT_KEY] = scheduler
    return scheduler


def _shutdown(scheduler: BackgroundScheduler) -> None:
    if getattr(scheduler, "running", False):
        scheduler.shutdown(wait=False)
