"""Route handlers for health checks."""

from __future__ import annotations

from flask import current_app
from flask.views import MethodView

from fxclient.errors import fx_error_body
from fxclient.schemas import FXHealthSchema, HealthStatusSchema
from fxclient.services import get_fx

from . import blp


@blp.route("")
class HealthStatus(MethodView):
    @blp.response(200, HealthStatusSchema())
    def get(self):
        return {
            "status": "ok",
            "app": current_app.config.get("APP_NAME", "fx-rate-client"),
        }


@blp.route("/fx")
class HealthFX(MethodView):
    @blp.response(200, FXHealthSchema())
    def get(self):
        fx = get_fx()
        service = fx.service
        upstream = fx.run(service.check_health())
        state = service.state()

        snapshot = state.current_rates
        snapshot_info = None
        if snapshot is not None:
            snapshot_info = {
                "base": snapshot.base,
                "source": snapshot.source,
                "fetched_at": snapshot.fetched_at.isoformat(),
                "is_estimated": snapshot.is_estimated,
                "age_seconds": round(snapshot.age, 3),
                "currencies": len(snapshot.rates),
            }

        configured = service.is_configured
        healthy = upstream and configured and not state.is_circuit_open
        return {
            "status": "ok" if healthy else "degraded",
            "upstream": upstream,
            "enabled": service.settings.enabled,
            "configured": configured,
            "circuit_open": state.is_circuit_open,
            "consecutive_auth_failures": state.consecutive_auth_failures,
            "last_error": fx_error_body(state.last_error) if state.last_error else None,
            "memory_cache_entries": service.memory_cache_count(),
            "disk_cache_entries": service.disk_cache_count(),
            "snapshot": snapshot_info,
        }
