"""Structured logging for the FX rate client.

Two outputs are supported: a plain ``logging.Formatter`` for development and
:class:`JSONLogFormatter` for production. In both cases extras whose names look
like credentials are replaced before a record reaches a handler, so a bearer
token passed as ``extra={"authorization": ...}`` never ends up in a log line.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any

from flask import Flask, g, has_request_context, request
from werkzeug.exceptions import HTTPException

REQUEST_ID_HEADER = "X-Request-ID"
REDACTED = "<redacted>"
SENSITIVE_EXTRA_MARKERS = ("authorization", "token", "secret", "password")

DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_CONFIGURED_FLAG = "_fx_logging_configured"
_REQUEST_HOOKS_FLAG = "_fx_request_logging_configured"

# Attributes every LogRecord carries; anything else was passed through ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime"}


def is_sensitive(key: str) -> bool:
    lowered = key.lower()
    return any(marker in lowered for marker in SENSITIVE_EXTRA_MARKERS)


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Return the caller-supplied extras of ``record`` with credentials masked."""

    extras: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _STANDARD_ATTRS or key.startswith("_"):
            continue
        extras[key] = REDACTED if is_sensitive(key) else value
    return extras


class RedactingFilter(logging.Filter):
    """Mask sensitive extras in place so every formatter sees the masked value."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key in list(vars(record)):
            if key not in _STANDARD_ATTRS and is_sensitive(key):
                setattr(record, key, REDACTED)
        return True


class JSONLogFormatter(logging.Formatter):
    """Render a record as one compact JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        payload.update(record_extras(record))
        return json.dumps(payload, separators=(",", ":"), default=str)


def setup_logging(app: Flask) -> None:
    """Route all application logging through a single root handler."""

    if app.config.get(_CONFIGURED_FLAG):
        return

    level = _level_from(app.config.get("LOG_LEVEL"))
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(RedactingFilter())
    if _flag(app.config.get("LOG_JSON_ENABLED")):
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(app.config.get("LOG_FORMAT") or DEFAULT_FORMAT))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Flask and werkzeug propagate to root instead of printing twice.
    for logger in (app.logger, logging.getLogger("werkzeug")):
        logger.handlers.clear()
        logger.setLevel(level)
        logger.propagate = True

    app.config[_CONFIGURED_FLAG] = True


def init_request_logging(app: Flask) -> None:
    """Log one line per inbound request and echo its correlation id."""

    if app.config.get(_REQUEST_HOOKS_FLAG):
        return

    app.before_request(_begin_request)

    @app.after_request
    def _finish_request(response):
        if g.get("request_id"):
            response.headers.setdefault(REQUEST_ID_HEADER, g.request_id)
        app.logger.info(
            "Request handled",
            extra=_request_extra("request.completed", response.status_code),
        )
        g._request_logged = True
        return response

    @app.teardown_request
    def _fail_request(exc: BaseException | None):
        if exc is None or g.get("_request_logged"):
            return
        status = exc.code if isinstance(exc, HTTPException) and exc.code else 500
        app.logger.error(
            "Request failed",
            extra=_request_extra("request.failed", status, error=str(exc)),
        )
        g._request_logged = True

    app.config[_REQUEST_HOOKS_FLAG] = True


def _begin_request() -> None:
    g.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    g.request_started = time.perf_counter()
    g._request_logged = False


def _request_extra(event: str, status: int, *, error: str | None = None) -> dict[str, Any]:
    started = g.get("request_started")
    extra: dict[str, Any] = {
        "event": event,
        "route": request.url_rule.rule if request.url_rule else request.path,
        "method": request.method,
        "path": request.path,
        "status": status,
        "request_id": g.get("request_id"),
        "duration_ms": _elapsed_ms(started) if started is not None else None,
        "client_ip": request.remote_addr,
        "error": error,
        "source": "api",
    }
    return _without_none(extra)


def transport_log_extra(
    *,
    endpoint: Any,
    status: str,
    attempt: int,
    duration_ms: float | None,
    request_id: str | None = None,
) -> dict[str, Any]:
    """Extras for one upstream FX call.

    Only method, path and cache key describe the request; headers are never
    included. When called while serving a Flask request, the inbound
    correlation id is attached as ``request_id``.
    """

    inbound = g.get("request_id") if has_request_context() else None
    return _without_none(
        {
            "event": "fx.request",
            "method": endpoint.method.value,
            "path": endpoint.path,
            "cache_key": endpoint.cache_key,
            "status": status,
            "attempt": attempt,
            "duration_ms": round(duration_ms, 3) if duration_ms is not None else None,
            "upstream_request_id": request_id,
            "request_id": inbound,
            "source": "fx",
        }
    )


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 3)


def _without_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def _level_from(value: Any) -> int:
    if isinstance(value, int):
        return value
    if not value:
        return logging.INFO
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else logging.INFO


def _flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}
