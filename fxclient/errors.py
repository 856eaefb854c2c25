"""Application-wide error utilities and handlers."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify

from fxclient.fx.errors import (
    CircuitOpenError,
    ConversionFailedError,
    FeatureDisabledError,
    FXApiError,
    FXError,
    NetworkUnavailableError,
    NoTokenError,
    RateLimitExceededError,
    StaleDataError,
    UnsupportedCurrencyError,
)
from fxclient.transport.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for API-level errors."""

    status_code: int = 400

    def __init__(
        self, message: str, *, status_code: int | None = None, payload: dict[str, Any] | None = None
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}


DEFAULT_STATUS_MESSAGES: dict[int, str] = {
    400: "Request could not be processed.",
    404: "Resource not found.",
    422: "Submitted data is invalid.",
    429: "Too many requests. Please try again shortly.",
    502: "Upstream rate service unavailable.",
    503: "Exchange rates temporarily unavailable.",
}

# Most specific classes first; the first isinstance match wins.
DOMAIN_STATUS_CODES: tuple[tuple[type[FXError], int], ...] = (
    (UnsupportedCurrencyError, 422),
    (ConversionFailedError, 422),
    (RateLimitExceededError, 429),
    (CircuitOpenError, 503),
    (NoTokenError, 503),
    (FeatureDisabledError, 503),
    (StaleDataError, 503),
    (NetworkUnavailableError, 502),
    (FXApiError, 502),
)


def status_for(error: FXError) -> int:
    if isinstance(error, FXApiError):
        # Upstream client errors describe the caller's request, not an outage.
        if isinstance(error.error, BadRequestError):
            return 400
        if isinstance(error.error, NotFoundError):
            return 404
    for error_cls, status in DOMAIN_STATUS_CODES:
        if isinstance(error, error_cls):
            return status
    return 500


def fx_error_body(error: FXError) -> dict[str, Any]:
    body: dict[str, Any] = {"message": error.message, "code": error.code}
    if error.request_id:
        body["request_id"] = error.request_id
    return body


def register_error_handlers(app: Flask) -> None:
    """Attach error handlers to the Flask application."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        message = error.message or DEFAULT_STATUS_MESSAGES.get(error.status_code, "Request failed.")
        response = {"message": message}
        if error.payload:
            response.update(error.payload)
        return jsonify(response), error.status_code

    @app.errorhandler(FXError)
    def handle_fx_error(error: FXError):
        status = status_for(error)
        logger.warning(
            "FX operation failed: %s",
            error.message,
            extra={
                "event": "fx.error",
                "code": error.code,
                "status": status,
                "upstream_request_id": error.request_id,
            },
        )
        return jsonify(fx_error_body(error)), status

    @app.errorhandler(TimeoutError)
    def handle_timeout(error: TimeoutError):
        return jsonify({"message": str(error) or DEFAULT_STATUS_MESSAGES[503]}), 503
