"""Domain errors raised by the FX rate service."""

from __future__ import annotations

from datetime import datetime

from fxclient.transport.errors import (
    HTTPError,
    NetworkError,
    RateLimitedError,
    RequestTimeoutError,
    UnauthorizedError,
)


class FXError(Exception):
    """Base class for FX domain errors.

    ``request_id`` is the upstream correlation id when the error originated
    from a server response; it is ``None`` for locally detected conditions.
    """

    code = "fx_error"
    default_message = "Exchange rate service error."

    def __init__(self, message: str | None = None, *, request_id: str | None = None) -> None:
        self.message = message or self.default_message
        self.request_id = request_id
        super().__init__(self.message)


class FeatureDisabledError(FXError):
    code = "fx_disabled"
    default_message = "Exchange rates are disabled by configuration."


class NoTokenError(FXError):
    code = "no_token"
    default_message = "No API token is configured."


class CircuitOpenError(FXError):
    code = "circuit_open"
    default_message = "Exchange rate service disabled after an authentication failure."


class RateLimitExceededError(FXError):
    code = "rate_limited"
    default_message = "Too many requests. Try again later."


class StaleDataError(FXError):
    code = "stale_data"

    def __init__(self, last_fetched: datetime, *, request_id: str | None = None) -> None:
        self.last_fetched = last_fetched
        super().__init__(
            f"Exchange rates are out of date (last updated {last_fetched.isoformat()}).",
            request_id=request_id,
        )


class ConversionFailedError(FXError):
    code = "conversion_failed"

    def __init__(self, from_currency: str, to_currency: str) -> None:
        self.from_currency = from_currency
        self.to_currency = to_currency
        super().__init__(f"Could not convert from {from_currency} to {to_currency}.")


class UnsupportedCurrencyError(FXError):
    code = "unsupported_currency"

    def __init__(self, currency: str) -> None:
        self.currency = currency
        super().__init__(f"Unsupported currency: {currency!r}.")


class FXApiError(FXError):
    """Wraps a transport error that has no dedicated domain meaning."""

    code = "api_error"

    def __init__(self, error: HTTPError) -> None:
        self.error = error
        super().__init__(error.message, request_id=error.request_id)


class NetworkUnavailableError(FXApiError):
    code = "network_unavailable"


def to_domain_error(error: HTTPError) -> FXError:
    """Map a transport error to its domain counterpart, keeping the request id."""

    if isinstance(error, UnauthorizedError):
        return CircuitOpenError(request_id=error.request_id)
    if isinstance(error, RateLimitedError):
        return RateLimitExceededError(request_id=error.request_id)
    if isinstance(error, (NetworkError, RequestTimeoutError)):
        return NetworkUnavailableError(error)
    return FXApiError(error)
