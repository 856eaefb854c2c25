"""Typed error taxonomy for the HTTP transport layer."""

from __future__ import annotations


class HTTPError(RuntimeError):
    """Base class for every failure raised by :class:`HTTPClient`.

    ``request_id`` is the correlation identifier reported by the remote service
    (error envelope or ``X-Request-ID`` header). It is carried untouched so
    callers can surface it for support escalation.
    """

    kind = "http_error"
    default_message = "Request failed."

    def __init__(self, message: str | None = None, *, request_id: str | None = None) -> None:
        self.message = message or self.default_message
        self.request_id = request_id
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r}, request_id={self.request_id!r})"


class UnauthorizedError(HTTPError):
    """401: the bearer token is invalid or expired. Never retried."""

    kind = "unauthorized"
    default_message = "API token is invalid or expired."


class RateLimitedError(HTTPError):
    """429: the remote service is throttling this client."""

    kind = "rate_limited"
    default_message = "Too many requests. Try again in a moment."

    def __init__(
        self,
        message: str | None = None,
        *,
        retry_after: float | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, request_id=request_id)
        self.retry_after = retry_after


class ServerError(HTTPError):
    """5xx or any unexpected non-2xx status."""

    kind = "server_error"

    def __init__(
        self,
        status_code: int,
        message: str | None = None,
        *,
        request_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = message
        text = f"Server error ({status_code})"
        if message:
            text = f"{text}: {message}"
        super().__init__(text, request_id=request_id)


class BadRequestError(HTTPError):
    kind = "bad_request"
    default_message = "Invalid request."


class NotFoundError(HTTPError):
    kind = "not_found"
    default_message = "Resource not found."


class DecodingFailedError(HTTPError):
    kind = "decoding_failed"
    default_message = "Could not process the server response."


class NetworkError(HTTPError):
    kind = "network_error"
    default_message = "Connection error. Check your network."


class RequestTimeoutError(HTTPError):
    kind = "timeout"
    default_message = "The request took too long."


class InvalidURLError(HTTPError):
    kind = "invalid_url"
    default_message = "Invalid URL."
