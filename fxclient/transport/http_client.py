"""Async HTTP client wrapper with retries, backoff, and jitter."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from time import perf_counter
from typing import Any, Optional, TypeVar

import requests
from marshmallow import Schema, ValidationError
from requests import Response, Session
from requests.exceptions import (
    InvalidSchema,
    InvalidURL,
    MissingSchema,
    RequestException,
    Timeout,
)

from fxclient.logging import transport_log_extra

from .endpoint import HTTPEndpoint
from .errors import (
    BadRequestError,
    DecodingFailedError,
    HTTPError,
    InvalidURLError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    RequestTimeoutError,
    ServerError,
    UnauthorizedError,
)
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

TokenProvider = Callable[[], Optional[str]]
Sleeper = Callable[[float], Awaitable[Any]]

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class HTTPClientConfig:
    """Configuration for the shared HTTP client."""

    base_url: str
    timeout: float = 10.0
    user_agent: str = "fxclient/1.0.0"


class HTTPClient:
    """Sends :class:`HTTPEndpoint` requests and maps failures to :class:`HTTPError`.

    The blocking ``requests`` call runs in a worker thread so the event loop is
    only suspended, never blocked. The token provider is called once per
    :meth:`send_raw` invocation and its value is never stored.
    """

    def __init__(
        self,
        config: HTTPClientConfig,
        token_provider: TokenProvider,
        retry_policy: RetryPolicy | None = None,
        session: Optional[Session] = None,
        sleep: Sleeper | None = None,
    ) -> None:
        self._config = config
        self._token_provider = token_provider
        self._retry_policy = retry_policy or RetryPolicy()
        self._session = session or requests.Session()
        self._sleep = sleep or asyncio.sleep

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    async def send(self, endpoint: HTTPEndpoint, schema: Schema) -> Any:
        """Send ``endpoint`` and decode the JSON body with ``schema``."""

        data = await self.send_raw(endpoint)
        return decode_payload(data, schema, endpoint=endpoint)

    async def send_raw(self, endpoint: HTTPEndpoint) -> bytes:
        token = self._token_provider() if endpoint.requires_auth else None
        prepared = endpoint.build_request(
            self._config.base_url,
            token=token,
            user_agent=self._config.user_agent,
        )

        total_attempts = max(self._retry_policy.max_attempts, 1)
        attempt = 0
        while True:
            start = perf_counter()
            try:
                data = await self._attempt(prepared)
            except HTTPError as exc:
                duration = (perf_counter() - start) * 1000
                retry = attempt + 1 < total_attempts and self._retry_policy.should_retry(exc, attempt)
                if not retry:
                    logger.info(
                        "FX request %s failed: %s",
                        endpoint,
                        exc.message,
                        extra=transport_log_extra(
                            endpoint=endpoint,
                            status=exc.kind,
                            attempt=attempt + 1,
                            duration_ms=duration,
                            request_id=exc.request_id,
                        ),
                    )
                    raise
                delay = self._retry_policy.delay(attempt)
                logger.warning(
                    "FX request %s failed (attempt %s/%s): %s. Retrying in %.2fs.",
                    endpoint,
                    attempt + 1,
                    total_attempts,
                    exc.message,
                    delay,
                    extra=transport_log_extra(
                        endpoint=endpoint,
                        status=exc.kind,
                        attempt=attempt + 1,
                        duration_ms=duration,
                        request_id=exc.request_id,
                    ),
                )
                await self._sleep(delay)
                attempt += 1
                continue

            duration = (perf_counter() - start) * 1000
            logger.debug(
                "FX request %s succeeded",
                endpoint,
                extra=transport_log_extra(
                    endpoint=endpoint,
                    status="success",
                    attempt=attempt + 1,
                    duration_ms=duration,
                ),
            )
            return data

    async def _attempt(self, prepared: requests.PreparedRequest) -> bytes:
        try:
            response = await asyncio.to_thread(
                self._session.send, prepared, timeout=self._config.timeout
            )
        except Timeout as exc:
            raise RequestTimeoutError() from exc
        except (MissingSchema, InvalidSchema, InvalidURL) as exc:
            raise InvalidURLError(str(exc)) from exc
        except RequestException as exc:
            raise NetworkError(f"{NetworkError.default_message} ({exc})") from exc

        if 200 <= response.status_code < 300:
            return response.content
        raise map_error(response)


def map_error(response: Response) -> HTTPError:
    """Classify a non-2xx response, recovering message and request id when possible."""

    status = response.status_code
    message, request_id = _decode_error_envelope(response.content)
    if request_id is None:
        request_id = response.headers.get(REQUEST_ID_HEADER)

    if status == 400:
        return BadRequestError(message, request_id=request_id)
    if status == 401:
        return UnauthorizedError(message, request_id=request_id)
    if status == 404:
        return NotFoundError(message, request_id=request_id)
    if status == 429:
        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
        return RateLimitedError(message, retry_after=retry_after, request_id=request_id)
    if 500 <= status <= 599:
        return ServerError(status, message, request_id=request_id)
    return ServerError(status, message or "Unexpected response", request_id=request_id)


def decode_payload(data: bytes, schema: Schema, *, endpoint: HTTPEndpoint | None = None) -> Any:
    """Decode raw JSON bytes through a marshmallow schema."""

    try:
        payload = json.loads(data)
        return schema.load(payload)
    except (ValueError, TypeError, ValidationError) as exc:
        target = f" for {endpoint}" if endpoint is not None else ""
        raise DecodingFailedError(f"Could not decode response{target}: {exc}") from exc


def _decode_error_envelope(body: bytes) -> tuple[str | None, str | None]:
    """Parse ``{"error": {"code", "message", "requestId"}}``; never raises."""

    if not body:
        return None, None
    try:
        payload = json.loads(body)
    except ValueError:
        return None, None
    if not isinstance(payload, dict):
        return None, None
    error = payload.get("error")
    if not isinstance(error, dict):
        return None, None

    message = error.get("message")
    request_id = error.get("requestId") or error.get("request_id")
    return (
        str(message) if message is not None else None,
        str(request_id) if request_id is not None else None,
    )


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None
