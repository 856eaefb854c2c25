"""HTTP transport: request descriptors, retry policy, and the typed client."""

from .endpoint import HTTPEndpoint, HTTPMethod
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
from .http_client import HTTPClient, HTTPClientConfig, decode_payload, map_error
from .retry import RetryPolicy

__all__ = [
    "BadRequestError",
    "DecodingFailedError",
    "HTTPClient",
    "HTTPClientConfig",
    "HTTPEndpoint",
    "HTTPError",
    "HTTPMethod",
    "InvalidURLError",
    "NetworkError",
    "NotFoundError",
    "RateLimitedError",
    "RequestTimeoutError",
    "RetryPolicy",
    "ServerError",
    "UnauthorizedError",
    "decode_payload",
    "map_error",
]
