"""Request descriptors used to build outgoing HTTP requests."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping

import requests
from requests.exceptions import InvalidSchema, InvalidURL, MissingSchema

from .errors import InvalidURLError

AUTHORIZATION_HEADER = "Authorization"
ACCEPT_HEADER = "Accept"
USER_AGENT_HEADER = "User-Agent"


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"


QueryItems = tuple[tuple[str, str], ...]


def _normalize_query(query: Mapping[str, object] | Iterable[tuple[str, object]] | None) -> QueryItems:
    if not query:
        return ()
    items = query.items() if isinstance(query, Mapping) else query
    normalized: list[tuple[str, str]] = []
    for name, value in items:
        if value is None:
            continue
        normalized.append((str(name), str(value)))
    return tuple(normalized)


@dataclass(frozen=True)
class HTTPEndpoint:
    """Immutable description of one remote operation.

    The descriptor never holds a credential: the bearer token is only attached
    when :meth:`build_request` is called, so neither ``repr()`` nor logs built
    from the descriptor can leak it.
    """

    path: str
    method: HTTPMethod = HTTPMethod.GET
    query: QueryItems = field(default=())
    requires_auth: bool = True
    cache_ttl: float | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "query", _normalize_query(self.query))
        object.__setattr__(self, "method", HTTPMethod(self.method))

    @property
    def cache_key(self) -> str:
        """Deterministic key: path plus query parameters sorted by name then value."""

        if not self.query:
            return self.path
        params = "&".join(f"{name}={value}" for name, value in sorted(self.query))
        return f"{self.path}?{params}"

    def url(self, base_url: str) -> str:
        base = base_url.rstrip("/")
        suffix = self.path.lstrip("/")
        return f"{base}/{suffix}"

    def build_request(
        self,
        base_url: str,
        *,
        token: str | None,
        user_agent: str,
    ) -> requests.PreparedRequest:
        """Build the prepared request sent on every attempt.

        Raises:
            InvalidURLError: If the base URL and path do not form a valid URL.
        """

        headers = {
            ACCEPT_HEADER: "application/json",
            USER_AGENT_HEADER: user_agent,
        }
        if self.requires_auth and token:
            headers[AUTHORIZATION_HEADER] = f"Bearer {token}"

        request = requests.Request(
            method=self.method.value,
            url=self.url(base_url),
            params=list(self.query),
            headers=headers,
        )
        try:
            return request.prepare()
        except (MissingSchema, InvalidSchema, InvalidURL, ValueError) as exc:
            raise InvalidURLError(f"Invalid URL for {self}: {exc}") from exc

    def __str__(self) -> str:
        if not self.query:
            return f"{self.method.value} {self.path}"
        params = "&".join(f"{name}={value}" for name, value in self.query)
        return f"{self.method.value} {self.path}?{params}"

    def __repr__(self) -> str:
        return (
            f"HTTPEndpoint({self}, requires_auth={self.requires_auth}, "
            f"cache_ttl={self.cache_ttl})"
        )
