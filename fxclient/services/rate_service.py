"""FX rate service: cache-first reads, circuit breaker, and observable state."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from functools import partial
from typing import Any

from requests import Session

from fxclient.fx import endpoints
from fxclient.fx.errors import (
    CircuitOpenError,
    FeatureDisabledError,
    FXError,
    NoTokenError,
    StaleDataError,
    UnsupportedCurrencyError,
    to_domain_error,
)
from fxclient.fx.schemas import (
    ConvertResponse,
    ConvertResponseSchema,
    DateResponse,
    DateResponseSchema,
    LatestResponseSchema,
    RateSnapshot,
    SymbolsResponseSchema,
    TimeframeResponse,
    TimeframeResponseSchema,
)
from fxclient.fx.settings import FXSettings
from fxclient.fx.tokens import TokenProvider
from fxclient.transport import (
    HTTPClient,
    HTTPClientConfig,
    HTTPEndpoint,
    HTTPError,
    RetryPolicy,
    UnauthorizedError,
    decode_payload,
)
from fxclient.transport.http_client import Sleeper
from fxclient.utils.datetime import utc_now

from .cache import FXCache
from .fx_conversion import convert_amount, extract_rate, normalize_currency, same_currency

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceState:
    """Read-only view of the service's observable state."""

    current_rates: RateSnapshot | None
    is_loading: bool
    last_error: FXError | None
    is_circuit_open: bool
    consecutive_auth_failures: int


class FXService:
    """Orchestrates the cache, the HTTP client, and the authentication circuit breaker.

    A 401 from any authenticated call opens the circuit. It stays open, and
    every authenticated call fails with :class:`CircuitOpenError` without
    touching the network, until :meth:`reset_circuit_breaker` or
    :meth:`credentials_rotated` is called. There is no timed half-open state.
    """

    def __init__(
        self,
        settings: FXSettings,
        client: HTTPClient,
        cache: FXCache,
        token_provider: TokenProvider,
    ) -> None:
        self._settings = settings
        self._client = client
        self._cache = cache
        self._token_provider = token_provider

        self._current_rates: RateSnapshot | None = None
        self._loading = 0
        self._last_error: FXError | None = None
        self._circuit_open = False
        self._consecutive_auth_failures = 0

    @classmethod
    def create(
        cls,
        settings: FXSettings,
        token_provider: TokenProvider,
        *,
        session: Session | None = None,
        cache: FXCache | None = None,
        sleep: Sleeper | None = None,
    ) -> "FXService":
        client = HTTPClient(
            HTTPClientConfig(
                base_url=settings.base_url,
                timeout=settings.request_timeout,
                user_agent=settings.user_agent,
            ),
            token_provider=token_provider,
            retry_policy=RetryPolicy.from_settings(settings),
            session=session,
            sleep=sleep,
        )
        return cls(settings, client, cache or FXCache(settings.cache_dir), token_provider)

    # Observable state ---------------------------------------------------

    @property
    def settings(self) -> FXSettings:
        return self._settings

    @property
    def current_rates(self) -> RateSnapshot | None:
        return self._current_rates

    @property
    def is_loading(self) -> bool:
        return self._loading > 0

    @property
    def last_error(self) -> FXError | None:
        return self._last_error

    @property
    def is_circuit_open(self) -> bool:
        return self._circuit_open

    @property
    def consecutive_auth_failures(self) -> int:
        return self._consecutive_auth_failures

    @property
    def is_configured(self) -> bool:
        return bool(self._token_provider())

    def state(self) -> ServiceState:
        return ServiceState(
            current_rates=self._current_rates,
            is_loading=self.is_loading,
            last_error=self._last_error,
            is_circuit_open=self._circuit_open,
            consecutive_auth_failures=self._consecutive_auth_failures,
        )

    # Circuit / credential management -----------------------------------

    def reset_circuit_breaker(self) -> None:
        if self._circuit_open:
            logger.info("FX circuit breaker reset by operator")
        self._circuit_open = False
        self._consecutive_auth_failures = 0
        self._last_error = None

    def credentials_rotated(self) -> None:
        """Signal that a fresh credential was configured; closes the circuit."""

        logger.info("FX credentials rotated; closing circuit breaker")
        self.reset_circuit_breaker()

    def clear_credentials_state(self) -> None:
        """Forget data fetched with the previous credential."""

        self._current_rates = None
        self._last_error = None

    # Remote operations --------------------------------------------------

    async def fetch_latest_rates(self, currencies: Sequence[str] | None = None) -> RateSnapshot | None:
        """Refresh the current snapshot (cache-first).

        Never raises a domain error: failures are recorded in :attr:`last_error`
        and ``None`` is returned. The previous snapshot is kept on failure.
        """

        self._loading += 1
        self._last_error = None
        try:
            codes = self._normalize_codes(currencies)
            endpoint = endpoints.latest(codes, ttl=self._settings.latest_cache_ttl)
            response = await self._request(
                endpoint,
                LatestResponseSchema(),
                cache_ttl=endpoint.cache_ttl or self._settings.latest_cache_ttl,
            )
            snapshot = RateSnapshot(
                base=response.base,
                rates=response.rates,
                fetched_at=utc_now(),
                is_estimated=bool(response.is_estimated),
                source=response.source or "unknown",
            )
            self._current_rates = snapshot
        except FXError as exc:
            self._last_error = exc
            return None
        finally:
            self._loading -= 1

        logger.info(
            "FX snapshot replaced: base=%s currencies=%s source=%s",
            snapshot.base,
            len(snapshot.rates),
            snapshot.source,
            extra={"event": "fx.snapshot", "base": snapshot.base, "source": snapshot.source},
        )
        return snapshot

    async def convert(
        self,
        amount: float,
        from_currency: str,
        to_currency: str,
        on: date | str | None = None,
    ) -> ConvertResponse:
        """Server-side conversion; always goes to the network."""

        endpoint = endpoints.convert(
            normalize_currency(from_currency),
            normalize_currency(to_currency),
            amount,
            on,
        )
        return await self._request(endpoint, ConvertResponseSchema())

    async def fetch_symbols(self) -> dict[str, str]:
        endpoint = endpoints.symbols(ttl=self._settings.symbols_cache_ttl)
        response = await self._request(
            endpoint,
            SymbolsResponseSchema(),
            cache_ttl=endpoint.cache_ttl or self._settings.symbols_cache_ttl,
        )
        return dict(response.symbols)

    async def fetch_historical_rate(
        self,
        on: date | str,
        currencies: Sequence[str] | None = None,
    ) -> DateResponse:
        endpoint = endpoints.historical(on, self._normalize_codes(currencies))
        return await self._request(endpoint, DateResponseSchema())

    async def fetch_timeframe(
        self,
        start: date | str,
        end: date | str,
        currencies: Sequence[str] | None = None,
    ) -> TimeframeResponse:
        endpoint = endpoints.timeframe(start, end, self._normalize_codes(currencies))
        return await self._request(endpoint, TimeframeResponseSchema())

    async def check_health(self) -> bool:
        """Liveness probe against the unauthenticated health endpoint; never raises."""

        try:
            await self._client.send_raw(endpoints.health())
        except Exception as exc:  # noqa: BLE001 - a probe reports, it does not fail
            logger.warning("FX health check failed: %s", exc)
            return False
        return True

    # Local operations ---------------------------------------------------

    def convert_locally(self, amount: float, from_currency: str, to_currency: str) -> float | None:
        """Convert with the in-memory snapshot only; ``None`` when not possible."""

        snapshot = self._current_rates
        if snapshot is None:
            return None
        if same_currency(from_currency, to_currency):
            return float(amount)
        try:
            source = normalize_currency(from_currency)
            target = normalize_currency(to_currency)
        except UnsupportedCurrencyError:
            return None

        rate = extract_rate(source, target, snapshot.base, snapshot.rates)
        if rate is None:
            return None
        return convert_amount(amount, rate)

    def fresh_snapshot(self) -> RateSnapshot | None:
        """Return the snapshot if it is within the latest TTL.

        Raises:
            StaleDataError: If the snapshot is older than the latest TTL.
        """

        snapshot = self._current_rates
        if snapshot is None:
            return None
        if snapshot.is_expired(self._settings.latest_cache_ttl):
            raise StaleDataError(snapshot.fetched_at)
        return snapshot

    # Cache management ---------------------------------------------------

    async def clear_cache(self) -> None:
        await self._cache.clear_all()

    async def clear_expired_cache(self) -> int:
        return await self._cache.clear_expired()

    def memory_cache_count(self) -> int:
        return self._cache.memory_count

    def disk_cache_count(self) -> int:
        return self._cache.disk_count

    # Internals ----------------------------------------------------------

    async def _request(
        self,
        endpoint: HTTPEndpoint,
        schema: Any,
        *,
        cache_ttl: float | None = None,
    ) -> Any:
        self._ensure_ready()
        try:
            if cache_ttl is None:
                result = await self._client.send(endpoint, schema)
            else:
                data = await self._cache.get_or_fetch(
                    endpoint.cache_key,
                    cache_ttl,
                    partial(self._client.send_raw, endpoint),
                )
                result = decode_payload(data, schema, endpoint=endpoint)
        except HTTPError as exc:
            raise self._record_failure(exc) from exc

        self._consecutive_auth_failures = 0
        return result

    def _ensure_ready(self) -> None:
        if not self._settings.enabled:
            raise FeatureDisabledError()
        if self._circuit_open:
            raise CircuitOpenError()
        if not self.is_configured:
            raise NoTokenError()

    def _record_failure(self, error: HTTPError) -> FXError:
        if isinstance(error, UnauthorizedError):
            self._consecutive_auth_failures += 1
            self._circuit_open = True
            logger.error(
                "FX API rejected the token; circuit breaker opened",
                extra={
                    "event": "fx.circuit.open",
                    "upstream_request_id": error.request_id,
                    "consecutive_auth_failures": self._consecutive_auth_failures,
                },
            )
        domain_error = to_domain_error(error)
        self._last_error = domain_error
        return domain_error

    @staticmethod
    def _normalize_codes(currencies: Sequence[str] | None) -> list[str] | None:
        if not currencies:
            return None
        return [normalize_currency(code) for code in currencies]
