"""Static configuration handed to the FX subsystem at construction."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

DEFAULT_LATEST_TTL = 3600.0
DEFAULT_SYMBOLS_TTL = 7 * 24 * 3600.0


@dataclass(frozen=True)
class FXSettings:
    enabled: bool = True
    base_url: str = "https://rates.finyvo.app"
    latest_cache_ttl: float = DEFAULT_LATEST_TTL
    symbols_cache_ttl: float = DEFAULT_SYMBOLS_TTL
    max_retry_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 8.0
    requests_per_minute: int = 60
    request_timeout: float = 10.0
    cache_dir: str = os.path.join(os.path.expanduser("~"), ".cache", "fxclient")
    app_version: str = "1.0.0"

    @property
    def user_agent(self) -> str:
        return f"fxclient/{self.app_version}"

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FXSettings":
        """Build settings from a Flask config (or any mapping of the same keys)."""

        defaults = cls()
        return cls(
            enabled=bool(config.get("FX_ENABLED", defaults.enabled)),
            base_url=str(config.get("FX_API_BASE_URL", defaults.base_url)),
            latest_cache_ttl=float(config.get("FX_LATEST_CACHE_TTL", defaults.latest_cache_ttl)),
            symbols_cache_ttl=float(config.get("FX_SYMBOLS_CACHE_TTL", defaults.symbols_cache_ttl)),
            max_retry_attempts=int(config.get("FX_MAX_RETRY_ATTEMPTS", defaults.max_retry_attempts)),
            retry_base_delay=float(config.get("FX_RETRY_BASE_DELAY", defaults.retry_base_delay)),
            retry_max_delay=float(config.get("FX_RETRY_MAX_DELAY", defaults.retry_max_delay)),
            requests_per_minute=int(
                config.get("FX_REQUESTS_PER_MINUTE", defaults.requests_per_minute)
            ),
            request_timeout=float(config.get("REQUEST_TIMEOUT_SECONDS", defaults.request_timeout)),
            cache_dir=str(config.get("FX_CACHE_DIR", defaults.cache_dir)),
            app_version=str(config.get("APP_VERSION", defaults.app_version)),
        )
