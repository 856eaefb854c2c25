"""Application configuration classes."""

from __future__ import annotations

import os


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


class BaseConfig:
    """Base configuration shared across environments."""

    APP_NAME = "fx-rate-client"
    APP_VERSION = _get_env("APP_VERSION", "1.0.0")

    SCHEDULER_ENABLED = _get_env("SCHEDULER_ENABLED", "true").lower() == "true"
    SCHEDULER_TIMEZONE = _get_env("SCHEDULER_TIMEZONE", "UTC")
    FX_CACHE_SWEEP_CRON = _get_env("FX_CACHE_SWEEP_CRON", "*/30 * * * *")
    FX_REFRESH_CRON = _get_env("FX_REFRESH_CRON", "0 */1 * * *")

    FX_ENABLED = _get_env("FX_ENABLED", "true").lower() == "true"
    FX_API_BASE_URL = _get_env("FX_API_BASE_URL", "https://rates.finyvo.app")
    FX_API_TOKEN_ENV = _get_env("FX_API_TOKEN_ENV", "FX_API_TOKEN")
    FX_LATEST_CACHE_TTL = float(_get_env("FX_LATEST_CACHE_TTL", "3600"))
    FX_SYMBOLS_CACHE_TTL = float(_get_env("FX_SYMBOLS_CACHE_TTL", "604800"))
    FX_MAX_RETRY_ATTEMPTS = int(_get_env("FX_MAX_RETRY_ATTEMPTS", "3"))
    FX_RETRY_BASE_DELAY = float(_get_env("FX_RETRY_BASE_DELAY", "1.0"))
    FX_RETRY_MAX_DELAY = float(_get_env("FX_RETRY_MAX_DELAY", "8.0"))
    FX_REQUESTS_PER_MINUTE = int(_get_env("FX_REQUESTS_PER_MINUTE", "60"))
    FX_CACHE_DIR = _get_env("FX_CACHE_DIR", os.path.join(os.path.expanduser("~"), ".cache", "fxclient"))
    FX_CALL_TIMEOUT_SECONDS = float(_get_env("FX_CALL_TIMEOUT_SECONDS", "60"))
    REQUEST_TIMEOUT_SECONDS = float(_get_env("REQUEST_TIMEOUT_SECONDS", "10"))

    LOG_LEVEL = _get_env("LOG_LEVEL", "INFO")
    LOG_JSON_ENABLED = _get_env("LOG_JSON_ENABLED", "false").lower() == "true"
    LOG_FORMAT = _get_env("LOG_FORMAT", "%(asctime)s %(levelname)s [%(name)s] %(message)s")


class DevelopmentConfig(BaseConfig):
    """Configuration for local development."""

    DEBUG = True
    TESTING = False


class TestingConfig(BaseConfig):
    """Configuration for the test suite; no background jobs, no retries."""

    DEBUG = False
    TESTING = True
    SCHEDULER_ENABLED = False
    FX_API_BASE_URL = "https://rates.test"
    FX_MAX_RETRY_ATTEMPTS = 1
    FX_RETRY_BASE_DELAY = 0.0
    FX_RETRY_MAX_DELAY = 0.0
    FX_CALL_TIMEOUT_SECONDS = 10.0


class ProductionConfig(BaseConfig):
    """Configuration for production deployments."""

    DEBUG = False
    TESTING = False


CONFIG_BY_ENV = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config(config_name: str | None = None) -> type[BaseConfig]:
    """Return the config class for the requested environment.

    Args:
        config_name: Optional explicit config identifier. If omitted, the
            APP_ENV environment variable is consulted.

    Raises:
        KeyError: If the requested configuration is not defined.
        ValueError: If the FX settings are inconsistent.
    """

    env_candidate = config_name if config_name is not None else os.getenv("APP_ENV", "development")
    env_name = (env_candidate or "development").lower()
    try:
        config_cls = CONFIG_BY_ENV[env_name]
    except KeyError as exc:
        raise KeyError(f"Unknown APP_ENV '{env_name}'") from exc

    _validate_fx_settings(config_cls)
    return config_cls


def _validate_fx_settings(config_cls: type[BaseConfig]) -> None:
    if not str(config_cls.FX_API_BASE_URL or "").strip():
        raise ValueError("FX_API_BASE_URL must not be empty.")
    if config_cls.FX_LATEST_CACHE_TTL < 0 or config_cls.FX_SYMBOLS_CACHE_TTL < 0:
        raise ValueError("FX cache TTLs must be zero or positive.")
    if config_cls.FX_MAX_RETRY_ATTEMPTS < 1:
        raise ValueError(
            f"FX_MAX_RETRY_ATTEMPTS must be at least 1, got {config_cls.FX_MAX_RETRY_ATTEMPTS}."
        )
    if config_cls.FX_RETRY_BASE_DELAY < 0:
        raise ValueError("FX_RETRY_BASE_DELAY must be zero or positive.")
    if config_cls.FX_RETRY_MAX_DELAY < config_cls.FX_RETRY_BASE_DELAY:
        raise ValueError("FX_RETRY_MAX_DELAY must not be lower than FX_RETRY_BASE_DELAY.")
