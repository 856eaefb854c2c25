"""FX domain: endpoint catalog, payload schemas, errors, and settings."""

from .errors import (
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
    to_domain_error,
)
from .schemas import (
    ConversionResult,
    ConvertResponse,
    DateResponse,
    LatestResponse,
    RateSnapshot,
    SymbolsResponse,
    TimeframeResponse,
)
from .settings import FXSettings
from .tokens import env_token, static_token

__all__ = [
    "CircuitOpenError",
    "ConversionFailedError",
    "ConversionResult",
    "ConvertResponse",
    "DateResponse",
    "FeatureDisabledError",
    "FXApiError",
    "FXError",
    "FXSettings",
    "LatestResponse",
    "NetworkUnavailableError",
    "NoTokenError",
    "RateLimitExceededError",
    "RateSnapshot",
    "StaleDataError",
    "SymbolsResponse",
    "TimeframeResponse",
    "UnsupportedCurrencyError",
    "env_token",
    "static_token",
    "to_domain_error",
]
