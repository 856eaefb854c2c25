"""Service layer modules."""

from .cache import CacheEntry, FXCache
from .engine import FXEngine
from .extension import FXExtension, get_fx, init_fx
from .rate_service import FXService, ServiceState
from .runtime import BackgroundLoop
from .scheduler import init_scheduler

__all__ = [
    "BackgroundLoop",
    "CacheEntry",
    "FXCache",
    "FXEngine",
    "FXExtension",
    "FXService",
    "ServiceState",
    "get_fx",
    "init_fx",
    "init_scheduler",
]
