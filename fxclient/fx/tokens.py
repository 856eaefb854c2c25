"""Token accessors: zero-argument callables returning the current bearer token."""

from __future__ import annotations

import os
from collections.abc import Callable
from typing import Optional

TokenProvider = Callable[[], Optional[str]]


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def static_token(value: str | None) -> TokenProvider:
    cleaned = _clean(value)
    return lambda: cleaned


def env_token(name: str = "FX_API_TOKEN") -> TokenProvider:
    """Read ``name`` from the environment on every call so rotation is picked up."""

    def _provider() -> str | None:
        return _clean(os.environ.get(name))

    return _provider
