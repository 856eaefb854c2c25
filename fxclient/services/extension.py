"""Wires the FX service, engine, and event loop into a Flask application."""

from __future__ import annotations

import atexit
import logging
from collections.abc import Callable, Coroutine
from dataclasses import dataclass
from typing import Any, TypeVar

from flask import Flask, current_app

from fxclient.fx.settings import FXSettings
from fxclient.fx.tokens import TokenProvider, env_token

from .engine import FXEngine
from .rate_service import FXService
from .runtime import BackgroundLoop

logger = logging.getLogger(__name__)

FX_EXT_KEY = "fx"

T = TypeVar("T")


@dataclass
class FXExtension:
    service: FXService
    engine: FXEngine
    runtime: BackgroundLoop
    call_timeout: float | None = None

    def run(self, coro: Coroutine[Any, Any, T]) -> T:
        return self.runtime.run(coro, timeout=self.call_timeout)

    def call(self, fn: Callable[..., T], *args: Any) -> T:
        """Run a synchronous service method on the loop thread."""

        async def _invoke() -> T:
            return fn(*args)

        return self.run(_invoke())


def init_fx(
    app: Flask,
    token_provider: TokenProvider | None = None,
    service: FXService | None = None,
) -> FXExtension:
    """Create the FX service for ``app`` and store it on ``app.extensions``."""

    if FX_EXT_KEY in app.extensions:
        return app.extensions[FX_EXT_KEY]

    settings = FXSettings.from_config(app.config)
    if service is None:
        provider = token_provider or env_token(app.config.get("FX_API_TOKEN_ENV", "FX_API_TOKEN"))
        service = FXService.create(settings, provider)

    runtime = BackgroundLoop()
    runtime.start()
    atexit.register(runtime.stop)

    extension = FXExtension(
        service=service,
        engine=FXEngine(service),
        runtime=runtime,
        call_timeout=app.config.get("FX_CALL_TIMEOUT_SECONDS"),
    )
    app.extensions[FX_EXT_KEY] = extension
    logger.info(
        "FX client ready: base_url=%s enabled=%s advisory_limit=%s/min",
        settings.base_url,
        settings.enabled,
        settings.requests_per_minute,
    )
    return extension


def get_fx(app: Flask | None = None) -> FXExtension:
    target = app or current_app
    try:
        return target.extensions[FX_EXT_KEY]
    except KeyError as exc:
        raise RuntimeError("FX extension not initialised; call init_fx(app) first.") from exc
