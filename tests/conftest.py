"""Shared pytest fixtures."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from flask import Config

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from config import TestingConfig  # noqa: E402
from fxclient import create_app  # noqa: E402
from fxclient.fx.settings import FXSettings  # noqa: E402
from fxclient.fx.tokens import env_token, static_token  # noqa: E402
from fxclient.services import FXCache, FXService, get_fx  # noqa: E402

BASE_URL = "https://rates.test"
TEST_TOKEN = "test-token-abc123"


class FakeClock:
    """Manually advanced clock for cache TTL tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep stand-in that records requested delays and returns at once."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        await asyncio.sleep(0)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture()
def fx_settings(tmp_path: Path) -> FXSettings:
    return FXSettings(
        base_url=BASE_URL,
        max_retry_attempts=3,
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        cache_dir=str(tmp_path / "fx-cache"),
    )


@pytest.fixture()
def make_service(
    fx_settings: FXSettings,
    clock: FakeClock,
    recording_sleep: RecordingSleep,
) -> Callable[..., FXService]:
    """Factory for services wired to a fake clock and a recording sleep."""

    def _factory(token: str | None = TEST_TOKEN, settings: FXSettings | None = None, **kwargs) -> FXService:
        settings = settings or fx_settings
        cache = kwargs.pop("cache", None) or FXCache(settings.cache_dir, clock=clock)
        return FXService.create(
            settings,
            static_token(token),
            cache=cache,
            sleep=recording_sleep,
            **kwargs,
        )

    return _factory


@pytest.fixture()
def app(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator:
    """Flask application using the testing config and a temporary cache dir."""

    monkeypatch.setenv("FX_API_TOKEN", TEST_TOKEN)
    config = Config(str(tmp_path))
    config.from_object(TestingConfig)
    config["FX_CACHE_DIR"] = str(tmp_path / "app-cache")
    service = FXService.create(FXSettings.from_config(config), env_token("FX_API_TOKEN"))

    flask_app = create_app("testing", service=service)
    flask_app.config["FX_CACHE_DIR"] = config["FX_CACHE_DIR"]
    fx = get_fx(flask_app)

    yield flask_app

    fx.runtime.stop()


@pytest.fixture()
def client(app):
    """Provide a Flask test client."""

    with app.test_client() as client:
        yield client


@pytest.fixture(scope="session")
def fixtures_dir() -> Path:
    """Return the path to bundled JSON fixtures."""

    return ROOT_DIR / "tests" / "fixtures"


@pytest.fixture()
def load_json_fixture(fixtures_dir: Path) -> Callable[[str], dict]:
    """Load a JSON fixture by filename."""

    def _loader(filename: str) -> dict:
        path = fixtures_dir / filename
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    return _loader
