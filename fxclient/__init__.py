"""FX rate client service: Flask host around the asynchronous FX core."""

from __future__ import annotations

from flask import Flask
from flask_smorest import Api

from config import get_config
from .cli import register_cli
from .logging import init_request_logging, setup_logging

OPENAPI_DEFAULTS = {
    "API_TITLE": "FX Rate Client API",
    "API_VERSION": "v1",
    "OPENAPI_VERSION": "3.0.3",
    "OPENAPI_URL_PREFIX": "/docs",
    "OPENAPI_SWAGGER_UI_PATH": "/",
    "OPENAPI_SWAGGER_UI_URL": "https://cdn.jsdelivr.net/npm/swagger-ui-dist/",
}


def create_app(config_name: str | None = None, **fx_overrides) -> Flask:
    """Build the Flask app.

    ``fx_overrides`` go to :func:`fxclient.services.init_fx`; tests pass a
    prebuilt ``service`` or a ``token_provider`` through here.
    """

    from .errors import register_error_handlers
    from .services import init_fx, init_scheduler

    app = Flask(__name__)
    app.config.from_object(get_config(config_name))
    for key, value in OPENAPI_DEFAULTS.items():
        app.config.setdefault(key, value)

    setup_logging(app)
    init_request_logging(app)

    init_fx(app, **fx_overrides)
    init_scheduler(app)

    api = Api(app)
    app.extensions["smorest_api"] = api
    _register_blueprints(api)
    register_error_handlers(app)
    register_cli(app)
    return app


def _register_blueprints(api: Api) -> None:
    from .health import blp as health_blp
    from .rates import blp as rates_blp

    for blueprint, prefix in ((health_blp, "/health"), (rates_blp, "/rates")):
        api.register_blueprint(blueprint, url_prefix=prefix)
