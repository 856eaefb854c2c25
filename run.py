"""Development server for the FX rate client.

Reads ``.env`` next to this file (if any), then serves the app built for
``APP_ENV`` on ``FLASK_RUN_HOST``/``FLASK_RUN_PORT``.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from fxclient import create_app

ENV_FILE = Path(__file__).resolve().with_name(".env")


def main() -> None:
    load_dotenv(ENV_FILE)

    app = create_app(os.getenv("APP_ENV"))
    app.run(
        host=os.getenv("FLASK_RUN_HOST", "127.0.0.1"),
        port=int(os.getenv("FLASK_RUN_PORT", "5000")),
        debug=bool(app.config.get("DEBUG", False)),
    )


if __name__ == "__main__":
    main()
