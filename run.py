"""Entry point for the Project Tracker API.

Starts the FastAPI application with Uvicorn.  Host and port are read
from the ``HOST`` and ``PORT`` environment variables; other settings
(database path, log level, secret key) are described in
``project_tracker_api/app/core/config.py``.

Usage:
    python run.py
"""
import os

from uvicorn import Config, Server

from project_tracker_api.app.main import app


def main() -> None:
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    config = Config(app=app, host=host, port=port, reload=False, log_level="info")
    Server(config).run()


if __name__ == "__main__":
    try:
        main()
    except (KeyboardInterrupt, SystemExit):
        pass
