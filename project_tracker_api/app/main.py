"""
Main entrypoint for the Project Tracker API.

This module assembles the FastAPI application, sets up logging and
includes the routers.  The ``create_app`` function builds and
configures the app, which is then instantiated at module import time
as ``app``, e.g.::

    uvicorn project_tracker_api.app.main:app --reload
"""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from .api.endpoints.events import submission_error_handler
from .api.router import api_router, events_router
from .core.config import settings
from .core.db import init_db
from .core.logging_config import setup_logging


def create_app() -> FastAPI:
    """Create and configure a FastAPI application.

    Configures logging, mounts the project API under ``/api`` and the
    events controller under ``/events``, reports malformed event
    submissions as form errors, and applies database migrations on
    startup.
    """
    setup_logging(settings.log_level, settings.log_file)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.include_router(api_router, prefix="/api")
    app.include_router(events_router)
    app.add_exception_handler(RequestValidationError, submission_error_handler)

    @app.on_event("startup")
    async def startup_event() -> None:
        # Creates the database file if needed and brings the schema up to date.
        init_db()

    return app


app = create_app()
