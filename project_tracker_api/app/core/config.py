"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
application starts without any configuration; override them in
production via environment variables.
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Project Tracker API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: Optional[str] = os.getenv("LOG_FILE") or None
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))

    # Path or connection string for the SQLite database.  Relative paths
    # are resolved against the project root by the ``db`` module.
    database_url: str = os.getenv("DATABASE_URL", "project_tracker.db")

    # Title of the project preselected on the "new event" form when the
    # request names no project.  The project may not exist, in which
    # case the form simply has no project selected.
    default_project_title: str = os.getenv("DEFAULT_PROJECT_TITLE", "CS169")

    # Occurrence window used when expanding recurring events: from
    # ``collection_time_past_minutes`` ago up to ``occurrence_window_days``
    # ahead, capped at ``occurrence_limit`` occurrences per event.
    occurrence_limit: int = int(os.getenv("OCCURRENCE_LIMIT", "100"))
    occurrence_window_days: int = int(os.getenv("OCCURRENCE_WINDOW_DAYS", "10"))
    collection_time_past_minutes: int = int(os.getenv("COLLECTION_TIME_PAST_MINUTES", "15"))

    # Number of recorded hangouts listed on the event page.
    event_instances_limit: int = int(os.getenv("EVENT_INSTANCES_LIMIT", "5"))


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# should be set before importing this module.
settings = Settings()
