"""
Application package initializer.

The project is split into two request-handling surfaces that share a
single SQLite store: the read-only project API (``/api/projects``)
and the events controller (``/events``).  Each surface exposes a
router defined in ``api/endpoints``; business logic lives in
``services`` and request/response models in ``schemas``.
"""

from .main import app  # noqa: F401
