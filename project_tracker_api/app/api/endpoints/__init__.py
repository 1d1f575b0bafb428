"""
Endpoint subpackage.

Each module in this package defines an APIRouter for one surface of
the application (projects, events).  The routers are aggregated in
``api/router.py`` and then included in the main application.
"""
