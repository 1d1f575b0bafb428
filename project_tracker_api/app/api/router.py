"""
Top‑level routers.

``api_router`` carries the JSON API mounted under ``/api``;
``events_router`` carries the events controller mounted at the site
root.  When new endpoints are added, include their routers here.
"""

from fastapi import APIRouter

from .endpoints import events, projects

api_router = APIRouter()
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])

events_router = APIRouter()
events_router.include_router(events.router, prefix="/events", tags=["events"])
