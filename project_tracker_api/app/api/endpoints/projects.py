"""
Project endpoints.

Read-only JSON API consumed by the projects pages of the front end:
the ordered project list with follower, document and language maps,
the language map alone, and a single project by slug.
"""

from fastapi import APIRouter, HTTPException, status

from project_tracker_api.app.schemas.project import ProjectDetail, ProjectLanguages, ProjectList
from project_tracker_api.app.services.errors import NotFoundError
from project_tracker_api.app.services.project_service import ProjectService


router = APIRouter()


@router.get("/", response_model=ProjectList)
async def list_projects() -> ProjectList:
    """Return projects list.

    Projects are ordered by status, then most recent GitHub update,
    then commit count.  ``followers``, ``documents`` and ``languages``
    are keyed by project title.
    """
    return await ProjectService.list_projects()


@router.get("/languages", response_model=ProjectLanguages)
async def list_languages() -> ProjectLanguages:
    """Return each project's languages, keyed by project title."""
    return ProjectLanguages(languages=await ProjectService.list_languages())


@router.get("/{slug}", response_model=ProjectDetail)
async def get_project(slug: str) -> ProjectDetail:
    """Return a project, its manager's name and its source repositories.

    Raises 404 if no project has this slug.
    """
    try:
        return await ProjectService.get_by_slug(slug)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
