"""
Pydantic models for project data.

``ProjectRead`` mirrors a row of the ``projects`` table together with
its owning user.  The remaining models are the response envelopes of
the ``/api/projects`` endpoints; their field names follow the JSON
keys consumed by the front end (``projectManager``,
``sourceRepositories``).
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .user import UserRead


class ProjectRead(BaseModel):
    """Schema for reading a project from the API."""

    id: int
    title: str = Field(..., example="WebSiteOne")
    slug: str = Field(..., example="websiteone")
    description: Optional[str] = None
    status: str = Field(..., example="active")
    github_url: Optional[str] = None
    last_github_update: Optional[datetime] = None
    commit_count: Optional[int] = None
    user_id: Optional[int] = None
    user: Optional[UserRead] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class ProjectOption(BaseModel):
    """A ``(title, id)`` pair used to populate project pickers."""

    id: int
    title: str


class ProjectList(BaseModel):
    """Envelope returned by ``GET /api/projects/``."""

    projects: List[ProjectRead]
    followers: Dict[str, int]
    documents: Dict[str, int]
    languages: Dict[str, List[str]]


class ProjectLanguages(BaseModel):
    """Envelope returned by ``GET /api/projects/languages``."""

    languages: Dict[str, List[str]]


class ProjectDetail(BaseModel):
    """Envelope returned by ``GET /api/projects/{slug}``."""

    project: ProjectRead
    project_manager: Optional[str] = Field(None, alias="projectManager")
    source_repositories: Dict[str, Optional[str]] = Field(default_factory=dict, alias="sourceRepositories")

    model_config = {
        "populate_by_name": True,
    }
