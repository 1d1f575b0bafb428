"""
Pydantic models for commit counts.

A commit count ties one user and one project to the number of commits
the user made to the project's repositories.  All three values are
required.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CommitCountCreate(BaseModel):
    user_id: Optional[int] = Field(None, example=1)
    project_id: Optional[int] = Field(None, example=1)
    commit_count: Optional[int] = Field(None, ge=0, example=42)


class CommitCountRead(BaseModel):
    id: int
    user_id: int
    project_id: int
    commit_count: int
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }
