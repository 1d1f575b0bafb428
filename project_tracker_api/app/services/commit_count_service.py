"""
Business logic for commit counts.

Commit counts are facts recorded by the repository statistics import:
one row per (user, project) with the number of commits.  The user, the
project and the count are all required.
"""

import logging
from typing import List

from ..core.db import get_connection
from ..schemas.commit_count import CommitCountCreate, CommitCountRead
from .errors import ValidationFailed

logger = logging.getLogger(__name__)


class CommitCountService:
    """Recording and listing of per-user commit counts."""

    @classmethod
    async def record(cls, data: CommitCountCreate) -> CommitCountRead:
        """Validate and store a commit count.

        Raises ``ValidationFailed`` when the user or project is missing
        or does not exist, or when the count is missing.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            errors: List[str] = []
            if data.user_id is None or not cursor.execute(
                "SELECT 1 FROM users WHERE id = ?", (data.user_id,)
            ).fetchone():
                errors.append("User can't be blank")
            if data.project_id is None or not cursor.execute(
                "SELECT 1 FROM projects WHERE id = ?", (data.project_id,)
            ).fetchone():
                errors.append("Project can't be blank")
            if data.commit_count is None:
                errors.append("Commit count can't be blank")
            if errors:
                logger.warning("Rejected commit count %s: %s", data.model_dump(), errors)
                raise ValidationFailed(errors)

            cursor.execute(
                "INSERT INTO commit_counts (user_id, project_id, commit_count) VALUES (?, ?, ?)",
                (data.user_id, data.project_id, data.commit_count),
            )
            count_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(
                "SELECT id, user_id, project_id, commit_count, created_at FROM commit_counts WHERE id = ?",
                (count_id,),
            ).fetchone()
        finally:
            conn.close()
        return CommitCountRead.model_validate(dict(row))

    @classmethod
    async def for_project(cls, project_id: int) -> List[CommitCountRead]:
        """Commit counts of one project, largest first."""
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT id, user_id, project_id, commit_count, created_at
                FROM commit_counts
                WHERE project_id = ?
                ORDER BY commit_count DESC, id
                """,
                (project_id,),
            ).fetchall()
        finally:
            conn.close()
        return [CommitCountRead.model_validate(dict(row)) for row in rows]
