"""
Business logic for projects.

All queries are read-only.  The aggregate listing computes follower
counts, document counts and language lists for every project with one
statement per metric family inside a single read snapshot, so the
returned list and the per-title maps always describe the same state of
the store.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Dict, List, Optional, Tuple, Union

from ..core.db import get_connection, read_snapshot
from ..schemas.project import ProjectDetail, ProjectList, ProjectRead
from ..schemas.user import UserRead
from .errors import NotFoundError

logger = logging.getLogger(__name__)

PROJECT_SELECT = """
    SELECT p.id, p.title, p.slug, p.description, p.status, p.github_url,
           p.last_github_update, p.commit_count, p.user_id, p.created_at, p.updated_at,
           u.id AS owner_id, u.email AS owner_email,
           u.first_name AS owner_first_name, u.last_name AS owner_last_name
    FROM projects p
    LEFT JOIN users u ON u.id = p.user_id
"""

# Status first, then most recently updated, then busiest.  Missing
# timestamps and commit counts sort after any known value.
PROJECT_ORDERING = """
    ORDER BY p.status ASC,
             p.last_github_update IS NULL, p.last_github_update DESC,
             p.commit_count IS NULL, p.commit_count DESC
"""


def project_from_row(row: sqlite3.Row) -> ProjectRead:
    """Build a ``ProjectRead`` from a row selected with ``PROJECT_SELECT``."""
    owner = None
    if row["owner_id"] is not None:
        owner = UserRead(
            id=row["owner_id"],
            email=row["owner_email"],
            first_name=row["owner_first_name"],
            last_name=row["owner_last_name"],
        )
    return ProjectRead(
        id=row["id"],
        title=row["title"],
        slug=row["slug"],
        description=row["description"],
        status=row["status"],
        github_url=row["github_url"],
        last_github_update=row["last_github_update"],
        commit_count=row["commit_count"],
        user_id=row["user_id"],
        user=owner,
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def find_project_row(cursor: sqlite3.Cursor, identifier: Union[int, str]) -> Optional[sqlite3.Row]:
    """Look a project up by slug, falling back to its numeric id."""
    key = str(identifier).strip()
    row = cursor.execute(PROJECT_SELECT + " WHERE p.slug = ?", (key,)).fetchone()
    if row is None and key.isdigit():
        row = cursor.execute(PROJECT_SELECT + " WHERE p.id = ?", (int(key),)).fetchone()
    return row


class ProjectService:
    """Read-only queries backing the ``/api/projects`` endpoints."""

    @classmethod
    async def list_projects(cls) -> ProjectList:
        """Return ordered projects plus follower, document and language maps.

        The maps are keyed by project title.  Titles are assumed to be
        unique; if two projects share a title the later one (by id)
        wins, as it would when merging per-project results in order.
        """
        with read_snapshot() as cursor:
            projects = [
                project_from_row(row)
                for row in cursor.execute(PROJECT_SELECT + PROJECT_ORDERING).fetchall()
            ]
            followers, documents = cls._counts(cursor)
            languages = cls._languages(cursor)
        logger.debug("Listed %d projects", len(projects))
        return ProjectList(
            projects=projects,
            followers=followers,
            documents=documents,
            languages=languages,
        )

    @classmethod
    async def list_languages(cls) -> Dict[str, List[str]]:
        """Return the language names used by each project, keyed by title."""
        with read_snapshot() as cursor:
            return cls._languages(cursor)

    @classmethod
    async def get_by_slug(cls, slug: str) -> ProjectDetail:
        """Return a project, its manager's name and its numbered repositories.

        Repositories are numbered from 1 in insertion order:
        ``{"url1": ..., "name1": ..., "url2": ..., "name2": ...}``.
        Raises ``NotFoundError`` if no project has this slug.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(PROJECT_SELECT + " WHERE p.slug = ?", (slug,)).fetchone()
            if row is None:
                raise NotFoundError(f"Project {slug} not found")
            repositories = cursor.execute(
                "SELECT url, name FROM source_repositories WHERE project_id = ? ORDER BY id",
                (row["id"],),
            ).fetchall()
        finally:
            conn.close()

        project = project_from_row(row)
        numbered: Dict[str, Optional[str]] = {}
        for index, repo in enumerate(repositories, start=1):
            numbered[f"url{index}"] = repo["url"]
            numbered[f"name{index}"] = repo["name"]
        return ProjectDetail(
            project=project,
            project_manager=project.user.display_name if project.user else None,
            source_repositories=numbered,
        )

    @classmethod
    async def find(cls, identifier: Union[int, str]) -> ProjectRead:
        """Return a project by slug or id, raising ``NotFoundError`` if absent."""
        conn = get_connection()
        try:
            row = find_project_row(conn.cursor(), identifier)
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"Project {identifier} not found")
        return project_from_row(row)

    @classmethod
    async def find_by_title(cls, title: str) -> Optional[ProjectRead]:
        conn = get_connection()
        try:
            row = conn.execute(
                PROJECT_SELECT + " WHERE p.title = ? ORDER BY p.id LIMIT 1", (title,)
            ).fetchone()
        finally:
            conn.close()
        return project_from_row(row) if row else None

    @classmethod
    async def active_projects(cls) -> List[ProjectRead]:
        """Projects whose status is ``active`` (case-insensitive), by title."""
        conn = get_connection()
        try:
            rows = conn.execute(
                PROJECT_SELECT + " WHERE lower(p.status) = 'active' ORDER BY p.title, p.id"
            ).fetchall()
        finally:
            conn.close()
        return [project_from_row(row) for row in rows]

    @staticmethod
    def _counts(cursor: sqlite3.Cursor) -> Tuple[Dict[str, int], Dict[str, int]]:
        rows = cursor.execute(
            """
            SELECT p.title,
                   (SELECT COUNT(*) FROM follows f WHERE f.project_id = p.id) AS followers,
                   (SELECT COUNT(*) FROM documents d WHERE d.project_id = p.id) AS documents
            FROM projects p
            ORDER BY p.id
            """
        ).fetchall()
        followers = {row["title"]: row["followers"] for row in rows}
        documents = {row["title"]: row["documents"] for row in rows}
        return followers, documents

    @staticmethod
    def _languages(cursor: sqlite3.Cursor) -> Dict[str, List[str]]:
        rows = cursor.execute(
            """
            SELECT p.id, p.title, l.name
            FROM projects p
            LEFT JOIN languages_projects lp ON lp.project_id = p.id
            LEFT JOIN languages l ON l.id = lp.language_id
            ORDER BY p.id, l.name
            """
        ).fetchall()
        by_project: Dict[int, Tuple[str, List[str]]] = {}
        for row in rows:
            _, names = by_project.setdefault(row["id"], (row["title"], []))
            if row["name"] is not None:
                names.append(row["name"])
        return {title: names for title, names in by_project.values()}
