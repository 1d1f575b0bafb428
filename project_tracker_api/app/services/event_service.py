"""
Business logic for events.

The ``EventService`` validates and persists event attributes produced
by ``event_params.transform_params`` and answers the read queries of
the events controller: lookup by slug or id, upcoming occurrences,
recent hangouts and recorded videos.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from ..core.config import settings
from ..core.db import get_connection
from ..schemas.event import (
    DAYS_OF_THE_WEEK,
    REPEAT_CHOICES,
    EventBase,
    EventInstanceRead,
    EventRead,
    Occurrence,
)
from .errors import NotFoundError, ValidationFailed
from .event_params import as_integer
from .project_service import ProjectService, find_project_row
from .recurrence import next_occurrences

logger = logging.getLogger(__name__)

EVENT_SELECT = """
    SELECT id, slug, name, category, audience, description, duration, start_datetime,
           repeats, repeats_every_n_weeks, repeats_weekly_each_days_of_the_week,
           repeat_ends, repeat_ends_on, time_zone, project_id, creator_id, modifier_id,
           creator_attendance, created_at, updated_at
    FROM events
"""

# Event attribute -> ``events`` column, for attributes whose names differ.
COLUMN_NAMES = {"for_": "audience"}

WRITABLE_ATTRIBUTES = (
    "name",
    "category",
    "for_",
    "description",
    "duration",
    "start_datetime",
    "repeats",
    "repeats_every_n_weeks",
    "repeats_weekly_each_days_of_the_week",
    "repeat_ends",
    "repeat_ends_on",
    "time_zone",
    "project_id",
    "creator_id",
    "modifier_id",
    "creator_attendance",
)

REQUIRED_ATTRIBUTES = ("name", "category", "repeats", "time_zone", "start_datetime", "duration")

NEW_EVENT_DURATION = 30

# Numeric attribute -> (smallest accepted value, message when below it).
NUMERIC_ATTRIBUTES = {
    "duration": (0, "must be greater than or equal to 0"),
    "repeats_every_n_weeks": (1, "must be greater than 0"),
}


def event_from_row(row: sqlite3.Row) -> EventRead:
    days = row["repeats_weekly_each_days_of_the_week"]
    return EventRead(
        id=row["id"],
        slug=row["slug"],
        name=row["name"],
        category=row["category"],
        for_=row["audience"],
        description=row["description"],
        duration=row["duration"],
        start_datetime=row["start_datetime"],
        repeats=row["repeats"],
        repeats_every_n_weeks=row["repeats_every_n_weeks"],
        repeats_weekly_each_days_of_the_week=json.loads(days) if days else [],
        repeat_ends=bool(row["repeat_ends"]),
        repeat_ends_on=row["repeat_ends_on"],
        time_zone=row["time_zone"],
        project_id=row["project_id"],
        creator_id=row["creator_id"],
        modifier_id=row["modifier_id"],
        creator_attendance=bool(row["creator_attendance"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def humanize(attribute: str) -> str:
    """``"start_datetime"`` -> ``"Start datetime"``."""
    return attribute.rstrip("_").replace("_", " ").capitalize()


def slugify(text: Optional[str]) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (text or "").lower()).strip("-")
    return slug or "event"


def _column_value(attribute: str, value: Any) -> Any:
    if attribute == "repeats_weekly_each_days_of_the_week":
        return json.dumps(list(value or []))
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat()
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _db_timestamp(value: datetime) -> str:
    """Format ``value`` like SQLite's ``CURRENT_TIMESTAMP``."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class EventService:
    """Persistence and queries for events and their recorded instances."""

    @classmethod
    async def get(cls, identifier: Union[int, str]) -> EventRead:
        """Return an event by slug or id; raises ``NotFoundError`` if absent."""
        key = str(identifier).strip()
        conn = get_connection()
        try:
            row = conn.execute(EVENT_SELECT + " WHERE slug = ?", (key,)).fetchone()
            if row is None and key.isdigit():
                row = conn.execute(EVENT_SELECT + " WHERE id = ?", (int(key),)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFoundError(f"Event {identifier} not found")
        return event_from_row(row)

    @classmethod
    async def build_new(
        cls,
        name: Optional[str] = None,
        category: Optional[str] = None,
        for_: Optional[str] = None,
        project: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> EventBase:
        """Return an unsaved event with the defaults of the "new event" form.

        The project is taken from the ``project`` slug, else from
        ``project_id``, else it is the project titled
        ``settings.default_project_title`` if such a project exists.
        """
        resolved_project_id: Optional[int] = None
        if project:
            resolved_project_id = (await ProjectService.find(project)).id
        elif project_id:
            resolved_project_id = (await ProjectService.find(project_id)).id
        else:
            fallback = await ProjectService.find_by_title(settings.default_project_title)
            resolved_project_id = fallback.id if fallback else None
        return EventBase(
            name=name,
            category=category,
            for_=for_,
            project_id=resolved_project_id,
            start_datetime=datetime.now(timezone.utc),
            duration=NEW_EVENT_DURATION,
            repeat_ends=True,
        )

    @classmethod
    async def create(cls, attrs: Dict[str, Any]) -> EventRead:
        """Validate and insert a new event; raises ``ValidationFailed``."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            values = cls._prepare(cursor, EventBase(), attrs)
            values["slug"] = cls._unique_slug(cursor, values.get("name"))
            columns = [COLUMN_NAMES.get(key, key) for key in values]
            cursor.execute(
                f"INSERT INTO events ({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
                tuple(_column_value(key, value) for key, value in values.items()),
            )
            event_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(EVENT_SELECT + " WHERE id = ?", (event_id,)).fetchone()
        finally:
            conn.close()
        event = event_from_row(row)
        logger.info("User %s created event %s (%s)", event.creator_id, event.id, event.slug)
        return event

    @classmethod
    async def update(cls, event: EventRead, attrs: Dict[str, Any]) -> EventRead:
        """Validate and apply ``attrs`` to a stored event; raises ``ValidationFailed``."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT id FROM events WHERE id = ?", (event.id,)).fetchone() is None:
                raise NotFoundError(f"Event {event.id} not found")
            values = cls._prepare(cursor, event, attrs)
            if values:
                assignments = ", ".join(f"{COLUMN_NAMES.get(key, key)} = ?" for key in values)
                cursor.execute(
                    f"UPDATE events SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    tuple(_column_value(key, value) for key, value in values.items()) + (event.id,),
                )
                conn.commit()
            row = cursor.execute(EVENT_SELECT + " WHERE id = ?", (event.id,)).fetchone()
        finally:
            conn.close()
        logger.info("User %s updated event %s", attrs.get("modifier_id") or attrs.get("creator_id"), event.id)
        return event_from_row(row)

    @classmethod
    async def delete(cls, identifier: Union[int, str]) -> None:
        """Delete an event and its recorded instances.

        Raises ``NotFoundError`` if the event does not exist, including
        when it has already been deleted.
        """
        event = await cls.get(identifier)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM event_instances WHERE event_id = ?", (event.id,))
            cursor.execute("DELETE FROM events WHERE id = ?", (event.id,))
            conn.commit()
        finally:
            conn.close()
        logger.info("Deleted event %s (%s)", event.id, event.slug)

    @classmethod
    async def upcoming_events(cls, project_id: Optional[int] = None) -> List[Occurrence]:
        """Upcoming occurrences of all events, or of one project's events, by time."""
        conn = get_connection()
        try:
            if project_id is None:
                rows = conn.execute(EVENT_SELECT + " ORDER BY id").fetchall()
            else:
                rows = conn.execute(
                    EVENT_SELECT + " WHERE project_id = ? ORDER BY id", (project_id,)
                ).fetchall()
        finally:
            conn.close()
        occurrences = [
            Occurrence(event=event, time=time)
            for event in map(event_from_row, rows)
            for time in next_occurrences(event)
        ]
        occurrences.sort(key=lambda occurrence: occurrence.time)
        return occurrences

    @classmethod
    async def recent_hangout(cls, event: EventRead) -> Optional[EventInstanceRead]:
        """The most recent instance of ``event`` that has already happened."""
        conn = get_connection()
        try:
            row = conn.execute(
                """
                SELECT id, event_id, title, hangout_url, yt_video_id, created_at
                FROM event_instances
                WHERE event_id = ? AND created_at <= ?
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                (event.id, _db_timestamp(datetime.now(timezone.utc))),
            ).fetchone()
        finally:
            conn.close()
        return EventInstanceRead.model_validate(dict(row)) if row else None

    @classmethod
    async def recorded_instances(cls, event: EventRead, limit: Optional[int] = None) -> List[EventInstanceRead]:
        """Newest instances of ``event`` that have a recorded video."""
        limit = settings.event_instances_limit if limit is None else limit
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT id, event_id, title, hangout_url, yt_video_id, created_at
                FROM event_instances
                WHERE event_id = ? AND yt_video_id IS NOT NULL
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (event.id, limit),
            ).fetchall()
        finally:
            conn.close()
        return [EventInstanceRead.model_validate(dict(row)) for row in rows]

    @classmethod
    def _prepare(cls, cursor: sqlite3.Cursor, event: EventBase, attrs: Dict[str, Any]) -> Dict[str, Any]:
        """Resolve the project, validate the merged state and return column values."""
        values = {key: attrs[key] for key in WRITABLE_ATTRIBUTES if key in attrs}
        errors: List[str] = []

        for attribute, (minimum, message) in NUMERIC_ATTRIBUTES.items():
            if attribute not in values:
                continue
            value = values[attribute]
            if value is None or str(value).strip() == "":
                values[attribute] = None
                continue
            number = as_integer(value)
            if number is None:
                errors.append(f"{humanize(attribute)} is not a number")
            elif number < minimum:
                errors.append(f"{humanize(attribute)} {message}")
            else:
                values[attribute] = number

        if "project_id" in values:
            project_key = values["project_id"]
            if project_key in (None, ""):
                values["project_id"] = None
            else:
                project_row = find_project_row(cursor, project_key)
                if project_row is None:
                    errors.append("Project must exist")
                else:
                    values["project_id"] = project_row["id"]

        merged = event.model_dump()
        merged.update(values)
        errors = cls._validate(merged) + errors
        if errors:
            logger.warning("Event %s failed validation: %s", getattr(event, "id", "(new)"), errors)
            raise ValidationFailed(errors)
        return values

    @staticmethod
    def _validate(attrs: Dict[str, Any]) -> List[str]:
        errors = [
            f"{humanize(attribute)} can't be blank"
            for attribute in REQUIRED_ATTRIBUTES
            if attrs.get(attribute) in (None, "")
        ]
        repeats = attrs.get("repeats")
        if repeats not in (None, "") and repeats not in REPEAT_CHOICES:
            errors.append("Repeats is not included in the list")
        if repeats == "weekly" and attrs.get("repeats_every_n_weeks") in (None, ""):
            errors.append("Repeats every n weeks can't be blank")
        days = attrs.get("repeats_weekly_each_days_of_the_week") or []
        if any(day not in DAYS_OF_THE_WEEK for day in days):
            errors.append("Repeats weekly each days of the week is invalid")
        return errors

    @staticmethod
    def _unique_slug(cursor: sqlite3.Cursor, name: Optional[str]) -> str:
        base = slugify(name)
        taken = {
            row["slug"]
            for row in cursor.execute(
                "SELECT slug FROM events WHERE slug = ? OR slug LIKE ?", (base, f"{base}-%")
            ).fetchall()
        }
        if base not in taken:
            return base
        suffix = 2
        while f"{base}-{suffix}" in taken:
            suffix += 1
        return f"{base}-{suffix}"
