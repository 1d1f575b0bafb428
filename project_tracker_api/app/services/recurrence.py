"""
Expansion of event recurrence rules into concrete occurrences.

Schedules are computed in UTC from the stored ``start_datetime`` with
``dateutil.rrule``.  Weekly events repeat every
``repeats_every_n_weeks`` weeks on the selected weekdays (the start
weekday when none is selected) until the end of the ``repeat_ends_on``
day when ``repeat_ends`` is set.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from dateutil import parser as date_parser
from dateutil.rrule import FR, MO, SA, SU, TH, TU, WE, WEEKLY, rrule

from ..core.config import settings
from ..schemas.event import DAYS_OF_THE_WEEK, EventBase

WEEKDAYS = dict(zip(DAYS_OF_THE_WEEK, (MO, TU, WE, TH, FR, SA, SU)))
REPEATING = ("weekly", "biweekly")


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime, treating naive values as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def repeat_end(event: EventBase) -> Optional[datetime]:
    """Last instant of the ``repeat_ends_on`` day, or ``None`` if open-ended."""
    if not event.repeat_ends or not event.repeat_ends_on:
        return None
    try:
        ends_on = date_parser.parse(event.repeat_ends_on)
    except (ValueError, OverflowError):
        return None
    return as_utc(ends_on).replace(hour=23, minute=59, second=59, microsecond=0)


def schedule(event: EventBase) -> Optional[rrule]:
    """Weekly recurrence rule of ``event``; ``None`` for one-off events."""
    if event.start_datetime is None or event.repeats not in REPEATING:
        return None
    start = as_utc(event.start_datetime)
    interval = event.repeats_every_n_weeks or (2 if event.repeats == "biweekly" else 1)
    weekdays = [
        WEEKDAYS[day] for day in event.repeats_weekly_each_days_of_the_week if day in WEEKDAYS
    ]
    return rrule(
        WEEKLY,
        dtstart=start,
        interval=interval,
        byweekday=weekdays or [start.weekday()],
        until=repeat_end(event),
    )


def next_occurrences(
    event: EventBase,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[datetime]:
    """Occurrences of ``event`` between ``start`` and ``end``, oldest first.

    The window defaults to ``collection_time_past_minutes`` ago until
    ``occurrence_window_days`` from now, so an occurrence that has just
    started is still listed.  At most ``limit`` occurrences are returned
    (``settings.occurrence_limit`` by default).
    """
    if event.start_datetime is None:
        return []
    now = datetime.now(timezone.utc)
    start = as_utc(start) if start else now - timedelta(minutes=settings.collection_time_past_minutes)
    end = as_utc(end) if end else now + timedelta(days=settings.occurrence_window_days)
    limit = settings.occurrence_limit if limit is None else limit

    rule = schedule(event)
    if rule is None:
        first = as_utc(event.start_datetime)
        return [first] if start <= first <= end and limit > 0 else []

    occurrences: List[datetime] = []
    for occurrence in rule.xafter(start, inc=True):
        if occurrence > end or len(occurrences) >= limit:
            break
        occurrences.append(occurrence)
    return occurrences
