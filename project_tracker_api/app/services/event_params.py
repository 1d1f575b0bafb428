"""
Normalisation of submitted event form fields.

``transform_params`` turns an ``EventSubmission`` into the attribute
dict that is written to the ``events`` table:

* the acting user becomes ``creator_id`` of a new event, or
  ``modifier_id`` of an event that already has a creator;
* ``repeat_ends`` is true only when ``repeat_ends_string == "on"``;
* ``repeat_ends_on`` is stored as ``"<date> UTC"`` (or ``""``);
* ``biweekly`` events always repeat every 2 weeks;
* ``start_date``/``start_time`` are combined into a UTC
  ``start_datetime``, see ``resolve_start_datetime``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as date_parser

from ..schemas.event import REPEAT_ENDS_ON, EventBase, EventSubmission
from .errors import ValidationFailed

# Fields copied verbatim from the submission when present.
PERMITTED_FIELDS = (
    "name",
    "category",
    "description",
    "duration",
    "repeats",
    "repeats_every_n_weeks",
    "time_zone",
    "creator_attendance",
)

REPEAT_ENDS_ON_SUFFIX = " UTC"
BIWEEKLY_INTERVAL = 2


class InvalidStartTime(ValidationFailed):
    """The submitted start date, time or time zone cannot be interpreted."""

    def __init__(self, message: str):
        super().__init__([message])


def as_integer(value: Any) -> Optional[int]:
    """``30`` or ``"30"`` -> ``30``; ``None`` for anything that is not a whole number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def parse_wall_clock(date_value: str, time_value: str) -> datetime:
    """Parse a date and a time of day into a naive wall-clock datetime."""
    try:
        parsed = date_parser.parse(f"{date_value} {time_value}")
    except (ValueError, OverflowError) as exc:
        raise InvalidStartTime("Start datetime is invalid") from exc
    return parsed.replace(tzinfo=None)


def resolve_start_datetime(
    start_date: str,
    start_time: str,
    time_zone: Optional[str],
    next_date: Optional[str] = None,
) -> datetime:
    """Convert the submitted start date and time to an aware UTC datetime.

    Recurring events are anchored on their next occurrence, so the UTC
    offset used for the conversion is the offset in effect at
    ``next_date`` + ``start_time`` (as local time in ``time_zone``),
    not the offset of the start date itself.  When the two dates fall
    on opposite sides of a daylight-saving transition the stored start
    time is off by the DST delta; within the same regime the result is
    exact.  Without ``next_date`` the start date's own offset is used.
    """
    try:
        zone = ZoneInfo(time_zone) if time_zone else timezone.utc
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidStartTime("Time zone is invalid") from exc

    start_local = parse_wall_clock(start_date, start_time)
    anchor_local = parse_wall_clock(next_date, start_time) if next_date else start_local
    offset = zone.utcoffset(anchor_local) or timedelta(0)
    return (start_local - offset).replace(tzinfo=timezone.utc)


def transform_params(
    submission: EventSubmission,
    acting_user_id: int,
    event: Optional[EventBase] = None,
) -> Dict[str, Any]:
    """Return the normalised attributes for creating or updating ``event``.

    ``project_id`` is returned as submitted (slug or id); resolving it
    to a stored project is left to the caller.  Raises
    ``InvalidStartTime`` if the start date/time cannot be converted.
    """
    submitted = submission.model_dump(exclude_unset=True)
    params: Dict[str, Any] = {key: submitted[key] for key in PERMITTED_FIELDS if key in submitted}
    if "for_" in submitted:
        params["for_"] = submitted["for_"]
    if "project_id" in submitted:
        params["project_id"] = submitted["project_id"]
    if "repeats_weekly_each_days_of_the_week" in submitted:
        params["repeats_weekly_each_days_of_the_week"] = list(
            dict.fromkeys(submission.repeats_weekly_each_days_of_the_week)
        )

    if event is not None and event.creator_id:
        params["modifier_id"] = acting_user_id
    else:
        params["creator_id"] = acting_user_id

    if submission.start_date and submission.start_time:
        params["start_datetime"] = resolve_start_datetime(
            submission.start_date,
            submission.start_time,
            submission.time_zone,
            submission.next_date,
        )

    params["repeat_ends"] = submission.repeat_ends_string == REPEAT_ENDS_ON
    params["repeat_ends_on"] = (
        f"{submission.repeat_ends_on}{REPEAT_ENDS_ON_SUFFIX}" if submission.repeat_ends_on else ""
    )
    if submission.repeats == "biweekly":
        params["repeats_every_n_weeks"] = BIWEEKLY_INTERVAL
    return params
