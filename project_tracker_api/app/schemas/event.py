"""
Pydantic models for event data.

``EventSubmission`` is the whitelist of fields accepted from the event
form; anything else in the request body is ignored.  ``EventBase`` and
``EventRead`` describe stored (or about to be stored) events, and the
remaining models are the view states returned by the events
controller.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field, computed_field, field_validator

from .project import ProjectOption, ProjectRead

DAYS_OF_THE_WEEK = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

REPEAT_CHOICES = ("never", "weekly", "biweekly")

# Value of ``repeat_ends_string`` meaning "the recurrence has an end date".
REPEAT_ENDS_ON = "on"
REPEAT_ENDS_NEVER = "never"


class EventSubmission(BaseModel):
    """Fields accepted from the event form.

    ``start_date``, ``start_time`` and ``next_date`` are wall-clock
    values in ``time_zone``; they are combined into ``start_datetime``
    by ``event_params.transform_params``.  Numeric fields are taken as
    submitted (form values arrive as strings) and checked by
    ``EventService`` so that bad numbers become form errors.
    """

    name: Optional[str] = Field(None, example="Scrum")
    category: Optional[str] = Field(None, example="Scrum")
    for_: Optional[str] = Field(None, alias="for", example="All")
    project_id: Optional[Union[int, str]] = Field(None, example="websiteone")
    description: Optional[str] = None
    duration: Optional[Union[int, str]] = Field(None, example=30)
    repeats: Optional[str] = Field(None, example="weekly")
    repeats_every_n_weeks: Optional[Union[int, str]] = Field(None, example=1)
    repeat_ends_string: Optional[str] = Field(None, example="on")
    repeats_weekly_each_days_of_the_week: List[str] = Field(default_factory=list, example=["monday"])
    time_zone: Optional[str] = Field(None, example="Europe/London")
    start_date: Optional[str] = Field(None, example="2026-03-02")
    start_time: Optional[str] = Field(None, example="10:00")
    next_date: Optional[str] = Field(None, example="2026-04-06")
    repeat_ends_on: Optional[str] = Field(None, example="2026-12-31")
    creator_attendance: Optional[bool] = None

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }

    @field_validator("repeats")
    @classmethod
    def normalize_repeats(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().lower()
        return "never" if value == "none" else value

    @field_validator("repeats_weekly_each_days_of_the_week")
    @classmethod
    def normalize_days(cls, value: List[str]) -> List[str]:
        return [day.strip().lower() for day in value if day and day.strip()]


class EventBase(BaseModel):
    """Attributes of an event, saved or not."""

    name: Optional[str] = None
    category: Optional[str] = None
    for_: Optional[str] = Field(None, alias="for")
    description: Optional[str] = None
    duration: Optional[int] = None
    start_datetime: Optional[datetime] = None
    repeats: Optional[str] = None
    repeats_every_n_weeks: Optional[int] = None
    repeats_weekly_each_days_of_the_week: List[str] = Field(default_factory=list)
    repeat_ends: bool = False
    repeat_ends_on: Optional[str] = None
    time_zone: Optional[str] = None
    project_id: Optional[int] = None
    creator_id: Optional[int] = None
    modifier_id: Optional[int] = None
    creator_attendance: bool = True

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
    }

    @computed_field
    @property
    def repeat_ends_string(self) -> str:
        return REPEAT_ENDS_ON if self.repeat_ends else REPEAT_ENDS_NEVER


class EventRead(EventBase):
    """Schema for reading a stored event."""

    id: int
    slug: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EventEnvelope(BaseModel):
    event: EventRead
    notice: Optional[str] = None


class EventErrorResponse(BaseModel):
    error: str


class EventInstanceRead(BaseModel):
    """A recorded hangout of an event."""

    id: int
    event_id: int
    title: Optional[str] = None
    hangout_url: Optional[str] = None
    yt_video_id: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class Occurrence(BaseModel):
    """One concrete calendar instance of an event."""

    event: EventRead
    time: datetime


class HangoutsManagement(BaseModel):
    """Partial view state returned to XHR requests on the event page."""

    event: EventRead
    recent_hangout: Optional[EventInstanceRead] = None
    event_instances: List[EventInstanceRead] = Field(default_factory=list)


class EventShow(HangoutsManagement):
    """Full view state of the event page."""

    schedule: List[datetime] = Field(default_factory=list)


class EventIndex(BaseModel):
    """View state of the events listing."""

    projects: List[ProjectRead]
    project: Optional[ProjectRead] = None
    events: List[Occurrence]


class EventForm(BaseModel):
    """View state of the new/edit event form."""

    event: Union[EventRead, EventBase]
    projects: List[ProjectOption]
    flash: Dict[str, str] = Field(default_factory=dict)
