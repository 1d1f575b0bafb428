"""
Event endpoints.

These routes back the event pages: new/edit forms, the event page and
the listing, and create/update/destroy.  Pages are returned as JSON
view states.  ``create`` and ``update`` answer requests that accept
``application/json`` with a JSON body; other requests get a redirect
on success and the form view state with a flash alert on failure.

Listing and viewing events is public; everything else needs an acting
user.
"""

import logging
import sqlite3
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from project_tracker_api.app.core.security import get_current_user
from project_tracker_api.app.schemas.event import (
    REPEAT_ENDS_ON,
    EventBase,
    EventEnvelope,
    EventErrorResponse,
    EventForm,
    EventIndex,
    EventRead,
    EventShow,
    EventSubmission,
    HangoutsManagement,
)
from project_tracker_api.app.schemas.project import ProjectOption
from project_tracker_api.app.services.errors import NotFoundError, ValidationFailed, to_sentence
from project_tracker_api.app.services.event_creator import EventCreated, EventCreationFailed, EventCreator
from project_tracker_api.app.services.event_params import (
    REPEAT_ENDS_ON_SUFFIX,
    InvalidStartTime,
    as_integer,
    resolve_start_datetime,
    transform_params,
)
from project_tracker_api.app.services.event_service import EventService, humanize
from project_tracker_api.app.services.project_service import ProjectService
from project_tracker_api.app.services.recurrence import next_occurrences


router = APIRouter()
logger = logging.getLogger(__name__)

UPDATE_FAILURE_PREFIX = "Failed to update event:"
UNEXPECTED_UPDATE_ERROR = "attributes invalid"


def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


def is_xhr(request: Request) -> bool:
    return request.headers.get("x-requested-with", "").lower() == "xmlhttprequest"


def event_path(event: EventRead) -> str:
    return f"/events/{event.slug}"


async def project_options() -> List[ProjectOption]:
    return [
        ProjectOption(id=project.id, title=project.title)
        for project in await ProjectService.active_projects()
    ]


async def find_event(event_id: str) -> EventRead:
    try:
        return await EventService.get(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


async def draft_from(submission: EventSubmission) -> EventBase:
    """Unsaved event echoing the submitted values back into the form.

    Values that cannot be interpreted, such as an unknown project or an
    unparseable start time, are left blank.
    """
    project_id: Optional[int] = None
    if submission.project_id not in (None, ""):
        try:
            project_id = (await ProjectService.find(submission.project_id)).id
        except NotFoundError:
            project_id = None

    start_datetime = None
    if submission.start_date and submission.start_time:
        try:
            start_datetime = resolve_start_datetime(
                submission.start_date,
                submission.start_time,
                submission.time_zone,
                submission.next_date,
            )
        except InvalidStartTime:
            start_datetime = None

    return EventBase(
        name=submission.name,
        category=submission.category,
        for_=submission.for_,
        description=submission.description,
        duration=as_integer(submission.duration),
        start_datetime=start_datetime,
        repeats=submission.repeats,
        repeats_every_n_weeks=as_integer(submission.repeats_every_n_weeks),
        repeats_weekly_each_days_of_the_week=submission.repeats_weekly_each_days_of_the_week,
        repeat_ends=submission.repeat_ends_string == REPEAT_ENDS_ON,
        repeat_ends_on=(
            f"{submission.repeat_ends_on}{REPEAT_ENDS_ON_SUFFIX}" if submission.repeat_ends_on else None
        ),
        time_zone=submission.time_zone,
        project_id=project_id,
    )


async def render_form(event: Union[EventRead, EventBase], alert: str) -> JSONResponse:
    form = EventForm(event=event, projects=await project_options(), flash={"alert": alert})
    return JSONResponse(jsonable_encoder(form), status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


async def failure_response(request: Request, alert: str, event: Union[EventRead, EventBase]) -> JSONResponse:
    """``{"error": alert}`` for JSON clients, the form with ``alert`` otherwise."""
    if wants_json(request):
        return JSONResponse(
            jsonable_encoder(EventErrorResponse(error=alert)),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
    return await render_form(event, alert)


def submission_messages(exc: RequestValidationError) -> List[str]:
    """One "<Field> is invalid" message per malformed field of the body."""
    messages: List[str] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        if len(loc) > 1 and loc[0] == "body" and isinstance(loc[1], str):
            message = f"{humanize(loc[1])} is invalid"
        else:
            message = "Event is invalid"
        if message not in messages:
            messages.append(message)
    return messages


async def submission_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """Report malformed create/update bodies like failed saves.

    Other routes keep FastAPI's default validation response.
    """
    endpoint = request.scope.get("endpoint")
    if endpoint is create_event:
        return await failure_response(request, to_sentence(submission_messages(exc)), EventBase())
    if endpoint is update_event:
        try:
            event = await EventService.get(request.path_params["event_id"])
        except NotFoundError as e:
            return JSONResponse({"detail": str(e)}, status_code=status.HTTP_404_NOT_FOUND)
        alert = " ".join([UPDATE_FAILURE_PREFIX, *submission_messages(exc)])
        return await failure_response(request, alert, event)
    return await request_validation_exception_handler(request, exc)


@router.get("/", response_model=EventIndex)
async def list_events(project_id: Optional[str] = Query(None)) -> EventIndex:
    """List upcoming occurrences, optionally of one project (slug or id)."""
    project = None
    if project_id:
        try:
            project = await ProjectService.find(project_id)
        except NotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return EventIndex(
        projects=await ProjectService.active_projects(),
        project=project,
        events=await EventService.upcoming_events(project.id if project else None),
    )


@router.get("/new", response_model=EventForm)
async def new_event(
    name: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    audience: Optional[str] = Query(None, alias="for"),
    project: Optional[str] = Query(None),
    project_id: Optional[str] = Query(None),
    current_user: dict = Depends(get_current_user),
) -> EventForm:
    """Return the "new event" form with default values."""
    try:
        event = await EventService.build_new(
            name=name,
            category=category,
            for_=audience,
            project=project,
            project_id=project_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return EventForm(event=event, projects=await project_options())


@router.post(
    "/",
    response_model=None,
    status_code=status.HTTP_201_CREATED,
    responses={201: {"model": EventEnvelope}, 422: {"model": EventErrorResponse}},
)
async def create_event(
    request: Request,
    submission: EventSubmission,
    current_user: dict = Depends(get_current_user),
) -> Response:
    """Create an event; the acting user becomes its creator."""
    try:
        attrs = transform_params(submission, current_user["user_id"])
        result = await EventCreator().perform(attrs)
    except ValidationFailed as e:
        result = EventCreationFailed(errors=e.messages)

    if isinstance(result, EventCreated):
        if wants_json(request):
            return JSONResponse(
                jsonable_encoder(EventEnvelope(event=result.event)),
                status_code=status.HTTP_201_CREATED,
            )
        return RedirectResponse(event_path(result.event), status_code=status.HTTP_303_SEE_OTHER)

    return await failure_response(request, result.message, await draft_from(submission))


@router.get("/{event_id}", response_model=None)
async def show_event(request: Request, event_id: str) -> Union[EventShow, HangoutsManagement]:
    """Return the event page, or only its hangouts part for XHR requests."""
    event = await find_event(event_id)
    recent_hangout = await EventService.recent_hangout(event)
    event_instances = await EventService.recorded_instances(event)
    if is_xhr(request):
        return HangoutsManagement(
            event=event,
            recent_hangout=recent_hangout,
            event_instances=event_instances,
        )
    return EventShow(
        event=event,
        schedule=next_occurrences(event),
        recent_hangout=recent_hangout,
        event_instances=event_instances,
    )


@router.get("/{event_id}/edit", response_model=EventForm)
async def edit_event(event_id: str, current_user: dict = Depends(get_current_user)) -> EventForm:
    """Return the edit form of an event."""
    event = await find_event(event_id)
    return EventForm(event=event, projects=await project_options())


@router.api_route("/{event_id}", methods=["PUT", "PATCH"], response_model=None)
async def update_event(
    request: Request,
    event_id: str,
    submission: EventSubmission,
    current_user: dict = Depends(get_current_user),
) -> Response:
    """Update an event; the acting user is recorded as its modifier.

    Validation messages are shown to the user.  Unexpected storage
    errors are logged and reported only as "attributes invalid".
    """
    event = await find_event(event_id)
    errors: List[str] = []
    unexpected_error: Optional[str] = None
    updated: Optional[EventRead] = None
    try:
        attrs = transform_params(submission, current_user["user_id"], event)
        updated = await EventService.update(event, attrs)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValidationFailed as e:
        errors = e.messages
    except sqlite3.Error:
        logger.exception("Unexpected error while updating event %s", event.id)
        unexpected_error = UNEXPECTED_UPDATE_ERROR

    if updated is not None:
        if wants_json(request):
            return JSONResponse(
                jsonable_encoder(EventEnvelope(event=updated, notice="Event Updated"))
            )
        return RedirectResponse(event_path(updated), status_code=status.HTTP_303_SEE_OTHER)

    alert = " ".join([UPDATE_FAILURE_PREFIX, *errors, *filter(None, [unexpected_error])])
    return await failure_response(request, alert, event)


@router.delete("/{event_id}", response_model=None)
async def destroy_event(
    request: Request,
    event_id: str,
    current_user: dict = Depends(get_current_user),
) -> Response:
    """Delete an event and redirect to the listing.

    Deleting an unknown or already deleted event is a 404.
    """
    try:
        await EventService.delete(event_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    if wants_json(request):
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return RedirectResponse("/events/", status_code=status.HTTP_303_SEE_OTHER)
