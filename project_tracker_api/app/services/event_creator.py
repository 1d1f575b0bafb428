"""
Creation of events with a two-outcome result.

``EventCreator.perform`` never raises for invalid input: it returns
either ``EventCreated`` with the stored event or
``EventCreationFailed`` with the validation messages, and the caller
branches on the type.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

from ..schemas.event import EventRead
from .errors import ValidationFailed, to_sentence
from .event_service import EventService


@dataclass
class EventCreated:
    event: EventRead


@dataclass
class EventCreationFailed:
    errors: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return to_sentence(self.errors)


EventCreationResult = Union[EventCreated, EventCreationFailed]


class EventCreator:
    """Builds and persists a new event from normalised attributes."""

    def __init__(self, service: type = EventService):
        self.service = service

    async def perform(self, attrs: Dict[str, Any]) -> EventCreationResult:
        try:
            event = await self.service.create(attrs)
        except ValidationFailed as exc:
            return EventCreationFailed(errors=exc.messages)
        return EventCreated(event=event)
