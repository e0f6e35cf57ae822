"""
Authorization strategies.

Two independent sources decide whether an attendee may attend an event:

* ``explicit``: the provisioned ``attendee_event`` relation.
* ``registered_events``: the legacy free-text ``registered_events`` field of
  the attendee, matched against event codes and names.

The ``AUTHORIZATION_STRATEGY`` setting picks exactly one of them.
"""
from abc import ABC, abstractmethod

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.config import settings
from qrcheckin.exceptions import ConfigurationError
from qrcheckin.models import Attendee, AttendeeEvent, Event
from qrcheckin.utils.text import (
    label_words,
    normalize_label,
    resolve_alias,
    split_event_labels,
)


def event_order():
    """Start time ascending, events without a start last, then name."""
    return (Event.starts_at.is_(None), Event.starts_at, Event.name)


class AuthorizationStrategy(ABC):
    """Answers whether an attendee is permitted to attend an event."""

    name: str

    @abstractmethod
    async def is_permitted(
        self, session: AsyncSession, attendee: Attendee, event: Event
    ) -> bool:
        """Whether the pair is permitted, ignoring the event's active flag."""

    @abstractmethod
    async def permitted_events(
        self, session: AsyncSession, attendee: Attendee
    ) -> list[Event]:
        """Active events the attendee is permitted for, in catalog order."""


class ExplicitAuthorization(AuthorizationStrategy):
    """Authorization from the attendee_event relation."""

    name = "explicit"

    async def is_permitted(self, session, attendee, event) -> bool:
        result = await session.execute(
            select(AttendeeEvent.permitted).where(
                AttendeeEvent.attendee_id == attendee.id,
                AttendeeEvent.event_id == event.id,
            )
        )
        return bool(result.scalar_one_or_none())

    async def permitted_events(self, session, attendee) -> list[Event]:
        result = await session.execute(
            select(Event)
            .join(AttendeeEvent, AttendeeEvent.event_id == Event.id)
            .where(
                AttendeeEvent.attendee_id == attendee.id,
                AttendeeEvent.permitted.is_(True),
                Event.is_active.is_(True),
            )
            .order_by(*event_order())
        )
        return list(result.scalars())


class RegisteredEventsAuthorization(AuthorizationStrategy):
    """Authorization derived from the attendee's free-text event list."""

    name = "registered_events"

    def __init__(self, aliases: dict | None = None):
        self.aliases = aliases or {}

    def matches(self, registered_events: str | None, event: Event) -> bool:
        """
        A label matches when, after normalization and aliasing, it equals the
        event code or name, or contains the event code as a whole word.
        """
        code = normalize_label(event.code)
        name = normalize_label(event.name)

        for label in split_event_labels(registered_events):
            canonical = resolve_alias(label, self.aliases)
            if canonical in (code, name):
                return True
            if code and code in label_words(canonical):
                return True
        return False

    async def is_permitted(self, session, attendee, event) -> bool:
        return self.matches(attendee.registered_events, event)

    async def permitted_events(self, session, attendee) -> list[Event]:
        if not attendee.registered_events:
            return []

        result = await session.execute(
            select(Event).where(Event.is_active.is_(True)).order_by(*event_order())
        )
        return [
            event
            for event in result.scalars()
            if self.matches(attendee.registered_events, event)
        ]


def get_authorization_strategy(name: str | None = None) -> AuthorizationStrategy:
    """Build the strategy named by the argument or the AUTHORIZATION_STRATEGY setting."""
    name = name or settings.get("AUTHORIZATION_STRATEGY", "explicit")

    if name == ExplicitAuthorization.name:
        return ExplicitAuthorization()
    if name == RegisteredEventsAuthorization.name:
        return RegisteredEventsAuthorization(dict(settings.get("EVENT_ALIASES") or {}))

    raise ConfigurationError(
        "Unknown authorization strategy", setting="AUTHORIZATION_STRATEGY", value=name
    )
