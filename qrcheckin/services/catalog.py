"""
Event Catalog

Read-only access to events: resolving the event a scanner refers to and
listing the active events an attendee is permitted for.
"""
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.config import settings
from qrcheckin.models import Attendee, Event
from qrcheckin.services.authorization import (
    AuthorizationStrategy,
    get_authorization_strategy,
)
from qrcheckin.utils.text import normalize_label, resolve_alias


class EventCatalog:
    """Service for event lookups."""

    def __init__(
        self, session: AsyncSession, strategy: AuthorizationStrategy | None = None
    ):
        self.session = session
        self.strategy = strategy or get_authorization_strategy()

    async def list_permitted_active_events(self, attendee: Attendee) -> list[Event]:
        """Active events the attendee may attend, earliest start first."""
        return await self.strategy.permitted_events(self.session, attendee)

    async def is_permitted(self, attendee: Attendee, event: Event) -> bool:
        return await self.strategy.is_permitted(self.session, attendee, event)

    async def resolve_event(self, ref: str | uuid.UUID | None) -> Event | None:
        """
        Resolve a scanner's event reference.

        Accepts an event UUID, or an event code such as "cumbre" or a label
        like "DIGI AMERICAS" that the EVENT_ALIASES setting maps to a code.
        Returns None for unknown events.
        """
        if ref is None:
            return None

        if isinstance(ref, uuid.UUID):
            return await self.session.get(Event, ref)

        text = str(ref).strip()
        if not text:
            return None

        try:
            event_id = uuid.UUID(text)
        except ValueError:
            event_id = None
        if event_id is not None:
            return await self.session.get(Event, event_id)

        code = resolve_alias(text, settings.get("EVENT_ALIASES") or {})
        result = await self.session.execute(
            select(Event).where(func.upper(Event.code) == code)
        )
        event = result.scalar_one_or_none()
        if event is not None:
            return event

        # Codes stored with accents are compared after normalization
        result = await self.session.execute(select(Event))
        for candidate in result.scalars():
            if normalize_label(candidate.code) == code:
                return candidate
        return None
