"""
Check-in Ledger

The check-in state machine for one (attendee, event) pair::

    UNAUTHORIZED -> AUTHORIZED_NOT_CHECKED_IN -> CHECKED_IN

CHECKED_IN is terminal. A check-in runs as a single transaction on its own
session: the attendee row is locked first, so concurrent scans of the same
attendee queue up behind each other and the existence check cannot race.
The unique constraint on checkin_record backs this up on backends without
row locks.
"""
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qrcheckin.config import settings
from qrcheckin.database import TransactionGate, transaction_gate
from qrcheckin.database_utils import database_transaction
from qrcheckin.exceptions import ConflictError, forbidden
from qrcheckin.logging_config import get_contextual_logger, log_performance
from qrcheckin.models import Attendee, CheckinRecord, Event
from qrcheckin.models.checkin import as_utc
from qrcheckin.services.authorization import AuthorizationStrategy
from qrcheckin.services.catalog import EventCatalog
from qrcheckin.services.directory import AttendeeDirectory
from qrcheckin.services.qr_codec import AttendeeKey

logger = get_contextual_logger("ledger")


class CheckinStatus(str, Enum):
    CHECKED_IN = "checked_in"
    ALREADY_CHECKED_IN = "already_checked_in"


@dataclass
class CheckinResult:
    status: CheckinStatus
    scanned_at: datetime
    attendee: Attendee
    event: Event
    gate: str | None = None

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "status": self.status.value,
            "scanned_at": self.scanned_at.isoformat(),
            "gate": self.gate,
            "attendee": self.attendee.to_summary(),
            "event": self.event.to_summary(),
        }


@dataclass
class LookupResult:
    attendee: Attendee
    events: list[Event] = field(default_factory=list)


def ensure_active(attendee: Attendee) -> None:
    if not attendee.is_active:
        forbidden("Attendee is not active", reason="inactive_attendee")


class CheckinLedger:
    """Records check-ins, at most once per attendee and event."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        strategy: AuthorizationStrategy | None = None,
        gate: TransactionGate | None = None,
    ):
        self.session_factory = session_factory
        self.strategy = strategy
        self.gate = gate or transaction_gate

    async def lookup(self, session: AsyncSession, key: AttendeeKey) -> LookupResult:
        """Read-only attendee resolution with the same checks as check_in."""
        attendee = await AttendeeDirectory(session).find_by_identifier(key)
        ensure_active(attendee)

        events = await EventCatalog(
            session, self.strategy
        ).list_permitted_active_events(attendee)
        return LookupResult(attendee=attendee, events=events)

    @log_performance("check_in", threshold=2.0)
    async def check_in(
        self, key: AttendeeKey, event_ref: str | uuid.UUID, gate: str | None = None
    ) -> CheckinResult:
        """
        Check an attendee in to an event.

        Returns CHECKED_IN for the first successful scan and
        ALREADY_CHECKED_IN, with the original timestamp, for every later one.

        Raises:
            NotFoundError: No attendee matches the key
            ForbiddenError: Inactive attendee, unknown or inactive event, or
                the pair is not permitted
            DatabaseError: The backing store failed; nothing was written
        """
        async with self.gate.track():
            async with self.session_factory() as session:
                try:
                    return await self._check_in(session, key, event_ref, gate)
                except ConflictError:
                    # A concurrent scan inserted the record first
                    logger.info(
                        "Concurrent check-in detected, reading existing record",
                        extra={"operation": "check_in"},
                    )
                    return await self._existing(session, key, event_ref)

    async def _check_in(
        self,
        session: AsyncSession,
        key: AttendeeKey,
        event_ref: str | uuid.UUID,
        gate: str | None,
    ) -> CheckinResult:
        async with database_transaction(session, "check_in"):
            await self._apply_lock_timeout(session)

            attendee = await AttendeeDirectory(session).find_by_identifier(
                key, for_update=True
            )
            ensure_active(attendee)
            event = await self._authorized_event(session, attendee, event_ref)

            existing = await self._find_record(session, attendee, event)
            if existing is not None:
                return CheckinResult(
                    status=CheckinStatus.ALREADY_CHECKED_IN,
                    scanned_at=as_utc(existing.scanned_at),
                    attendee=attendee,
                    event=event,
                    gate=existing.gate,
                )

            record = CheckinRecord(
                attendee_id=attendee.id,
                event_id=event.id,
                scanned_at=datetime.now(UTC),
                gate=gate,
            )
            session.add(record)
            await session.flush()

            logger.with_context(
                attendee_id=str(attendee.id), event_id=str(event.id)
            ).info(
                f"Checked in {attendee.display_name or attendee.id} to {event.code}",
                extra={"operation": "check_in", "gate": gate},
            )
            return CheckinResult(
                status=CheckinStatus.CHECKED_IN,
                scanned_at=as_utc(record.scanned_at),
                attendee=attendee,
                event=event,
                gate=gate,
            )

    async def _existing(
        self, session: AsyncSession, key: AttendeeKey, event_ref: str | uuid.UUID
    ) -> CheckinResult:
        async with database_transaction(session, "check_in_reread"):
            attendee = await AttendeeDirectory(session).find_by_identifier(key)
            event = await EventCatalog(session, self.strategy).resolve_event(event_ref)
            record = None
            if event is not None:
                record = await self._find_record(session, attendee, event)
            if record is None:
                # Constraint violation without a visible record
                raise ConflictError("Check-in could not be recorded", operation="check_in")

            return CheckinResult(
                status=CheckinStatus.ALREADY_CHECKED_IN,
                scanned_at=as_utc(record.scanned_at),
                attendee=attendee,
                event=event,
                gate=record.gate,
            )

    async def _authorized_event(
        self, session: AsyncSession, attendee: Attendee, event_ref: str | uuid.UUID
    ) -> Event:
        # Unknown events are reported as forbidden so existence is not leaked
        catalog = EventCatalog(session, self.strategy)
        event = await catalog.resolve_event(event_ref)
        if event is None or not event.is_active:
            forbidden("Attendee is not permitted for this event", reason="event_unavailable")
        if not await catalog.is_permitted(attendee, event):
            forbidden("Attendee is not permitted for this event", reason="not_permitted")
        return event

    async def _find_record(
        self, session: AsyncSession, attendee: Attendee, event: Event
    ) -> CheckinRecord | None:
        result = await session.execute(
            select(CheckinRecord).where(
                CheckinRecord.attendee_id == attendee.id,
                CheckinRecord.event_id == event.id,
            )
        )
        return result.scalar_one_or_none()

    async def _apply_lock_timeout(self, session: AsyncSession) -> None:
        lock_timeout_ms = int(settings.get("LOCK_TIMEOUT_MS", 5000))
        if lock_timeout_ms and session.get_bind().dialect.name == "postgresql":
            await session.execute(text(f"SET LOCAL lock_timeout = {lock_timeout_ms}"))
