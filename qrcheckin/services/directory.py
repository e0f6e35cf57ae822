"""
Attendee Directory

Read-oriented attendee lookups plus the one maintenance write: assigning
QR codes to attendees that have none.
"""
import uuid
from dataclasses import dataclass

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.config import settings
from qrcheckin.database_utils import database_transaction
from qrcheckin.exceptions import ConflictError, NotFoundError
from qrcheckin.logging_config import get_contextual_logger
from qrcheckin.models import Attendee
from qrcheckin.services.qr_codec import AttendeeKey, KeyKind

logger = get_contextual_logger("directory")

# Attempts per attendee when a freshly generated code collides
MAX_CODE_ATTEMPTS = 3


@dataclass(frozen=True)
class NameMatch:
    """A display-name match; never as reliable as an identifier match."""

    attendee: Attendee
    confidence: str = "low"

    def to_dict(self) -> dict:
        return {
            "qr_code": self.attendee.qr_code,
            "display_name": self.attendee.display_name,
            "organization": self.attendee.organization,
            "confidence": self.confidence,
        }


def clamp_page(limit: int | None, offset: int | None) -> tuple[int, int]:
    """Clamp pagination to 1..MAX_PAGE_SIZE and a non-negative offset."""
    max_size = settings.get("MAX_PAGE_SIZE", 5000)
    if limit is None:
        limit = settings.get("DEFAULT_PAGE_SIZE", 1000)
    limit = min(max(int(limit), 1), max_size)
    offset = max(int(offset or 0), 0)
    return limit, offset


def generate_qr_code() -> str:
    """Generate a globally unique opaque attendee code."""
    return uuid.uuid4().hex


class AttendeeDirectory:
    """Service for attendee lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_by_identifier(
        self, key: AttendeeKey, for_update: bool = False
    ) -> Attendee:
        """
        Exact, case-sensitive lookup on the identifier column for the key kind.

        With for_update the row is locked until the surrounding transaction
        ends, serializing concurrent scans of the same attendee.
        """
        column = Attendee.qr_code if key.kind is KeyKind.CODE else Attendee.email
        query = select(Attendee).where(column == key.value)
        if for_update:
            query = query.with_for_update()

        result = await self.session.execute(query)
        attendee = result.scalar_one_or_none()

        if attendee is None:
            raise NotFoundError("Attendee", message="No attendee matches this QR code")
        return attendee

    async def find_by_name(self, name: str, limit: int = 5) -> list[NameMatch]:
        """Fallback match on display name. Results are low confidence."""
        if not name or not name.strip():
            return []

        result = await self.session.execute(
            select(Attendee)
            .where(func.lower(Attendee.display_name) == name.strip().lower())
            .order_by(Attendee.id)
            .limit(limit)
        )
        return [NameMatch(attendee) for attendee in result.scalars()]

    async def list_attendees(
        self,
        active_only: bool = False,
        text_query: str | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Attendee]:
        """
        List attendees ordered by display name (nulls last), then id.

        Args:
            active_only: Restrict to active attendees; otherwise everyone
            text_query: Case-insensitive substring of name, email or organization
            limit: Page size, clamped to 1..MAX_PAGE_SIZE
            offset: Rows to skip, negative values count as 0
        """
        limit, offset = clamp_page(limit, offset)

        query = select(Attendee)
        if active_only:
            query = query.where(Attendee.is_active.is_(True))

        if text_query and text_query.strip():
            needle = text_query.strip().lower()
            query = query.where(
                or_(
                    func.lower(Attendee.display_name).contains(needle, autoescape=True),
                    func.lower(Attendee.email).contains(needle, autoescape=True),
                    func.lower(Attendee.organization).contains(needle, autoescape=True),
                )
            )

        query = (
            query.order_by(
                Attendee.display_name.is_(None),
                Attendee.display_name,
                Attendee.id,
            )
            .limit(limit)
            .offset(offset)
        )

        result = await self.session.execute(query)
        return list(result.scalars())

    async def assign_missing_identifiers(self, only_active: bool = False) -> int:
        """
        Give every attendee without a QR code a freshly generated one.

        Each write is conditional on the code still being empty, so re-runs and
        overlapping runs leave existing codes alone. Returns the rows updated.
        """
        query = select(Attendee.id).where(Attendee.qr_code.is_(None))
        if only_active:
            query = query.where(Attendee.is_active.is_(True))

        result = await self.session.execute(query)
        attendee_ids = list(result.scalars())
        # Ends the read transaction, keeping the caller's pending work
        await self.session.commit()

        updated = 0
        for attendee_id in attendee_ids:
            updated += await self._assign_code(attendee_id)

        logger.info(
            f"Assigned QR codes to {updated} of {len(attendee_ids)} attendee(s)",
            extra={"operation": "ensure_qr"},
        )
        return updated

    async def _assign_code(self, attendee_id: uuid.UUID) -> int:
        for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
            try:
                async with database_transaction(self.session, "ensure_qr"):
                    result = await self.session.execute(
                        update(Attendee)
                        .where(Attendee.id == attendee_id, Attendee.qr_code.is_(None))
                        .values(qr_code=generate_qr_code())
                    )
                return result.rowcount
            except ConflictError:
                logger.warning(
                    f"Generated QR code collided (attempt {attempt})",
                    extra={"operation": "ensure_qr", "attendee_id": str(attendee_id)},
                )
        raise ConflictError("Could not generate a unique QR code", operation="ensure_qr")
