"""
Check-in record model.

At most one record exists per (attendee, event); the unique constraint is
what guarantees it when several scanners race.
"""
import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrcheckin.database import Base

# Forward references for type hints
if False:  # TYPE_CHECKING
    from .attendee import Attendee
    from .event import Event


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class CheckinRecord(Base):
    """Durable proof that an attendee was scanned at an event."""

    __tablename__ = "checkin_record"
    __table_args__ = (
        UniqueConstraint("attendee_id", "event_id", name="uq_checkin_attendee_event"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    attendee_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("attendee.id", ondelete="RESTRICT"), nullable=False
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("event.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    scanned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    gate: Mapped[Optional[str]] = mapped_column(String(100))

    # Relationships
    attendee: Mapped["Attendee"] = relationship("Attendee", back_populates="checkins")
    event: Mapped["Event"] = relationship("Event", back_populates="checkins")

    def __repr__(self) -> str:
        return (
            f"<CheckinRecord(attendee_id={self.attendee_id}, "
            f"event_id={self.event_id}, scanned_at={self.scanned_at})>"
        )
