"""
Attendee/event authorization relation, written by provisioning only.
"""
import uuid

from sqlalchemy import Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrcheckin.database import Base

# Forward references for type hints
if False:  # TYPE_CHECKING
    from .attendee import Attendee
    from .event import Event


class AttendeeEvent(Base):
    """Whether one attendee is permitted to attend one event."""

    __tablename__ = "attendee_event"
    __table_args__ = (
        UniqueConstraint("attendee_id", "event_id", name="uq_attendee_event"),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    attendee_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("attendee.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("event.id", ondelete="CASCADE"), nullable=False
    )
    permitted: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    attendee: Mapped["Attendee"] = relationship("Attendee", back_populates="authorizations")
    event: Mapped["Event"] = relationship("Event", back_populates="authorizations")

    def __repr__(self) -> str:
        return (
            f"<AttendeeEvent(attendee_id={self.attendee_id}, "
            f"event_id={self.event_id}, permitted={self.permitted})>"
        )
