"""
Event model for check-in events.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrcheckin.database import Base

# Forward references for type hints
if False:  # TYPE_CHECKING
    from .authorization import AttendeeEvent
    from .checkin import CheckinRecord


class Event(Base):
    """
    Event model representing one session attendees can be checked in to.
    Read-only from the API's point of view.
    """
    __tablename__ = "event"

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    # Short label used by scanning stations, e.g. "CUMBRE"
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    location: Mapped[Optional[str]] = mapped_column(String(500))

    # Event timing; either end may be open
    starts_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    ends_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    authorizations: Mapped[list["AttendeeEvent"]] = relationship(
        "AttendeeEvent", back_populates="event"
    )
    checkins: Mapped[list["CheckinRecord"]] = relationship(
        "CheckinRecord", back_populates="event"
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, code={self.code}, active={self.is_active})>"

    def to_summary(self) -> dict:
        return {
            "id": str(self.id),
            "code": self.code,
            "name": self.name,
            "location": self.location,
            "starts_at": self.starts_at.isoformat() if self.starts_at else None,
            "ends_at": self.ends_at.isoformat() if self.ends_at else None,
            "is_active": self.is_active,
        }
