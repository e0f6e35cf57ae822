"""
Attendee model for registered event participants.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from qrcheckin.database import Base

# Forward references for type hints
if False:  # TYPE_CHECKING
    from .authorization import AttendeeEvent
    from .checkin import CheckinRecord


class Attendee(Base):
    """
    Attendee model representing a registered person.
    Rows are created by the registration import; the API only assigns
    missing QR identifiers.
    """

    __tablename__ = "attendee"

    # Primary key
    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)

    # Identifiers scanned from QR codes (exact, case-sensitive matches)
    qr_code: Mapped[str | None] = mapped_column(String(100), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(320), unique=True, index=True)

    # Personal information
    display_name: Mapped[str | None] = mapped_column(String(255))
    organization: Mapped[str | None] = mapped_column(String(255))
    organization_type: Mapped[str | None] = mapped_column(String(200))
    country: Mapped[str | None] = mapped_column(String(150))

    # Inactive attendees are rejected at lookup and check-in
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Legacy free-text list of events, e.g. "CUMBRE, DIGI AMERICAS (DESAYUNO)"
    registered_events: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    # Relationships
    authorizations: Mapped[list["AttendeeEvent"]] = relationship(
        "AttendeeEvent", back_populates="attendee"
    )
    checkins: Mapped[list["CheckinRecord"]] = relationship(
        "CheckinRecord", back_populates="attendee"
    )

    def __repr__(self) -> str:
        return f"<Attendee(id={self.id}, name={self.display_name}, qr_code={self.qr_code})>"

    def to_summary(self) -> dict:
        """Serializable summary used by list and lookup responses."""
        return {
            "id": str(self.id),
            "qr_code": self.qr_code,
            "email": self.email,
            "display_name": self.display_name,
            "organization": self.organization,
            "organization_type": self.organization_type,
            "country": self.country,
            "is_active": self.is_active,
            "registered_events": self.registered_events,
        }
