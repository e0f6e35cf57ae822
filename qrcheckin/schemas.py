"""
Request and response schemas for the check-in API.

Request bodies also accept the field names of the first version of the
scanner app (``qrText``, ``eventoEscaneado``).
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str


class AttendeeSummary(BaseModel):
    id: str
    qr_code: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = None
    organization: Optional[str] = None
    organization_type: Optional[str] = None
    country: Optional[str] = None
    is_active: bool
    registered_events: Optional[str] = None


class EventSummary(BaseModel):
    id: str
    code: str
    name: str
    location: Optional[str] = None
    starts_at: Optional[str] = None
    ends_at: Optional[str] = None
    is_active: bool


class AttendeeListResponse(BaseModel):
    ok: bool = True
    count: int
    data: list[AttendeeSummary]


class EnsureQRRequest(BaseModel):
    only_active: bool = False


class EnsureQRResponse(BaseModel):
    ok: bool = True
    updated: int


class LookupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    qr: str = Field(..., validation_alias=AliasChoices("qr", "qrText"))


class LookupResponse(BaseModel):
    ok: bool = True
    attendee: AttendeeSummary
    events: list[EventSummary]
    payload: dict[str, Any]


class CheckinRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    qr: str = Field(..., validation_alias=AliasChoices("qr", "qrText"))
    event_id: str = Field(
        ...,
        min_length=1,
        max_length=200,
        validation_alias=AliasChoices("event_id", "eventoEscaneado"),
    )
    gate: Optional[str] = Field(None, max_length=100)

    @field_validator("event_id", mode="before")
    @classmethod
    def coerce_event_id(cls, value):
        # Scanners send numeric and UUID ids as well as codes
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("gate")
    @classmethod
    def blank_gate_is_none(cls, value):
        if value is not None and not value.strip():
            return None
        return value.strip() if value else value


class CheckinResponse(BaseModel):
    ok: bool = True
    status: str
    scanned_at: str
    gate: Optional[str] = None
    attendee: AttendeeSummary
    event: EventSummary
