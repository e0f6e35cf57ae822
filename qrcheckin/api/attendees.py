"""
Attendee directory API endpoints.

Listing, QR badge rendering and the QR code maintenance operation.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.auth import require_api_key
from qrcheckin.database import get_async_session
from qrcheckin.schemas import (
    AttendeeListResponse,
    EnsureQRRequest,
    EnsureQRResponse,
)
from qrcheckin.services import qr_codec
from qrcheckin.services.directory import AttendeeDirectory
from qrcheckin.services.ledger import ensure_active
from qrcheckin.services.qr_codec import AttendeeKey, KeyKind

router = APIRouter(prefix="/attendees", tags=["Attendees"])


@router.get(
    "",
    response_model=AttendeeListResponse,
    dependencies=[Depends(require_api_key("directory"))],
)
async def list_attendees(
    active: int = Query(0, ge=0, le=1, description="1 active only, 0 everyone"),
    q: str | None = Query(None, max_length=200),
    limit: int | None = Query(None),
    offset: int | None = Query(None),
    session: AsyncSession = Depends(get_async_session),
):
    """List attendees by display name; limit and offset are clamped, not rejected."""
    attendees = await AttendeeDirectory(session).list_attendees(
        active_only=bool(active),
        text_query=q,
        limit=limit,
        offset=offset,
    )
    return {
        "ok": True,
        "count": len(attendees),
        "data": [attendee.to_summary() for attendee in attendees],
    }


@router.post(
    "/ensure-qr",
    response_model=EnsureQRResponse,
    dependencies=[Depends(require_api_key("maintenance"))],
)
async def ensure_qr_codes(
    body: EnsureQRRequest | None = None,
    session: AsyncSession = Depends(get_async_session),
):
    """Assign QR codes to every attendee that has none. Safe to re-run."""
    only_active = body.only_active if body else False
    updated = await AttendeeDirectory(session).assign_missing_identifiers(
        only_active=only_active
    )
    return {"ok": True, "updated": updated}


@router.get(
    "/{code}/qr.png",
    response_class=Response,
    dependencies=[Depends(require_api_key("directory"))],
)
async def attendee_qr_image(
    code: str,
    box_size: int = Query(10, ge=1, le=40),
    session: AsyncSession = Depends(get_async_session),
):
    """Render the attendee's badge QR code as PNG."""
    attendee = await AttendeeDirectory(session).find_by_identifier(
        AttendeeKey(KeyKind.CODE, code)
    )
    ensure_active(attendee)

    payload = qr_codec.encode(attendee)
    return Response(
        content=qr_codec.render_png(payload, size=box_size),
        media_type="image/png",
        headers={"Cache-Control": "private, max-age=3600"},
    )
