"""
Scan API endpoints: attendee lookup and check-in.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qrcheckin.auth import require_api_key
from qrcheckin.database import (
    TransactionGate,
    get_async_session,
    get_session_factory,
    get_transaction_gate,
)
from qrcheckin.exceptions import NotFoundError
from qrcheckin.schemas import (
    CheckinRequest,
    CheckinResponse,
    LookupRequest,
    LookupResponse,
)
from qrcheckin.services import qr_codec
from qrcheckin.services.directory import AttendeeDirectory
from qrcheckin.services.ledger import CheckinLedger

router = APIRouter(tags=["Check-in"])


def get_ledger(
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gate: TransactionGate = Depends(get_transaction_gate),
) -> CheckinLedger:
    return CheckinLedger(session_factory, gate=gate)


@router.post(
    "/lookup",
    response_model=LookupResponse,
    dependencies=[Depends(require_api_key("scan"))],
)
async def lookup_attendee(
    body: LookupRequest,
    session: AsyncSession = Depends(get_async_session),
    ledger: CheckinLedger = Depends(get_ledger),
):
    """Resolve a scanned QR code to the attendee and their permitted events."""
    payload = qr_codec.decode(body.qr)

    try:
        result = await ledger.lookup(session, payload.key)
    except NotFoundError as e:
        # Name matches are only hints for the operator, never a resolution
        candidates = await AttendeeDirectory(session).find_by_name(payload.fields.name)
        if candidates:
            e.details["candidates"] = [match.to_dict() for match in candidates]
        raise

    return {
        "ok": True,
        "attendee": result.attendee.to_summary(),
        "events": [event.to_summary() for event in result.events],
        "payload": {
            "format": payload.format.value,
            "registered": list(payload.fields.events),
        },
    }


@router.post(
    "/checkin",
    response_model=CheckinResponse,
    dependencies=[Depends(require_api_key("checkin"))],
)
async def check_in(
    body: CheckinRequest,
    ledger: CheckinLedger = Depends(get_ledger),
):
    """
    Record that the scanned attendee is present at the event.

    Repeat scans succeed with status "already_checked_in" and the original
    scan time.
    """
    payload = qr_codec.decode(body.qr)
    result = await ledger.check_in(payload.key, body.event_id, gate=body.gate)
    return result.to_dict()
