"""
Registration import.

Loads attendees and their event authorizations from registration
spreadsheet rows (exported as CSV). Headers are matched case- and
accent-insensitively, so both the original Spanish export
(``correo``, ``nombrecompleto``, ``tipo_organizacion`` ...) and English
headers work. Any column named after an event code is an authorization
flag for that event.
"""
import csv
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrcheckin.database_utils import database_transaction
from qrcheckin.logging_config import get_contextual_logger
from qrcheckin.models import Attendee, AttendeeEvent, Event
from qrcheckin.utils.text import normalize_label

logger = get_contextual_logger("provisioning", operation="import")

COLUMN_ALIASES = {
    "email": ("CORREO", "CORREO ELECTRONICO", "EMAIL", "E-MAIL"),
    "display_name": ("NOMBRECOMPLETO", "NOMBRE COMPLETO", "NOMBRE", "NAME", "DISPLAY NAME"),
    "organization": ("ORGANIZACION", "ORGANIZATION"),
    "organization_type": ("TIPO ORGANIZACION", "TIPO DE ORGANIZACION", "ORGANIZATION TYPE"),
    "country": ("PAIS", "COUNTRY"),
    "qr_code": ("QR CODE", "CODIGO", "CODE"),
    "is_active": ("ACTIVO", "ACTIVE", "IS ACTIVE"),
    "registered_events": ("PARTICIPA EN", "EVENTOS", "REGISTERED EVENTS"),
}
_COLUMN_LOOKUP = {alias: name for name, aliases in COLUMN_ALIASES.items() for alias in aliases}

TRUTHY = {"X", "SI", "S", "YES", "Y", "1", "TRUE"}


def normalize_header(header: str) -> str:
    return normalize_label(header.replace("_", " "))


def is_truthy(value) -> bool:
    return normalize_label(str(value or "")) in TRUTHY


@dataclass
class ImportReport:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    permissions: int = 0
    unknown_columns: list[str] = field(default_factory=list)


class ProvisioningService:
    """Creates or updates attendees and authorizations from spreadsheet rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def import_rows(self, rows: Iterable[dict]) -> ImportReport:
        report = ImportReport()

        async with database_transaction(self.session, "import"):
            events = {
                normalize_label(event.code): event
                for event in (await self.session.execute(select(Event))).scalars()
            }
            columns_seen: set[str] = set()

            for row in rows:
                values, flags = self._split_row(row, events, columns_seen, report)

                if not values.get("email") and not values.get("qr_code"):
                    report.skipped += 1
                    continue

                attendee, created = await self._upsert_attendee(values)
                if created:
                    report.created += 1
                else:
                    report.updated += 1

                for event, permitted in flags:
                    await self._set_permission(attendee, event, permitted)
                    report.permissions += 1

        logger.info(
            f"Imported attendees: {report.created} created, {report.updated} updated, "
            f"{report.skipped} skipped, {report.permissions} permission(s)"
        )
        return report

    async def import_csv(self, path: str | Path, delimiter: str = ",") -> ImportReport:
        with open(path, newline="", encoding="utf-8-sig") as handle:
            rows = list(csv.DictReader(handle, delimiter=delimiter))
        return await self.import_rows(rows)

    def _split_row(self, row, events, columns_seen, report):
        values: dict = {}
        flags: list[tuple[Event, bool]] = []

        for header, raw in row.items():
            if header is None:
                continue
            key = normalize_header(header)
            value = raw.strip() if isinstance(raw, str) else raw

            if key in _COLUMN_LOOKUP:
                values[_COLUMN_LOOKUP[key]] = value or None
            elif key in events:
                flags.append((events[key], is_truthy(value)))
            elif key not in columns_seen:
                report.unknown_columns.append(header)

            columns_seen.add(key)

        if "is_active" in values:
            values["is_active"] = values["is_active"] is None or is_truthy(values["is_active"])

        return values, flags

    async def _upsert_attendee(self, values: dict) -> tuple[Attendee, bool]:
        if values.get("email"):
            condition = Attendee.email == values["email"]
        else:
            condition = Attendee.qr_code == values["qr_code"]

        result = await self.session.execute(select(Attendee).where(condition))
        attendee = result.scalar_one_or_none()

        if attendee is None:
            attendee = Attendee(**values)
            self.session.add(attendee)
            await self.session.flush()
            return attendee, True

        for name, value in values.items():
            # Never clear an assigned QR code from a spreadsheet without one
            if name == "qr_code" and not value:
                continue
            setattr(attendee, name, value)
        return attendee, False

    async def _set_permission(self, attendee: Attendee, event: Event, permitted: bool):
        result = await self.session.execute(
            select(AttendeeEvent).where(
                AttendeeEvent.attendee_id == attendee.id,
                AttendeeEvent.event_id == event.id,
            )
        )
        link = result.scalar_one_or_none()
        if link is None:
            self.session.add(
                AttendeeEvent(attendee_id=attendee.id, event_id=event.id, permitted=permitted)
            )
        else:
            link.permitted = permitted
