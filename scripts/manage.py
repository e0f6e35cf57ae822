#!/usr/bin/env python3
"""
Operator commands for the check-in database.

    python scripts/manage.py init-db
    python scripts/manage.py add-event CUMBRE "Cumbre Regional" --starts-at 2025-11-20T09:00
    python scripts/manage.py import-csv listado.csv
    python scripts/manage.py ensure-qr --only-active
    python scripts/manage.py render-qr <code> badge.png
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from qrcheckin.database import async_session_maker, close_db, create_db_and_tables
from qrcheckin.database_utils import database_transaction
from qrcheckin.exceptions import CheckinAPIException
from qrcheckin.logging_config import setup_logging
from qrcheckin.models import Event
from qrcheckin.services import qr_codec
from qrcheckin.services.directory import AttendeeDirectory
from qrcheckin.services.provisioning import ProvisioningService
from qrcheckin.services.qr_codec import AttendeeKey, KeyKind


async def init_db(args) -> int:
    await create_db_and_tables()
    print("Database tables created")
    return 0


async def add_event(args) -> int:
    async with async_session_maker() as session:
        async with database_transaction(session, "add_event"):
            session.add(
                Event(
                    code=args.code,
                    name=args.name,
                    location=args.location,
                    starts_at=datetime.fromisoformat(args.starts_at) if args.starts_at else None,
                    ends_at=datetime.fromisoformat(args.ends_at) if args.ends_at else None,
                    is_active=not args.inactive,
                )
            )
    print(f"Event {args.code} created")
    return 0


async def import_csv(args) -> int:
    async with async_session_maker() as session:
        report = await ProvisioningService(session).import_csv(
            args.path, delimiter=args.delimiter
        )
    print(
        f"Created {report.created}, updated {report.updated}, "
        f"skipped {report.skipped}, permissions {report.permissions}"
    )
    if report.unknown_columns:
        print(f"Ignored columns: {', '.join(report.unknown_columns)}")
    return 0


async def ensure_qr(args) -> int:
    async with async_session_maker() as session:
        updated = await AttendeeDirectory(session).assign_missing_identifiers(
            only_active=args.only_active
        )
    print(f"Assigned {updated} QR code(s)")
    return 0


async def render_qr(args) -> int:
    async with async_session_maker() as session:
        attendee = await AttendeeDirectory(session).find_by_identifier(
            AttendeeKey(KeyKind.CODE, args.code)
        )
    payload = qr_codec.encode(attendee, args.format)
    Path(args.output).write_bytes(qr_codec.render_png(payload))
    print(f"Wrote {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check-in database management")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables").set_defaults(
        handler=init_db
    )

    event_parser = commands.add_parser("add-event", help="Create an event")
    event_parser.add_argument("code")
    event_parser.add_argument("name")
    event_parser.add_argument("--location")
    event_parser.add_argument("--starts-at", help="ISO 8601 start time")
    event_parser.add_argument("--ends-at", help="ISO 8601 end time")
    event_parser.add_argument("--inactive", action="store_true")
    event_parser.set_defaults(handler=add_event)

    import_parser = commands.add_parser("import-csv", help="Import a registration CSV")
    import_parser.add_argument("path")
    import_parser.add_argument("--delimiter", default=",")
    import_parser.set_defaults(handler=import_csv)

    qr_parser = commands.add_parser("ensure-qr", help="Assign missing QR codes")
    qr_parser.add_argument("--only-active", action="store_true")
    qr_parser.set_defaults(handler=ensure_qr)

    render_parser = commands.add_parser("render-qr", help="Render an attendee badge QR")
    render_parser.add_argument("code")
    render_parser.add_argument("output")
    render_parser.add_argument("--format", choices=[f.value for f in qr_codec.PayloadFormat])
    render_parser.set_defaults(handler=render_qr)

    return parser


async def run(args) -> int:
    try:
        return await args.handler(args)
    except CheckinAPIException as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        await close_db()


def main() -> int:
    args = build_parser().parse_args()
    setup_logging()
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
