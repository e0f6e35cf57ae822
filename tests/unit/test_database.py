"""
Unit tests for transaction handling: the transaction manager's error
conversion and the shutdown transaction gate.
"""

import asyncio

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from qrcheckin.database import TransactionGate, engine_options
from qrcheckin.database_utils import (
    create_database_error_from_exception,
    database_transaction,
)
from qrcheckin.exceptions import ConflictError, DatabaseError, ServiceUnavailableError
from qrcheckin.models import Event
from tests.fixtures.factories import create_event


@pytest.mark.unit
class TestErrorConversion:
    def test_unique_violation_is_conflict(self):
        error = IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed: event.code")
        )
        converted = create_database_error_from_exception(error, "insert")

        assert isinstance(converted, ConflictError)
        assert converted.details["operation"] == "insert"

    def test_postgres_duplicate_is_conflict(self):
        error = IntegrityError(
            "INSERT", {}, Exception('duplicate key value violates unique constraint "uq"')
        )
        assert isinstance(create_database_error_from_exception(error), ConflictError)

    def test_not_null_violation(self):
        error = IntegrityError(
            "INSERT", {}, Exception("NOT NULL constraint failed: event.name")
        )
        converted = create_database_error_from_exception(error)

        assert isinstance(converted, DatabaseError)
        assert converted.message == "Required field cannot be empty"

    def test_operational_error(self):
        error = OperationalError("SELECT", {}, Exception("database is locked"))
        converted = create_database_error_from_exception(error, "check_in")

        assert isinstance(converted, DatabaseError)
        assert converted.status_code == 500


@pytest.mark.unit
class TestDatabaseTransaction:
    async def test_commits_on_success(self, db_session, session_factory):
        async with database_transaction(db_session, "create_event") as session:
            session.add(Event(code="E1", name="Cumbre"))

        async with session_factory() as other:
            assert await self._event_id(other, "E1") is not None

    async def test_rolls_back_and_reraises_application_errors(self, db_session, session_factory):
        with pytest.raises(ValueError):
            async with database_transaction(db_session) as session:
                session.add(Event(code="E1", name="Cumbre"))
                await session.flush()
                raise ValueError("boom")

        async with session_factory() as other:
            assert await self._event_id(other, "E1") is None

    async def test_converts_unique_violation(self, db_session):
        await create_event(db_session, "E1")
        await db_session.commit()

        with pytest.raises(ConflictError):
            async with database_transaction(db_session, "create_event") as session:
                session.add(Event(code="E1", name="Duplicate"))
                await session.flush()

    @staticmethod
    async def _event_id(session, code):
        result = await session.execute(select(Event.id).where(Event.code == code))
        return result.scalar_one_or_none()


@pytest.mark.unit
class TestTransactionGate:
    async def test_tracks_active_transactions(self):
        gate = TransactionGate()

        async with gate.track():
            assert gate.active == 1
        assert gate.active == 0

    async def test_drain_waits_for_in_flight_work(self):
        gate = TransactionGate()
        release = asyncio.Event()
        finished = []

        async def work():
            async with gate.track():
                await release.wait()
                finished.append(True)

        task = asyncio.create_task(work())
        await asyncio.sleep(0)
        assert gate.active == 1

        drain = asyncio.create_task(gate.drain(timeout=5))
        await asyncio.sleep(0)
        assert gate.closing
        assert not drain.done()

        release.set()
        assert await drain is True
        assert finished == [True]
        await task

    async def test_drain_times_out(self):
        gate = TransactionGate()
        release = asyncio.Event()

        async def work():
            async with gate.track():
                await release.wait()

        task = asyncio.create_task(work())
        await asyncio.sleep(0)

        assert await gate.drain(timeout=0.05) is False

        release.set()
        await task

    async def test_refuses_new_work_when_closing(self):
        gate = TransactionGate()
        await gate.drain(timeout=0.1)

        with pytest.raises(ServiceUnavailableError):
            async with gate.track():
                pass

        gate.reopen()
        async with gate.track():
            assert gate.active == 1


@pytest.mark.unit
class TestEngineOptions:
    def test_sqlite_uses_busy_timeout(self):
        options = engine_options("sqlite+aiosqlite:///./checkin.db")

        assert options["connect_args"]["timeout"] == 15
        assert "pool_size" not in options

    def test_postgres_sets_statement_timeout(self):
        options = engine_options("postgresql+asyncpg://user:pass@db/checkin")

        assert options["pool_size"] == 5
        assert options["connect_args"]["server_settings"]["statement_timeout"] == "15000"

    def test_mysql_has_pool_settings_only(self):
        options = engine_options("mysql+aiomysql://user:pass@db/checkin")

        assert options["pool_timeout"] == 30
        assert "connect_args" not in options
