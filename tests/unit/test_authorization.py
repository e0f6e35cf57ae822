"""
Unit tests for event authorization and the event catalog.
"""

from datetime import UTC, datetime, timedelta

import pytest

from qrcheckin.exceptions import ConfigurationError
from qrcheckin.models import Event
from qrcheckin.services.authorization import (
    ExplicitAuthorization,
    RegisteredEventsAuthorization,
    get_authorization_strategy,
)
from qrcheckin.services.catalog import EventCatalog
from qrcheckin.utils.text import (
    label_words,
    normalize_label,
    resolve_alias,
    split_event_labels,
)
from tests.fixtures.factories import create_attendee, create_event, permit


@pytest.mark.unit
class TestTextHelpers:
    def test_normalize_label(self):
        assert normalize_label("  Tipo de  organización ") == "TIPO DE ORGANIZACION"
        assert normalize_label(None) == ""

    def test_split_event_labels(self):
        assert split_event_labels("CUMBRE, PANEL;TALLER\nCLAUSURA,,") == [
            "CUMBRE",
            "PANEL",
            "TALLER",
            "CLAUSURA",
        ]
        assert split_event_labels("") == []

    def test_label_words(self):
        assert label_words("Digi Américas (Desayuno)") == {"DIGI", "AMERICAS", "DESAYUNO"}

    def test_resolve_alias(self):
        aliases = {"digi americas": "Desayuno"}
        assert resolve_alias("Digi Américas", aliases) == "DESAYUNO"
        assert resolve_alias("Cumbre", aliases) == "CUMBRE"
        assert resolve_alias("Cumbre", None) == "CUMBRE"


@pytest.mark.unit
class TestRegisteredEventsMatching:
    """Matching of free-text registration labels against events."""

    @pytest.fixture
    def strategy(self):
        return RegisteredEventsAuthorization({"DIGI AMERICAS": "DESAYUNO"})

    @pytest.fixture
    def breakfast(self):
        return Event(code="DESAYUNO", name="Desayuno Digital", is_active=True)

    @pytest.mark.parametrize(
        "registered",
        [
            "DESAYUNO",
            "desayuno",
            "Cumbre, Desayuno Digital",
            "CUMBRE, DIGI AMERICAS",
            "DIGI AMERICAS (DESAYUNO)",
            "cumbre; digi américas",
        ],
    )
    def test_matching_labels(self, strategy, breakfast, registered):
        assert strategy.matches(registered, breakfast)

    @pytest.mark.parametrize("registered", [None, "", "CUMBRE", "DESAYUNOS", "DIGITAL"])
    def test_non_matching_labels(self, strategy, breakfast, registered):
        assert not strategy.matches(registered, breakfast)

    def test_aliases_are_optional(self, breakfast):
        assert not RegisteredEventsAuthorization().matches("DIGI AMERICAS", breakfast)


@pytest.mark.unit
class TestStrategySelection:
    def test_default_strategy_is_explicit(self):
        assert isinstance(get_authorization_strategy(), ExplicitAuthorization)

    def test_registered_events_strategy_gets_aliases(self):
        strategy = get_authorization_strategy("registered_events")

        assert isinstance(strategy, RegisteredEventsAuthorization)
        assert resolve_alias("DIGI AMERICAS", strategy.aliases) == "DESAYUNO"

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError):
            get_authorization_strategy("everyone")


@pytest.mark.unit
class TestExplicitAuthorization:
    async def test_permitted_events_are_active_and_ordered(self, db_session):
        now = datetime.now(UTC)
        later = await create_event(db_session, "LATER", starts_at=now + timedelta(days=2))
        sooner = await create_event(db_session, "SOONER", starts_at=now + timedelta(days=1))
        open_ended = await create_event(db_session, "OPEN", starts_at=None)
        inactive = await create_event(db_session, "OLD", is_active=False)
        revoked = await create_event(db_session, "REVOKED")
        attendee = await create_attendee(db_session, qr_code="A1")

        for event in (later, sooner, open_ended, inactive):
            await permit(db_session, attendee, event)
        await permit(db_session, attendee, revoked, permitted=False)
        await db_session.commit()

        catalog = EventCatalog(db_session, ExplicitAuthorization())
        events = await catalog.list_permitted_active_events(attendee)

        assert [event.code for event in events] == ["SOONER", "LATER", "OPEN"]

    async def test_is_permitted(self, db_session):
        allowed = await create_event(db_session, "E1")
        other = await create_event(db_session, "E2")
        attendee = await create_attendee(db_session, qr_code="A1")
        await permit(db_session, attendee, allowed)
        await db_session.commit()

        catalog = EventCatalog(db_session, ExplicitAuthorization())

        assert await catalog.is_permitted(attendee, allowed)
        assert not await catalog.is_permitted(attendee, other)

    async def test_no_authorizations(self, db_session):
        await create_event(db_session, "E1")
        attendee = await create_attendee(db_session, qr_code="A1")
        await db_session.commit()

        catalog = EventCatalog(db_session, ExplicitAuthorization())
        assert await catalog.list_permitted_active_events(attendee) == []


@pytest.mark.unit
class TestRegisteredEventsAuthorization:
    async def test_permitted_events_from_free_text(self, db_session):
        await create_event(db_session, "CUMBRE", starts_at=datetime.now(UTC) + timedelta(days=1))
        await create_event(db_session, "DESAYUNO", starts_at=datetime.now(UTC) + timedelta(hours=1))
        await create_event(db_session, "PANEL")
        await create_event(db_session, "TALLER", is_active=False)
        attendee = await create_attendee(
            db_session, qr_code="A1", registered_events="Cumbre, Digi Americas, Taller"
        )
        await db_session.commit()

        strategy = RegisteredEventsAuthorization({"DIGI AMERICAS": "DESAYUNO"})
        events = await EventCatalog(db_session, strategy).list_permitted_active_events(attendee)

        assert [event.code for event in events] == ["DESAYUNO", "CUMBRE"]

    async def test_ignores_explicit_relation(self, db_session):
        event = await create_event(db_session, "E1")
        attendee = await create_attendee(db_session, qr_code="A1", registered_events=None)
        await permit(db_session, attendee, event)
        await db_session.commit()

        catalog = EventCatalog(db_session, RegisteredEventsAuthorization())

        assert not await catalog.is_permitted(attendee, event)
        assert await catalog.list_permitted_active_events(attendee) == []


@pytest.mark.unit
class TestResolveEvent:
    @pytest.fixture
    async def events(self, db_session):
        cumbre = await create_event(db_session, "CUMBRE", "Cumbre Regional")
        desayuno = await create_event(db_session, "DESAYUNO", "Desayuno Digital")
        sesion = await create_event(db_session, "Sesión", "Sesión Plenaria")
        await db_session.commit()
        return {"cumbre": cumbre, "desayuno": desayuno, "sesion": sesion}

    async def test_by_uuid(self, db_session, events):
        catalog = EventCatalog(db_session)

        assert await catalog.resolve_event(events["cumbre"].id) is events["cumbre"]
        assert await catalog.resolve_event(str(events["cumbre"].id)) is events["cumbre"]

    async def test_by_code_ignoring_case(self, db_session, events):
        assert await EventCatalog(db_session).resolve_event(" cumbre ") is events["cumbre"]

    async def test_by_alias(self, db_session, events):
        # EVENT_ALIASES maps "DIGI AMERICAS" to DESAYUNO
        assert await EventCatalog(db_session).resolve_event("Digi Americas") is events["desayuno"]

    async def test_by_accented_code(self, db_session, events):
        assert await EventCatalog(db_session).resolve_event("SESION") is events["sesion"]

    @pytest.mark.parametrize(
        "ref", [None, "", "  ", "UNKNOWN", "00000000-0000-0000-0000-000000000000"]
    )
    async def test_unknown(self, db_session, events, ref):
        assert await EventCatalog(db_session).resolve_event(ref) is None
