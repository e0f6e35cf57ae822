"""
Integration tests for the scan endpoints: lookup and check-in.

The reference scenario: attendee A1 is permitted for E1 but not E2, and B1
is an inactive attendee.
"""

import json

import pytest

from tests.fixtures.factories import count_checkins, create_event, permit


@pytest.mark.integration
class TestLookup:
    async def test_lookup_by_plain_code(self, client, scenario):
        response = await client.post("/lookup", json={"qr": "A1"})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["attendee"]["qr_code"] == "A1"
        assert [event["code"] for event in body["events"]] == ["E1"]
        assert body["payload"]["format"] == "plain"

    async def test_lookup_accepts_legacy_field_name(self, client, scenario):
        response = await client.post("/lookup", json={"qrText": "A1"})
        assert response.status_code == 200

    async def test_lookup_by_labeled_text(self, client, scenario):
        raw = "=== REGISTRO DE EVENTO ===\nNombre: Ana Pérez\nCorreo: ana.perez@example.org\nParticipa en: E1"
        response = await client.post("/lookup", json={"qr": raw})

        assert response.status_code == 200
        body = response.json()
        assert body["attendee"]["qr_code"] == "A1"
        assert body["payload"] == {"format": "labeled", "registered": ["E1"]}

    async def test_lookup_by_json(self, client, scenario):
        response = await client.post("/lookup", json={"qr": json.dumps({"code": "A1"})})
        assert response.json()["payload"]["format"] == "json"

    async def test_undecodable_payload(self, client, scenario):
        response = await client.post("/lookup", json={"qr": "not an identifier"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "QR_DECODE_ERROR"

    async def test_missing_field(self, client, scenario):
        response = await client.post("/lookup", json={})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_attendee(self, client, scenario):
        response = await client.post("/lookup", json={"qr": "ZZ"})

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == "RESOURCE_NOT_FOUND"
        assert "candidates" not in error.get("details", {})

    async def test_unknown_attendee_with_name_candidates(self, client, scenario):
        raw = "Nombre: Ana Pérez\nCorreo: ana@old-domain.example"
        response = await client.post("/lookup", json={"qr": raw})

        assert response.status_code == 404
        candidates = response.json()["error"]["details"]["candidates"]
        assert candidates == [
            {
                "qr_code": "A1",
                "display_name": "Ana Pérez",
                "organization": None,
                "confidence": "low",
            }
        ]

    async def test_inactive_attendee(self, client, scenario):
        response = await client.post("/lookup", json={"qr": "B1"})

        assert response.status_code == 403
        assert response.json()["error"]["details"]["reason"] == "inactive_attendee"

    async def test_lookup_never_records(self, client, scenario, session_factory):
        await client.post("/lookup", json={"qr": "A1"})
        assert await count_checkins(session_factory) == 0

    async def test_scan_group_is_open_by_default(self, client, scenario, api_key):
        response = await client.post("/lookup", json={"qr": "A1"})
        assert response.status_code == 200


@pytest.mark.integration
class TestCheckin:
    async def test_reference_scenario(self, client, scenario, session_factory):
        first = await client.post("/checkin", json={"qr": "A1", "event_id": "E1"})
        assert first.status_code == 200
        first_body = first.json()
        assert first_body["ok"] is True
        assert first_body["status"] == "checked_in"
        assert first_body["attendee"]["qr_code"] == "A1"
        assert first_body["event"]["code"] == "E1"

        second = await client.post("/checkin", json={"qr": "A1", "event_id": "E1"})
        assert second.status_code == 200
        second_body = second.json()
        assert second_body["status"] == "already_checked_in"
        assert second_body["scanned_at"] == first_body["scanned_at"]

        forbidden = await client.post("/checkin", json={"qr": "A1", "event_id": "E2"})
        assert forbidden.status_code == 403
        assert forbidden.json()["error"]["code"] == "FORBIDDEN"

        assert await count_checkins(session_factory) == 1

    async def test_legacy_field_names_and_gate(self, client, scenario):
        response = await client.post(
            "/checkin",
            json={"qrText": "A1", "eventoEscaneado": str(scenario["e1"].id), "gate": " Puerta 3 "},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["gate"] == "Puerta 3"
        assert body["event"]["id"] == str(scenario["e1"].id)

    async def test_blank_gate_is_null(self, client, scenario):
        response = await client.post(
            "/checkin", json={"qr": "A1", "event_id": "E1", "gate": "   "}
        )
        assert response.json()["gate"] is None

    async def test_event_alias(self, client, db_session, scenario):
        breakfast = await create_event(db_session, "DESAYUNO", "Desayuno Digital")
        await permit(db_session, scenario["a1"], breakfast)
        await db_session.commit()

        response = await client.post(
            "/checkin", json={"qr": "A1", "event_id": "DIGI AMERICAS"}
        )

        assert response.status_code == 200
        assert response.json()["event"]["code"] == "DESAYUNO"

    @pytest.mark.parametrize(
        "body, status_code, error_code",
        [
            ({"qr": "A1"}, 400, "VALIDATION_ERROR"),
            ({"qr": "A1", "event_id": ""}, 400, "VALIDATION_ERROR"),
            ({"qr": "   ", "event_id": "E1"}, 400, "QR_DECODE_ERROR"),
            ({"qr": "ZZ", "event_id": "E1"}, 404, "RESOURCE_NOT_FOUND"),
            ({"qr": "B1", "event_id": "E1"}, 403, "FORBIDDEN"),
            ({"qr": "A1", "event_id": "NOPE"}, 403, "FORBIDDEN"),
            ({"qr": "A1", "event_id": 12345}, 403, "FORBIDDEN"),
        ],
    )
    async def test_error_responses(self, client, scenario, session_factory, body, status_code, error_code):
        response = await client.post("/checkin", json=body)

        assert response.status_code == status_code
        envelope = response.json()
        assert envelope["ok"] is False
        assert envelope["error"]["code"] == error_code
        assert envelope["error"]["correlation_id"]
        assert await count_checkins(session_factory) == 0

    async def test_malformed_json_body(self, client, scenario):
        response = await client.post(
            "/checkin", content=b"{not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400

    async def test_requires_api_key_when_configured(self, client, scenario, api_key):
        response = await client.post("/checkin", json={"qr": "A1", "event_id": "E1"})
        assert response.status_code == 401

        response = await client.post(
            "/checkin", json={"qr": "A1", "event_id": "E1"}, headers={"x-api-key": api_key}
        )
        assert response.status_code == 200

    async def test_refused_while_shutting_down(self, client, scenario, gate):
        await gate.drain(timeout=0.1)

        response = await client.post("/checkin", json={"qr": "A1", "event_id": "E1"})

        assert response.status_code == 503
        assert response.json()["error"]["code"] == "SERVICE_UNAVAILABLE"
