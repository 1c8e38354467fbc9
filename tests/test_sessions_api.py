from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from wilayah.api.v1.sessions import get_service
from wilayah.domain.hierarchy import Level
from wilayah.main import app
from wilayah.schemas.regions import PostalCodeCandidate, Region
from wilayah.services.errors import TransportError
from wilayah.services.session import SessionService


REGIONS = {
    (Level.PROVINCE, None): [Region(id="31", name="DKI JAKARTA")],
    (Level.CITY, "31"): [Region(id="3174", name="KOTA JAKARTA SELATAN")],
    (Level.DISTRICT, "3174"): [Region(id="3174050", name="KEBAYORAN BARU")],
    (Level.VILLAGE, "3174050"): [Region(id="3174050001", name="GANDARIA UTARA")],
}


async def _stub_fetch(level, parent_id=None):
    if (level, parent_id) == (Level.CITY, "99"):
        raise TransportError("region service unavailable")
    return REGIONS.get((level, parent_id), [])


def _candidate(code):
    return PostalCodeCandidate(
        code=code,
        village="Gandaria Utara",
        district="Kebayoran Baru",
        regency="Jakarta Selatan",
        province="DKI Jakarta",
        latitude=-6.25,
        longitude=106.8,
        elevation=40.0,
        timezone="WIB",
    )


async def _stub_search(query):
    if query == "KEBAYORAN BARU GANDARIA":
        return [_candidate(12140), _candidate(12141)]
    if query == "Kebayoran Baru Gandaria":
        return [_candidate(12140)]
    return []


@pytest.fixture
def client():
    service = SessionService(_stub_fetch, _stub_search)
    app.dependency_overrides[get_service] = lambda: service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _select(client, session_id, level, region_id):
    response = client.put(
        f"/v1/sessions/{session_id}/selection",
        json={"level": level, "region_id": region_id},
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_session_walkthrough_to_ambiguous_postal_code(client):
    created = client.post("/v1/sessions")
    assert created.status_code == 201
    data = created.json()
    session_id = data["session_id"]
    assert data["levels"][0]["status"] == "ready"
    assert data["levels"][0]["regions"] == [{"id": "31", "name": "DKI JAKARTA"}]
    assert data["levels"][1]["status"] == "idle"

    _select(client, session_id, "province", "31")
    _select(client, session_id, "city", "3174")
    _select(client, session_id, "district", "3174050")
    data = _select(client, session_id, "village", "3174050001")

    assert data["selection"] == {
        "province": "31",
        "city": "3174",
        "district": "3174050",
        "village": "3174050001",
    }
    assert data["postal"]["status"] == "ambiguous"
    assert data["postal"]["selected"] is None
    assert [item["code"] for item in data["postal"]["candidates"]] == [12140, 12141]

    chosen = client.post(
        f"/v1/sessions/{session_id}/postal-code/choice", json={"code": 12141}
    )
    assert chosen.status_code == 200
    assert chosen.json()["postal"]["selected"]["code"] == 12141

    rejected = client.post(
        f"/v1/sessions/{session_id}/postal-code/choice", json={"code": 10000}
    )
    assert rejected.status_code == 409


def test_reselecting_province_clears_descendants(client):
    session_id = client.post("/v1/sessions").json()["session_id"]
    _select(client, session_id, "province", "31")
    _select(client, session_id, "city", "3174")

    data = _select(client, session_id, "province", "31")

    assert data["selection"]["city"] is None
    assert data["levels"][1]["status"] == "ready"
    assert data["levels"][2]["status"] == "idle"


def test_selecting_without_parent_conflicts(client):
    session_id = client.post("/v1/sessions").json()["session_id"]

    response = client.put(
        f"/v1/sessions/{session_id}/selection",
        json={"level": "district", "region_id": "3174050"},
    )

    assert response.status_code == 409


def test_level_failure_is_reported_per_level(client):
    session_id = client.post("/v1/sessions").json()["session_id"]

    data = _select(client, session_id, "province", "99")

    assert data["levels"][0]["status"] == "ready"
    assert data["levels"][1]["status"] == "failed"
    assert "unavailable" in data["levels"][1]["error"]

    refreshed = client.post(f"/v1/sessions/{session_id}/levels/city/refresh")
    assert refreshed.status_code == 200
    assert refreshed.json()["levels"][1]["status"] == "failed"


def test_expired_session_is_not_found():
    now = [0.0]
    service = SessionService(_stub_fetch, _stub_search, ttl=30, timer=lambda: now[0])
    app.dependency_overrides[get_service] = lambda: service
    try:
        with TestClient(app) as expiring_client:
            session_id = expiring_client.post("/v1/sessions").json()["session_id"]
            assert expiring_client.get(f"/v1/sessions/{session_id}").status_code == 200

            now[0] = 31.0
            response = expiring_client.get(f"/v1/sessions/{session_id}")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 404


def test_unknown_session_and_invalid_level(client):
    missing = "00000000-0000-0000-0000-000000000000"
    assert client.get(f"/v1/sessions/{missing}").status_code == 404
    assert client.delete(f"/v1/sessions/{missing}").status_code == 404

    session_id = client.post("/v1/sessions").json()["session_id"]
    response = client.put(
        f"/v1/sessions/{session_id}/selection",
        json={"level": "hamlet", "region_id": "1"},
    )
    assert response.status_code == 422

    assert client.delete(f"/v1/sessions/{session_id}").status_code == 204


def test_region_passthrough(client):
    response = client.get("/v1/regions/city", params={"parent_id": "31"})
    assert response.status_code == 200
    assert response.json() == [{"id": "3174", "name": "KOTA JAKARTA SELATAN"}]

    assert client.get("/v1/regions/district").status_code == 422
    assert client.get("/v1/regions/city", params={"parent_id": "99"}).status_code == 502


def test_stateless_postal_lookup(client):
    response = client.get(
        "/v1/postal-codes",
        params={
            "province": "DKI Jakarta",
            "city": "Jakarta Selatan",
            "district": "Kebayoran Baru",
            "village": "Gandaria Utara",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "found"
    assert data["tier"] == "exact"
    assert data["selected"]["code"] == 12140


def test_session_reads_and_choices_wait_for_pending_work(client):
    session_id = client.post("/v1/sessions").json()["session_id"]
    _select(client, session_id, "province", "31")
    _select(client, session_id, "city", "3174")
    response = client.put(
        f"/v1/sessions/{session_id}/selection",
        params={"wait": "false"},
        json={"level": "district", "region_id": "3174050"},
    )
    assert response.json()["levels"][3]["status"] == "loading"

    data = client.get(f"/v1/sessions/{session_id}").json()
    assert data["levels"][3]["status"] == "ready"

    response = client.put(
        f"/v1/sessions/{session_id}/selection",
        params={"wait": "false"},
        json={"level": "village", "region_id": "3174050001"},
    )
    assert response.json()["postal"]["status"] == "loading"

    chosen = client.post(
        f"/v1/sessions/{session_id}/postal-code/choice", json={"code": 12140}
    )
    assert chosen.status_code == 200
    assert chosen.json()["postal"]["selected"]["code"] == 12140


def test_cors_does_not_allow_credentials(client):
    response = client.get("/health", headers={"Origin": "https://example.org"})

    assert response.headers["access-control-allow-origin"] == "*"
    assert "access-control-allow-credentials" not in response.headers
