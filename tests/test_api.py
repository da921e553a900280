import pytest
from fastapi.testclient import TestClient
from practice_calendar import api, client as cl
from practice_calendar.errors import FetchError, MutationError, TransitionRejected
from practice_calendar.models import ExternalEvent

AUTH = {"Authorization": "Bearer test-key"}


@pytest.fixture
def http(monkeypatch):
    monkeypatch.setattr(api, "CALENDAR_SERVICE_KEY", "test-key")
    return TestClient(api.app)


@pytest.fixture
def backend(monkeypatch):
    calls = {"fetch": [], "patch": []}

    async def fetch_appointments(rng, scope):
        calls["fetch"].append((rng, scope))
        return [{
            "id": "appt-1",
            "practitioner_id": "prac-1",
            "appointment_date": "2024-03-10",
            "start_time": "09:00:00",
            "end_time": "09:30:00",
            "status": "confirmed",
        }]

    async def fetch_external_events(rng):
        return [{
            "id": "evt-1",
            "date": "2024-03-10",
            "start_at": "2024-03-10T08:00:00",
            "end_at": "2024-03-10T08:30:00",
            "source": "google",
        }]

    async def apply_status_transition(appointment_id, transition, payload=None, actor="practitioner"):
        calls["patch"].append((appointment_id, transition.value, payload, actor.value))

    monkeypatch.setattr(cl, "fetch_appointments", fetch_appointments)
    monkeypatch.setattr(cl, "fetch_external_events", fetch_external_events)
    monkeypatch.setattr(cl, "apply_status_transition", apply_status_transition)
    return calls


def test_requires_service_key(http):
    assert http.get("/calendar").status_code == 401
    assert http.get("/calendar", headers={"Authorization": "Bearer nope"}).status_code == 401


def test_week_calendar_has_positions(http, backend):
    resp = http.get("/calendar", params={"view": "week", "anchor": "2024-03-12"}, headers=AUTH)
    assert resp.status_code == 200
    data = resp.json()
    assert data["from"] == "2024-03-10"
    assert data["to"] == "2024-03-16"
    day = data["days"]["2024-03-10"]
    assert [d["item"]["kind"] for d in day] == ["external_event", "appointment"]
    assert day[1]["top"] == 120
    assert day[1]["height"] == 30


def test_month_calendar_has_no_geometry(http, backend):
    resp = http.get("/calendar", params={"view": "month", "anchor": "2024-03-15"}, headers=AUTH)
    data = resp.json()
    assert data["from"] == "2024-02-25"
    assert data["now_offset"] is None
    assert "top" not in data["days"]["2024-03-10"][0]


def test_organization_scope(http, backend):
    http.get("/calendar", params={"scope": "organization", "practitioner_id": "prac-2"}, headers=AUTH)
    _, scope = backend["fetch"][-1]
    assert scope.organization and scope.practitioner_id == "prac-2"

    assert http.get("/calendar", params={"scope": "everyone"}, headers=AUTH).status_code == 422


def test_navigate_and_day_click(http):
    resp = http.get("/calendar/navigate", params={"view": "month", "anchor": "2024-01-31", "direction": "forward"}, headers=AUTH)
    assert resp.json()["anchor"] == "2024-02-29"

    resp = http.post("/calendar/day-click", params={"view": "month", "day": "2024-03-15"}, headers=AUTH)
    assert resp.json() == {"view": "day", "anchor": "2024-03-15"}


def test_transitions_listing(http):
    assert http.get("/appointments/transitions", params={"status": "pending"}, headers=AUTH).json() == [
        "confirm", "complete", "no_show", "cancel",
    ]
    assert http.get("/appointments/transitions", params={"status": "no_show"}, headers=AUTH).json() == []


def test_transition_applies(http, backend):
    resp = http.post(
        "/appointments/appt-1/cancel",
        json={"status": "confirmed", "actor": "organization", "text": "doctor ill"},
        headers=AUTH,
    )
    assert resp.status_code == 200
    assert resp.json() == {"id": "appt-1", "status": "cancelled_by_practitioner"}
    assert backend["patch"] == [("appt-1", "cancel", {"cancellation_reason": "doctor ill"}, "organization")]


def test_illegal_transition_is_409(http, backend):
    resp = http.post("/appointments/appt-1/confirm", json={"status": "completed"}, headers=AUTH)
    assert resp.status_code == 409
    assert backend["patch"] == []


def test_rejected_transition_is_502(http, monkeypatch):
    async def reject(appointment_id, transition, payload=None, actor="practitioner"):
        raise TransitionRejected(appointment_id, transition.value, 409, "stale")

    monkeypatch.setattr(cl, "apply_status_transition", reject)
    resp = http.post("/appointments/appt-1/no_show", json={"status": "pending"}, headers=AUTH)
    assert resp.status_code == 502
    assert "stale" in resp.json()["detail"]


def test_imported_event_cannot_be_deleted(http):
    resp = http.delete("/external-events/evt-1", params={"source": "google"}, headers=AUTH)
    assert resp.status_code == 409


def test_calendar_fetch_failure_is_502(http, monkeypatch):
    async def down(rng, scope):
        raise FetchError("fetch_appointments", "Could not load appointments", **rng.as_params())

    async def no_events(rng):
        return []

    monkeypatch.setattr(cl, "fetch_appointments", down)
    monkeypatch.setattr(cl, "fetch_external_events", no_events)
    resp = http.get("/calendar", params={"view": "day", "anchor": "2024-03-10"}, headers=AUTH)
    assert resp.status_code == 502
    assert "Could not load appointments" in resp.json()["detail"]


def test_day_calendar_grid(http, backend):
    data = http.get("/calendar", params={"view": "day", "anchor": "2024-03-10"}, headers=AUTH).json()
    assert data["grid"]["height"] == 14 * 72
    assert data["grid"]["hour_marks"][1] == {"hour": 8, "top": 72}
    assert data["grid"]["scroll_to"] >= 0
    assert data["days"]["2024-03-10"][1]["height"] == 36  # 30 min at 72px/h


def test_create_external_event(http, monkeypatch):
    async def create(req):
        return ExternalEvent(id="evt-9", source="manual", **req.model_dump())

    monkeypatch.setattr(cl, "create_external_event", create)
    resp = http.post(
        "/external-events",
        json={"title": "Lunch", "date": "2024-03-12", "start_at": "2024-03-12T12:00:00", "end_at": "2024-03-12T13:00:00"},
        headers=AUTH,
    )
    assert resp.status_code == 201
    assert resp.json()["id"] == "evt-9"
    assert resp.json()["source"] == "manual"


def test_create_external_event_failure_is_502(http, monkeypatch):
    async def create(req):
        raise MutationError("create_external_event", "Could not create event", date=req.date.isoformat())

    monkeypatch.setattr(cl, "create_external_event", create)
    resp = http.post(
        "/external-events",
        json={"title": "Lunch", "date": "2024-03-12", "start_at": "2024-03-12T12:00:00", "end_at": "2024-03-12T13:00:00"},
        headers=AUTH,
    )
    assert resp.status_code == 502


def test_manual_event_is_deleted(http, monkeypatch):
    deleted = []

    async def delete(event_id):
        deleted.append(event_id)

    monkeypatch.setattr(cl, "delete_external_event", delete)
    resp = http.delete("/external-events/evt-2", params={"source": "manual"}, headers=AUTH)
    assert resp.status_code == 204
    assert deleted == ["evt-2"]
