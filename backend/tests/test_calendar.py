from datetime import datetime, timedelta

import pytest

from coachapp import scheduling
from coachapp.crud import calendar as crud_calendar
from coachapp.models import CalendarEvent

DAY = "2025-12-22"


@pytest.fixture
def book(client, headers_for, patient):
    def _book(user, start_time, end_time, date=DAY, client_id=None, **extra):
        payload = {
            "clientId": client_id or patient.id,
            "date": date,
            "startTime": start_time,
            "endTime": end_time,
            "reason": "Weekly check-in",
            **extra,
        }
        return client.post("/calendar/events", json=payload, headers=headers_for(user))

    return _book


def test_create_calendar_call(book, coach, patient):
    response = book(coach, "10:00", "10:30", notes="Bring food diary")

    assert response.status_code == 200
    body = response.json()
    assert body["coachId"] == coach.id
    assert body["clientId"] == patient.id
    assert body["status"] == "scheduled"
    assert body["type"] == "call"
    assert body["clientName"] == "Sara Ali"
    assert body["clientAvatar"] == "https://cdn.example.com/sara.png"
    assert body["notes"] == "Bring food diary"
    assert body["startAt"] == "2025-12-22T10:00:00Z"
    assert body["endAt"] == "2025-12-22T10:30:00Z"


@pytest.mark.parametrize("start_time,end_time", [("10:30", "10:30"), ("11:00", "10:00")])
def test_create_rejects_invalid_range(book, coach, start_time, end_time):
    response = book(coach, start_time, end_time)

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRange"


def test_create_rejects_overlap_but_allows_adjacent(book, coach):
    assert book(coach, "10:00", "10:30").status_code == 200

    conflict = book(coach, "10:15", "10:45")
    assert conflict.status_code == 409
    assert conflict.json()["error"] == "OverlapConflict"

    assert book(coach, "10:30", "11:00").status_code == 200


def test_cancelled_event_frees_the_slot(client, book, coach, headers_for):
    event_id = book(coach, "10:00", "10:30").json()["id"]

    cancelled = client.post(f"/calendar/events/{event_id}/cancel", headers=headers_for(coach))
    assert cancelled.status_code == 200
    assert cancelled.json() == {"success": True}

    assert book(coach, "10:15", "10:45").status_code == 200


def test_overlap_is_scoped_to_coach_and_date(book, coach, other_coach):
    assert book(coach, "10:00", "10:30").status_code == 200
    assert book(other_coach, "10:00", "10:30").status_code == 200
    assert book(coach, "10:00", "10:30", date="2025-12-23").status_code == 200


def test_admin_books_as_itself(book, admin):
    response = book(admin, "09:00", "09:30")
    assert response.status_code == 200
    assert response.json()["coachId"] == admin.id


def test_client_cannot_create(book, patient):
    response = book(patient, "10:00", "10:30")
    assert response.status_code == 403
    assert response.json()["error"] == "AccessDenied"


def test_unknown_client(book, coach, other_coach):
    assert book(coach, "10:00", "10:30", client_id=9999).status_code == 404
    # 他のコーチはクライアントではない
    assert book(coach, "10:00", "10:30", client_id=other_coach.id).status_code == 404


def test_requires_authentication(client, patient):
    response = client.post("/calendar/events", json={
        "clientId": patient.id, "date": DAY, "startTime": "10:00",
        "endTime": "10:30", "reason": "x",
    })
    assert response.status_code == 401
    assert response.json()["error"] == "Unauthorized"


def test_invalid_token(client):
    response = client.get(f"/calendar/events?date={DAY}", headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401


@pytest.mark.parametrize("date,start_time", [("2025-13-01", "10:00"), ("2025-12-22", "25:00"), ("22-12-2025", "10:00")])
def test_malformed_date_or_time(book, coach, date, start_time):
    assert book(coach, start_time, "23:59", date=date).status_code == 422


def test_update_reschedules_excluding_itself(client, book, coach, headers_for):
    event_id = book(coach, "10:00", "10:30").json()["id"]

    response = client.patch(
        f"/calendar/events/{event_id}",
        json={"startTime": "10:15", "endTime": "10:45"},
        headers=headers_for(coach),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["startTime"] == "10:15"
    assert body["endTime"] == "10:45"
    assert body["startAt"] == "2025-12-22T10:15:00Z"


def test_update_detects_overlap_with_other_event(client, book, coach, headers_for):
    book(coach, "10:00", "10:30")
    event_id = book(coach, "11:00", "11:30").json()["id"]

    response = client.patch(
        f"/calendar/events/{event_id}", json={"startTime": "10:20"}, headers=headers_for(coach)
    )
    assert response.status_code == 409

    moved = client.patch(
        f"/calendar/events/{event_id}", json={"date": "2025-12-23", "startTime": "10:20"},
        headers=headers_for(coach),
    )
    assert moved.status_code == 200
    assert moved.json()["date"] == "2025-12-23"


def test_update_validates_range(client, book, coach, headers_for):
    event_id = book(coach, "10:00", "10:30").json()["id"]
    response = client.patch(
        f"/calendar/events/{event_id}", json={"endTime": "09:00"}, headers=headers_for(coach)
    )
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidRange"


def test_update_reason_only_keeps_times(client, book, coach, headers_for):
    event_id = book(coach, "10:00", "10:30").json()["id"]
    response = client.patch(
        f"/calendar/events/{event_id}", json={"reason": "Follow-up", "notes": "Lab results"},
        headers=headers_for(coach),
    )
    assert response.status_code == 200
    assert response.json()["reason"] == "Follow-up"
    assert response.json()["startTime"] == "10:00"


def test_only_owner_or_admin_can_modify(client, book, coach, other_coach, admin, headers_for):
    event_id = book(coach, "10:00", "10:30").json()["id"]

    denied = client.patch(f"/calendar/events/{event_id}", json={"reason": "x"}, headers=headers_for(other_coach))
    assert denied.status_code == 403
    assert client.post(f"/calendar/events/{event_id}/cancel", headers=headers_for(other_coach)).status_code == 403

    assert client.patch(f"/calendar/events/{event_id}", json={"reason": "x"}, headers=headers_for(admin)).status_code == 200
    assert client.post(f"/calendar/events/{event_id}/cancel", headers=headers_for(admin)).status_code == 200


def test_cancelled_event_cannot_be_rescheduled(client, book, coach, headers_for):
    event_id = book(coach, "10:00", "10:30").json()["id"]
    client.post(f"/calendar/events/{event_id}/cancel", headers=headers_for(coach))

    response = client.patch(f"/calendar/events/{event_id}", json={"startTime": "09:00"}, headers=headers_for(coach))
    assert response.status_code == 409
    assert response.json()["error"] == "InvalidState"


def test_missing_event(client, coach, headers_for):
    assert client.patch("/calendar/events/9999", json={"reason": "x"}, headers=headers_for(coach)).status_code == 404
    assert client.post("/calendar/events/9999/cancel", headers=headers_for(coach)).status_code == 404


def test_events_by_date_are_role_filtered(client, book, coach, other_coach, admin, patient, headers_for):
    book(coach, "11:00", "11:30")
    book(coach, "10:00", "10:30")
    book(other_coach, "10:00", "10:30")
    cancelled_id = book(coach, "12:00", "12:30").json()["id"]
    client.post(f"/calendar/events/{cancelled_id}/cancel", headers=headers_for(coach))

    own = client.get(f"/calendar/events?date={DAY}", headers=headers_for(coach)).json()
    assert [e["startTime"] for e in own] == ["10:00", "11:00"]
    assert all(e["coachId"] == coach.id for e in own)
    assert own[0]["clientPhone"] == "+201000000000"

    everything = client.get(f"/calendar/events?date={DAY}", headers=headers_for(admin)).json()
    assert len(everything) == 3

    assert client.get(f"/calendar/events?date={DAY}", headers=headers_for(patient)).json() == []


def test_events_by_date_range_is_inclusive(client, book, coach, headers_for):
    book(coach, "10:00", "10:30", date="2025-12-21")
    book(coach, "10:00", "10:30", date="2025-12-24")
    book(coach, "10:00", "10:30", date="2025-12-27")
    book(coach, "10:00", "10:30", date="2025-12-28")

    response = client.get(
        "/calendar/events/range?start_date=2025-12-21&end_date=2025-12-27", headers=headers_for(coach)
    )
    assert [e["date"] for e in response.json()] == ["2025-12-21", "2025-12-24", "2025-12-27"]


def test_unknown_client_name_when_client_missing(db, coach, make_user):
    ghost = make_user("client")
    event = CalendarEvent(
        coach_id=coach.id, client_id=ghost.id, reason="x", date=DAY,
        start_time="10:00", end_time="10:30",
        start_at=datetime(2025, 12, 22, 10), end_at=datetime(2025, 12, 22, 10, 30),
    )
    db.add(event)
    db.commit()
    db.delete(ghost)
    db.commit()
    db.expire_all()

    view = crud_calendar.event_view(crud_calendar.get_event(db, event.id))
    assert view["client_name"] == "Unknown Client"
    assert view["client_avatar"] is None


def test_todays_appointments_status(db, coach, patient):
    event = crud_calendar.create_calendar_call(db, coach, patient.id, DAY, "10:00", "10:30", "Check-in")

    def status_at(now):
        [appointment] = crud_calendar.get_todays_appointments(db, coach, date=DAY, now=now)
        return appointment["status"]

    assert status_at(event.start_at + timedelta(minutes=10)) == "in_progress"
    assert status_at(event.start_at - timedelta(minutes=10)) == "starting_soon"
    assert status_at(event.start_at - timedelta(minutes=30)) == "upcoming"


def test_todays_appointments_defaults_to_today(db, coach, patient):
    now = datetime(2025, 12, 22, 9, 0)
    crud_calendar.create_calendar_call(db, coach, patient.id, DAY, "10:00", "10:45", "Check-in")

    [appointment] = crud_calendar.get_todays_appointments(db, coach, now=now)
    assert appointment["duration"] == 45
    assert appointment["client_name"] == "Sara Ali"
    assert crud_calendar.get_todays_appointments(db, coach, now=now + timedelta(days=1)) == []


def test_todays_appointments_sorted_and_limited(client, book, coach, headers_for):
    for start, end in [("15:00", "15:30"), ("09:00", "09:30"), ("12:00", "12:30")]:
        book(coach, start, end)
    cancelled_id = book(coach, "08:00", "08:30").json()["id"]
    client.post(f"/calendar/events/{cancelled_id}/cancel", headers=headers_for(coach))

    response = client.get(f"/calendar/today?date={DAY}&limit=2", headers=headers_for(coach))

    assert response.status_code == 200
    body = response.json()
    assert [a["startTime"] for a in body] == ["09:00", "12:00"]
    assert body[0]["duration"] == 30
    assert body[0]["status"] in ("upcoming", "starting_soon", "in_progress")


def test_my_clients_falls_back_to_all_clients(client, make_user, coach, other_coach, admin, patient, headers_for):
    unassigned = make_user("client", first_name="Omar")

    assigned = client.get("/calendar/clients", headers=headers_for(coach)).json()
    assert [c["id"] for c in assigned] == [patient.id]
    assert assigned[0]["lastName"] == "Ali"

    fallback = client.get("/calendar/clients", headers=headers_for(other_coach)).json()
    assert {c["id"] for c in fallback} == {patient.id, unassigned.id}

    everyone = client.get("/calendar/clients", headers=headers_for(admin)).json()
    assert {c["id"] for c in everyone} == {patient.id, unassigned.id}

    assert client.get("/calendar/clients", headers=headers_for(patient)).json() == []


def test_instants_are_serialized_as_utc(monkeypatch, db, book, coach):
    monkeypatch.setattr(scheduling, "APP_TIMEZONE", "Africa/Cairo")

    response = book(coach, "10:00", "10:30", date="2025-12-21")

    body = response.json()
    assert body["startTime"] == "10:00"
    assert body["startAt"] == "2025-12-21T08:00:00Z"
    assert body["endAt"] == "2025-12-21T08:30:00Z"
    assert body["createdAt"].endswith("Z")

    stored = db.get(CalendarEvent, body["id"])
    assert stored.start_at == datetime(2025, 12, 21, 8, 0)
