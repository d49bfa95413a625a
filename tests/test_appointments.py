"""Tests for appointment endpoints."""

from datetime import timedelta

import pytest
from httpx import AsyncClient

from tests.conftest import CLINIC_ID, DOCTOR_ID, WEDNESDAY, token_headers


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_ping(client: AsyncClient) -> None:
    response = await client.get("/api/v1/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


@pytest.mark.asyncio
async def test_requests_require_a_token(client: AsyncClient, booking_payload: dict) -> None:
    response = await client.post("/api/v1/appointments/", json=booking_payload)
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
async def test_invalid_token_is_rejected(client: AsyncClient) -> None:
    response = await client.get(
        "/api/v1/appointments/", headers={"Authorization": "Bearer not-a-token"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "HTTPException"


@pytest.mark.asyncio
async def test_create_appointment(client: AsyncClient, patient, booking_payload: dict) -> None:
    """Test booking an appointment."""
    response = await client.post(
        "/api/v1/appointments/",
        json=booking_payload,
        headers=token_headers(patient),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["appointment_id"] == "APT202503000001"
    assert data["status"] == "scheduled"
    assert data["time_slot"] == {"start_time": "10:00", "end_time": "10:30", "duration": 30}
    assert data["category"] == "diagnostic"
    assert data["symptoms"] == ["cough", "fatigue"]
    assert data["can_cancel"] is True
    assert data["is_active"] is True
    # Patients do not see risk scoring or bookkeeping
    assert data["cancellation_risk"] is None
    assert data["communication_log"] is None
    assert data["version"] is None


@pytest.mark.asyncio
async def test_staff_see_risk_fields(
    client: AsyncClient, patient, receptionist, booking_payload: dict
) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )
    appointment_id = created.json()["appointment_id"]

    response = await client.get(
        f"/api/v1/appointments/{appointment_id}", headers=token_headers(receptionist)
    )

    assert response.status_code == 200
    data = response.json()
    assert data["lead_time_hours"] == 50
    assert data["cancellation_risk"] == "medium"
    assert data["no_show_risk"] == "medium"
    assert data["version"] == 1


@pytest.mark.asyncio
async def test_appointment_id_lookup_is_case_insensitive(
    client: AsyncClient, patient, booking_payload: dict
) -> None:
    await client.post("/api/v1/appointments/", json=booking_payload, headers=token_headers(patient))

    response = await client.get(
        "/api/v1/appointments/apt202503000001", headers=token_headers(patient)
    )

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_conflicting_booking_returns_409(
    client: AsyncClient, patient, receptionist, booking_payload: dict
) -> None:
    await client.post("/api/v1/appointments/", json=booking_payload, headers=token_headers(patient))

    overlapping = {**booking_payload, "time_slot": {"start_time": "10:15", "end_time": "10:45"}}
    response = await client.post(
        "/api/v1/appointments/", json=overlapping, headers=token_headers(receptionist)
    )

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "SchedulingConflict"
    assert data["message"] == "Doctor is not available at the requested time"
    assert data["details"]["existing_appointment_id"] == "APT202503000001"
    assert data["details"]["time_slot"] == {"start_time": "10:00", "end_time": "10:30"}


@pytest.mark.asyncio
async def test_closed_clinic_returns_400(client: AsyncClient, patient, booking_payload: dict) -> None:
    sunday = (WEDNESDAY + timedelta(days=4)).isoformat()

    response = await client.post(
        "/api/v1/appointments/",
        json={**booking_payload, "appointment_date": sunday},
        headers=token_headers(patient),
    )

    assert response.status_code == 400
    assert response.json()["error"] == "ClinicClosed"


@pytest.mark.asyncio
async def test_malformed_time_is_rejected(client: AsyncClient, patient, booking_payload: dict) -> None:
    response = await client.post(
        "/api/v1/appointments/",
        json={**booking_payload, "time_slot": {"start_time": "25:00", "end_time": "10:30"}},
        headers=token_headers(patient),
    )

    assert response.status_code == 422
    assert response.json()["error"] == "ValidationError"


@pytest.mark.asyncio
async def test_end_before_start_is_rejected(
    client: AsyncClient, patient, booking_payload: dict
) -> None:
    response = await client.post(
        "/api/v1/appointments/",
        json={**booking_payload, "time_slot": {"start_time": "11:00", "end_time": "10:30"}},
        headers=token_headers(patient),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_appointments(
    client: AsyncClient, patient, other_patient, admin, booking_payload: dict
) -> None:
    """Test listing appointments."""
    await client.post("/api/v1/appointments/", json=booking_payload, headers=token_headers(patient))

    own = await client.get("/api/v1/appointments/", headers=token_headers(patient))
    others = await client.get("/api/v1/appointments/", headers=token_headers(other_patient))
    everything = await client.get(
        "/api/v1/appointments/",
        params={"status": "scheduled", "from_date": WEDNESDAY.isoformat()},
        headers=token_headers(admin),
    )

    assert own.status_code == 200
    assert own.json()["total"] == 1
    assert others.json()["total"] == 0
    assert everything.json()["total"] == 1
    assert everything.json()["items"][0]["appointment_id"] == "APT202503000001"


@pytest.mark.asyncio
async def test_other_patient_is_denied(
    client: AsyncClient, patient, other_patient, booking_payload: dict
) -> None:
    await client.post("/api/v1/appointments/", json=booking_payload, headers=token_headers(patient))

    response = await client.get(
        "/api/v1/appointments/APT202503000001", headers=token_headers(other_patient)
    )

    assert response.status_code == 403
    assert response.json()["error"] == "AccessDenied"


@pytest.mark.asyncio
async def test_unknown_appointment_returns_404(client: AsyncClient, admin) -> None:
    response = await client.get(
        "/api/v1/appointments/APT202503999999", headers=token_headers(admin)
    )

    assert response.status_code == 404
    assert response.json()["error"] == "AppointmentNotFound"


@pytest.mark.asyncio
async def test_available_slots(client: AsyncClient, patient, booking_payload: dict) -> None:
    await client.post("/api/v1/appointments/", json=booking_payload, headers=token_headers(patient))

    response = await client.get(
        "/api/v1/appointments/available-slots",
        params={
            "doctor_id": str(DOCTOR_ID),
            "clinic_id": str(CLINIC_ID),
            "date": WEDNESDAY.isoformat(),
        },
        headers=token_headers(patient),
    )

    assert response.status_code == 200
    data = response.json()
    starts = [slot["start_time"] for slot in data["available_slots"]]
    assert starts[:3] == ["09:00", "09:30", "10:30"]
    assert data["duration"] == 30
    assert data["doctor_schedule"]["breaks"] == [{"start_time": "12:00", "end_time": "13:00"}]
    assert data["clinic_hours"] == {"open_time": "08:00", "close_time": "18:00"}


@pytest.mark.asyncio
async def test_available_slots_on_closed_day(client: AsyncClient, patient) -> None:
    response = await client.get(
        "/api/v1/appointments/available-slots",
        params={
            "doctor_id": str(DOCTOR_ID),
            "clinic_id": str(CLINIC_ID),
            "date": (WEDNESDAY + timedelta(days=4)).isoformat(),
            "duration": 60,
        },
        headers=token_headers(patient),
    )

    assert response.status_code == 200
    data = response.json()
    assert data["available_slots"] == []
    assert data["message"] == "Clinic is closed on this day"


@pytest.mark.asyncio
async def test_available_slots_rejects_bad_duration(client: AsyncClient, patient) -> None:
    response = await client.get(
        "/api/v1/appointments/available-slots",
        params={
            "doctor_id": str(DOCTOR_ID),
            "clinic_id": str(CLINIC_ID),
            "date": WEDNESDAY.isoformat(),
            "duration": 5,
        },
        headers=token_headers(patient),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_lifecycle_over_http(
    client: AsyncClient, patient, receptionist, doctor, clock, booking_payload: dict
) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )
    base = f"/api/v1/appointments/{created.json()['appointment_id']}"

    confirmed = await client.post(f"{base}/confirm", headers=token_headers(receptionist))
    assert confirmed.json()["status"] == "confirmed"

    clock.set(clock.now + timedelta(days=2, hours=1, minutes=50))
    checked_in = await client.post(f"{base}/check-in", headers=token_headers(receptionist))
    assert checked_in.status_code == 200
    assert checked_in.json()["status"] == "checked_in"

    clock.advance(minutes=15)
    started = await client.post(f"{base}/start", headers=token_headers(doctor))
    assert started.json()["check_in"]["waiting_time"] == 15

    vitals = await client.post(
        f"{base}/vitals", json={"pain_level": 4}, headers=token_headers(patient)
    )
    assert vitals.status_code == 403
    vitals = await client.post(
        f"{base}/vitals",
        json={"blood_pressure_systolic": 118, "blood_pressure_diastolic": 76, "pain_level": 4},
        headers=token_headers(doctor),
    )
    assert vitals.status_code == 200
    assert vitals.json()["vitals"]["pain_level"] == 4

    clock.advance(minutes=30)
    completed = await client.post(
        f"{base}/complete",
        json={
            "total_time": 28,
            "notes": "No further pain",
            "follow_up": {"type": "treatment", "priority": "high"},
        },
        headers=token_headers(doctor),
    )
    assert completed.status_code == 200
    body = completed.json()
    assert body["status"] == "completed"
    assert body["check_in"]["total_time"] == 28
    assert body["follow_up"] == {
        "type": "treatment",
        "recommended_date": None,
        "priority": "high",
        "notes": None,
    }
    assert body["notes"][-1]["content"] == "No further pain"
    assert body["wait_time"] == 15
    assert body["is_terminal"] is True
    assert body["is_active"] is False

    again = await client.post(f"{base}/confirm", headers=token_headers(receptionist))
    assert again.status_code == 409
    assert again.json()["error"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_late_cancellation_is_rejected(
    client: AsyncClient, patient, clock, booking_payload: dict
) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )
    base = f"/api/v1/appointments/{created.json()['appointment_id']}"

    clock.advance(hours=30)
    late = await client.post(
        f"{base}/cancel", json={"reason": "Feeling better"}, headers=token_headers(patient)
    )
    assert late.status_code == 409
    assert late.json()["error"] == "InvalidTransition"


@pytest.mark.asyncio
async def test_cancel_and_reschedule(
    client: AsyncClient, patient, booking_payload: dict
) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )
    base = f"/api/v1/appointments/{created.json()['appointment_id']}"

    moved = await client.post(
        f"{base}/reschedule",
        json={
            "appointment_date": (WEDNESDAY + timedelta(days=1)).isoformat(),
            "time_slot": {"start_time": "15:00", "end_time": "15:30"},
            "reason": "Work meeting",
        },
        headers=token_headers(patient),
    )
    assert moved.status_code == 200
    assert moved.json()["status"] == "rescheduled"
    assert moved.json()["rescheduling"]["previous_start_time"] == "10:00"

    # Rescheduled appointments do not move on to cancellation
    cancelled = await client.post(
        f"{base}/cancel", json={"reason": "Travel"}, headers=token_headers(patient)
    )
    assert cancelled.status_code == 409


@pytest.mark.asyncio
async def test_patient_cannot_check_in(client: AsyncClient, patient, booking_payload: dict) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )

    response = await client.post(
        f"/api/v1/appointments/{created.json()['appointment_id']}/check-in",
        headers=token_headers(patient),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_private_notes_are_hidden_from_patients(
    client: AsyncClient, patient, doctor, booking_payload: dict
) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )
    base = f"/api/v1/appointments/{created.json()['appointment_id']}"

    note = await client.post(
        f"{base}/notes",
        json={"content": "Suspect bronchitis", "type": "clinical", "is_private": True},
        headers=token_headers(doctor),
    )
    assert note.status_code == 201
    assert note.json()["notes"][0]["is_private"] is True

    as_patient = await client.get(base, headers=token_headers(patient))
    assert as_patient.json()["notes"] == []


@pytest.mark.asyncio
async def test_documents_and_payment(
    client: AsyncClient, patient, receptionist, booking_payload: dict
) -> None:
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )
    base = f"/api/v1/appointments/{created.json()['appointment_id']}"

    document = await client.post(
        f"{base}/documents",
        json={"type": "report", "title": "Lab results", "file_url": "https://files.example/r.pdf"},
        headers=token_headers(receptionist),
    )
    payment = await client.post(
        f"{base}/payment",
        json={"amount": "45.00", "method": "insurance", "transaction_id": "INS-778"},
        headers=token_headers(receptionist),
    )

    assert document.status_code == 201
    assert document.json()["documents"][0]["title"] == "Lab results"
    assert payment.status_code == 200
    assert payment.json()["payment"]["method"] == "insurance"
    assert payment.json()["payment"]["transaction_id"] == "INS-778"


@pytest.mark.asyncio
async def test_receptionist_of_other_clinic_is_denied(
    client: AsyncClient, patient, booking_payload: dict
) -> None:
    from uuid import uuid4

    from app.core.permissions import Actor, Role

    outsider = Actor(id=uuid4(), role=Role.RECEPTIONIST, clinic_ids=frozenset({uuid4()}))
    created = await client.post(
        "/api/v1/appointments/", json=booking_payload, headers=token_headers(patient)
    )

    response = await client.post(
        f"/api/v1/appointments/{created.json()['appointment_id']}/confirm",
        headers=token_headers(outsider),
    )

    assert response.status_code == 403
