from datetime import date, datetime

import pytest

from medicare.application.actors import Doctor, Patient
from medicare.application.ports.appointments_repo import CANCELLED, COMPLETED, CONFIRMED, PENDING, REJECTED
from medicare.application.services.appointments_service import AppointmentsService
from medicare.exceptions import Conflict, Forbidden, InvalidInput, NotFound

NOW = datetime(2030, 1, 1, 8, 0)
REASON = "Persistent lower back pain"


@pytest.fixture
def svc(appts, users, notifier, audit):
    return AppointmentsService(repo=appts, user_repo=users, notifier=notifier, audit=audit, clock=lambda: NOW)


def book(svc, requester, doctor_id="d1", day="2030-01-02", at="10:00"):
    return svc.create(requester, doctor_id, day, at, REASON, "in-person")


def test_book_success(svc, appts, patient):
    out = book(svc, patient)
    assert out.status == PENDING
    assert out.appointment_date == date(2030, 1, 2)
    assert out.appointment_time == "10:00"
    assert appts.get_by_id(out.id) is not None


def test_book_broadcasts_to_both_parties(svc, notifier, patient):
    out = book(svc, patient)
    assert notifier.names() == [
        ("user:p1", "appointment_created"),
        ("user:d1", "appointment_created"),
        ("user:p1", "dashboard_update"),
        ("user:d1", "dashboard_update"),
    ]
    _, payload = notifier.to("user:d1")[0]
    assert payload["id"] == out.id
    assert payload["patient"]["name"] == "Pat"
    assert payload["doctor"]["email"] == "d1@example.com"


def test_only_patients_can_book(svc, doctor, admin):
    with pytest.raises(Forbidden):
        book(svc, doctor)
    with pytest.raises(Forbidden):
        book(svc, admin)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"doctor_id": ""},
        {"day": "02-01-2030"},
        {"at": "10am"},
        {"day": "2029-12-31"},
        {"day": "2030-01-01", "at": "08:00"},
        {"doctor_id": "p2"},
        {"doctor_id": "ghost"},
    ],
)
def test_book_rejects_bad_input(svc, patient, kwargs):
    with pytest.raises(InvalidInput):
        book(svc, patient, **kwargs)


def test_book_rejects_short_reason_and_unknown_type(svc, patient):
    with pytest.raises(InvalidInput):
        svc.create(patient, "d1", "2030-01-02", "10:00", "ouch", "in-person")
    with pytest.raises(InvalidInput):
        svc.create(patient, "d1", "2030-01-02", "10:00", REASON, "house-call")


def test_book_conflicts_with_confirmed_slot(svc, appts, patient, doctor):
    first = book(svc, patient)
    svc.update(doctor, first.id, status=CONFIRMED)
    with pytest.raises(Conflict):
        book(svc, Patient(id="p2"))


def test_pending_appointments_do_not_block_slot(svc, patient):
    book(svc, patient)
    second = book(svc, Patient(id="p2"))
    assert second.status == PENDING


def test_doctor_confirms_and_second_confirmation_conflicts(svc, patient, doctor):
    a = book(svc, patient)
    b = book(svc, Patient(id="p2"))
    assert svc.update(doctor, a.id, status=CONFIRMED).status == CONFIRMED
    with pytest.raises(Conflict):
        svc.update(doctor, b.id, status=CONFIRMED)


def test_patient_cannot_confirm_and_doctor_cannot_cancel(svc, patient, doctor):
    a = book(svc, patient)
    with pytest.raises(Forbidden):
        svc.update(patient, a.id, status=CONFIRMED)
    with pytest.raises(Forbidden):
        svc.update(doctor, a.id, status=CANCELLED)
    with pytest.raises(Forbidden):
        svc.update(patient, a.id, status=COMPLETED)


def test_patient_cancels(svc, notifier, patient):
    a = book(svc, patient)
    notifier.events.clear()
    out = svc.update(patient, a.id, status=CANCELLED)
    assert out.status == CANCELLED
    assert ("user:d1", "appointment_updated") in notifier.names()
    assert ("user:d1", "dashboard_update") in notifier.names()


def test_terminal_status_is_final(svc, patient, doctor):
    a = book(svc, patient)
    svc.update(doctor, a.id, status=REJECTED)
    with pytest.raises(InvalidInput):
        svc.update(doctor, a.id, status=CONFIRMED)
    with pytest.raises(InvalidInput):
        svc.update(patient, a.id, appointment_date_str="2030-01-05")


def test_reschedule_forces_pending(svc, patient, doctor):
    a = book(svc, patient)
    svc.update(doctor, a.id, status=CONFIRMED)
    out = svc.update(patient, a.id, status=CONFIRMED, appointment_date_str="2030-01-03", appointment_time="11:00")
    assert out.status == PENDING
    assert out.appointment_date == date(2030, 1, 3)
    assert out.appointment_time == "11:00"


def test_reschedule_rules(svc, patient, doctor):
    a = book(svc, patient)
    with pytest.raises(Forbidden):
        svc.update(doctor, a.id, appointment_time="11:00")
    with pytest.raises(InvalidInput):
        svc.update(patient, a.id, appointment_date_str="2029-06-01")


def test_notes_only_update_keeps_status_and_broadcasts(svc, notifier, patient, doctor):
    a = book(svc, patient)
    notifier.events.clear()
    out = svc.update(doctor, a.id, notes="  bring x-rays  ")
    assert out.notes == "bring x-rays"
    assert out.status == PENDING
    assert [e for e, _ in notifier.to("user:p1")] == ["appointment_updated", "dashboard_update"]


def test_update_validation_and_access(svc, patient):
    a = book(svc, patient)
    with pytest.raises(InvalidInput):
        svc.update(patient, a.id, status="postponed")
    with pytest.raises(InvalidInput):
        svc.update(patient, a.id, notes="x" * 501)
    with pytest.raises(NotFound):
        svc.update(patient, "missing", status=CANCELLED)
    with pytest.raises(Forbidden):
        svc.update(Doctor(id="d2"), a.id, status=CONFIRMED)
    with pytest.raises(Forbidden):
        svc.update(Patient(id="p2"), a.id, status=CANCELLED)


def test_delete_by_owner_emits_deleted(svc, appts, notifier, patient, doctor):
    a = book(svc, patient)
    with pytest.raises(Forbidden):
        svc.delete(doctor, a.id)
    notifier.events.clear()
    svc.delete(patient, a.id)
    assert appts.get_by_id(a.id) is None
    assert notifier.to("user:d1") == [("appointment_deleted", {"id": a.id}), ("dashboard_update", None)]
    with pytest.raises(NotFound):
        svc.delete(patient, a.id)


def test_admin_override_is_audited(svc, audit, patient, admin):
    a = book(svc, patient)
    out = svc.admin_set_status(admin, a.id, COMPLETED, ip_address="10.0.0.1")
    assert out.status == COMPLETED
    assert audit.entries == [
        {
            "action": "APPOINTMENT_STATUS_UPDATED",
            "admin_id": "admin1",
            "details": {"appointment_id": a.id, "status": COMPLETED, "previous_status": PENDING},
            "ip_address": "10.0.0.1",
        }
    ]


def test_admin_override_requires_admin(svc, patient, doctor):
    a = book(svc, patient)
    with pytest.raises(Forbidden):
        svc.admin_set_status(doctor, a.id, CONFIRMED)


def test_list_for_scopes_by_role(svc, patient, admin):
    book(svc, patient)
    book(svc, Patient(id="p2"), doctor_id="d2")
    assert len(svc.list_for(patient)) == 1
    assert len(svc.list_for(Doctor(id="d2"))) == 1
    assert len(svc.list_for(admin)) == 2


def test_available_slots_exclude_confirmed(svc, patient, doctor):
    a = book(svc, patient, at="09:00")
    svc.update(doctor, a.id, status=CONFIRMED)
    book(svc, Patient(id="p2"), at="10:00")
    slots = svc.get_available_slots("d1", "2030-01-02")
    assert "09:00" not in slots
    assert "10:00" in slots
    assert slots[-1] == "17:00"
    assert len(slots) == 8
    with pytest.raises(InvalidInput):
        svc.get_available_slots("p1", "2030-01-02")
