import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, date
from typing import Any, Callable, Dict, List, Optional

from ...exceptions import Conflict, Forbidden, InvalidInput, NotFound
from ..actors import Actor, Admin, Doctor, Patient
from ..ports.appointments_repo import (
    APPOINTMENT_TYPES,
    CANCELLED,
    CONFIRMED,
    COMPLETED,
    PENDING,
    REJECTED,
    TERMINAL_STATUSES,
    VALID_STATUSES,
    AppointmentDto,
    AppointmentsRepository,
    slot_start,
)
from ..ports.audit_logger import AuditLogger
from ..ports.notifier import (
    APPOINTMENT_CREATED,
    APPOINTMENT_DELETED,
    APPOINTMENT_UPDATED,
    DASHBOARD_UPDATE,
    Notifier,
    personal_room,
)
from ..ports.user_repo import UserRepository

logger = logging.getLogger(__name__)

# Statuses each side of an appointment may set directly
DOCTOR_SETTABLE = (CONFIRMED, COMPLETED, REJECTED, PENDING)
PATIENT_SETTABLE = (CANCELLED, PENDING)


def parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidInput("Invalid appointment date format. Use YYYY-MM-DD")


def parse_time(value: str) -> str:
    try:
        return datetime.strptime(value, "%H:%M").strftime("%H:%M")
    except (TypeError, ValueError):
        raise InvalidInput("Invalid appointment time format. Use HH:MM")


@dataclass
class AppointmentsService:
    repo: AppointmentsRepository
    user_repo: UserRepository
    notifier: Notifier
    audit: Optional[AuditLogger] = None
    clock: Callable[[], datetime] = field(default=datetime.now)
    reason_min_length: int = 10
    notes_max_length: int = 500
    slot_start_hour: int = 9
    slot_end_hour: int = 17

    def create(
        self,
        requester: Actor,
        doctor_id: str,
        appointment_date_str: str,
        appointment_time: str,
        reason: str,
        type: str,
        fee: Optional[float] = None,
        documents: Optional[List[str]] = None,
    ) -> AppointmentDto:
        if not isinstance(requester, Patient):
            raise Forbidden("Only patients can book appointments")

        if not doctor_id or not appointment_date_str or not appointment_time or not reason or not type:
            raise InvalidInput("All required fields are required")
        if len(reason.strip()) < self.reason_min_length:
            raise InvalidInput(f"Reason must be at least {self.reason_min_length} characters")
        if type not in APPOINTMENT_TYPES:
            raise InvalidInput(f"Invalid appointment type. Must be one of: {list(APPOINTMENT_TYPES)}")

        appointment_date = parse_date(appointment_date_str)
        appointment_time = parse_time(appointment_time)
        self._require_future(appointment_date, appointment_time)

        doctor = self.user_repo.get_by_id(doctor_id)
        if not doctor or doctor.role != "doctor":
            raise InvalidInput("Invalid doctor")

        if self.repo.find_confirmed_in_slot(doctor_id, appointment_date, appointment_time):
            raise Conflict("Doctor is not available at this time")

        appt = self.repo.create(
            requester.id,
            doctor_id,
            appointment_date,
            appointment_time,
            reason.strip(),
            type,
            fee,
            list(documents or []),
        )
        logger.info(f"Appointment {appt.id} booked by {requester.id} with doctor {doctor_id}")
        self._broadcast(appt, APPOINTMENT_CREATED, self.describe(appt))
        return appt

    def update(
        self,
        requester: Actor,
        appointment_id: str,
        status: Optional[str] = None,
        notes: Optional[str] = None,
        appointment_date_str: Optional[str] = None,
        appointment_time: Optional[str] = None,
    ) -> AppointmentDto:
        if status is not None and status not in VALID_STATUSES:
            raise InvalidInput(f"Invalid status. Must be one of: {list(VALID_STATUSES)}")
        if notes is not None and len(notes) > self.notes_max_length:
            raise InvalidInput(f"Notes too long (max {self.notes_max_length} characters)")
        new_date = parse_date(appointment_date_str) if appointment_date_str else None
        new_time = parse_time(appointment_time) if appointment_time else None

        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")

        is_patient = isinstance(requester, Patient) and requester.id == appt.patient_id
        is_doctor = isinstance(requester, Doctor) and requester.id == appt.doctor_id
        if not is_patient and not is_doctor:
            raise Forbidden("Not authorized")

        changes: Dict[str, Any] = {}
        rescheduled = (new_date is not None and new_date != appt.appointment_date) or (
            new_time is not None and new_time != appt.appointment_time
        )

        if rescheduled:
            if not is_patient:
                raise Forbidden("Only patients can request rescheduling")
            if appt.status in TERMINAL_STATUSES:
                raise InvalidInput(f"Cannot reschedule a {appt.status} appointment")
            target_date = new_date or appt.appointment_date
            target_time = new_time or appt.appointment_time
            self._require_future(target_date, target_time)
            # A reschedule always goes back to pending, whatever status was sent with it
            changes.update({"appointment_date": target_date, "appointment_time": target_time, "status": PENDING})
        elif status is not None and status != appt.status:
            if appt.status in TERMINAL_STATUSES:
                raise InvalidInput(f"Appointment is already {appt.status}")
            if status == CONFIRMED and not is_doctor:
                raise Forbidden("Only doctors can confirm appointments")
            if status == CANCELLED and not is_patient:
                raise Forbidden("Only patients can request cancellation")
            allowed = DOCTOR_SETTABLE if is_doctor else PATIENT_SETTABLE
            if status not in allowed:
                raise Forbidden(f"Only doctors can mark appointments as {status}")
            if status == CONFIRMED:
                self._require_free_slot(appt)
            changes["status"] = status

        if notes is not None:
            changes["notes"] = notes.strip()

        if changes:
            changes["updated_at"] = datetime.utcnow()
            appt = self.repo.update(appt.id, changes)
            logger.info(f"Appointment {appt.id} updated by {requester.id}: {sorted(changes)}")

        self._broadcast(appt, APPOINTMENT_UPDATED, self.describe(appt))
        return appt

    def delete(self, requester: Actor, appointment_id: str) -> None:
        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")
        if not (isinstance(requester, Patient) and requester.id == appt.patient_id):
            raise Forbidden("Not authorized")
        self.repo.delete(appt.id)
        logger.info(f"Appointment {appt.id} removed by {requester.id}")
        self._broadcast(appt, APPOINTMENT_DELETED, {"id": appt.id})

    def admin_set_status(
        self,
        requester: Actor,
        appointment_id: str,
        status: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AppointmentDto:
        """Administrative override; the only path that bypasses the participant rules."""
        if not isinstance(requester, Admin):
            raise Forbidden("Admin access required")
        if status not in VALID_STATUSES:
            raise InvalidInput(f"Invalid status. Must be one of: {list(VALID_STATUSES)}")

        appt = self.repo.get_by_id(appointment_id)
        if not appt:
            raise NotFound("Appointment not found")

        previous = appt.status
        if status != previous:
            if status == CONFIRMED:
                self._require_free_slot(appt)
            appt = self.repo.update(appt.id, {"status": status, "updated_at": datetime.utcnow()})

        if self.audit:
            self.audit.log(
                "APPOINTMENT_STATUS_UPDATED",
                admin_id=requester.id,
                details={"appointment_id": appt.id, "status": status, "previous_status": previous},
                ip_address=ip_address,
                user_agent=user_agent,
            )
        self._broadcast(appt, APPOINTMENT_UPDATED, self.describe(appt))
        return appt

    def list_for(self, requester: Actor) -> List[AppointmentDto]:
        if isinstance(requester, Admin):
            return self.repo.list_all()
        return self.repo.list_for_user(requester.id)

    def get_available_slots(self, doctor_id: str, appointment_date_str: str) -> List[str]:
        doctor = self.user_repo.get_by_id(doctor_id)
        if not doctor or doctor.role != "doctor":
            raise InvalidInput("Invalid doctor")
        appointment_date = parse_date(appointment_date_str)

        slots = [f"{hour:02d}:00" for hour in range(self.slot_start_hour, self.slot_end_hour + 1)]
        booked = set(self.repo.confirmed_times(doctor_id, appointment_date))
        return [slot for slot in slots if slot not in booked]

    def describe(self, appt: AppointmentDto) -> Dict[str, Any]:
        """Appointment fields plus name/email of both parties."""
        data = asdict(appt)
        data["patient"] = self._party(appt.patient_id)
        data["doctor"] = self._party(appt.doctor_id)
        return data

    def _party(self, user_id: str) -> Dict[str, Optional[str]]:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            return {"id": user_id, "name": None, "email": None}
        return {"id": user.id, "name": user.name, "email": user.email}

    def _require_future(self, appointment_date: date, appointment_time: str) -> None:
        if slot_start(appointment_date, appointment_time) <= self.clock():
            raise InvalidInput("Appointment must be in the future")

    def _require_free_slot(self, appt: AppointmentDto) -> None:
        taken = self.repo.find_confirmed_in_slot(appt.doctor_id, appt.appointment_date, appt.appointment_time)
        if taken and taken.id != appt.id:
            raise Conflict("Doctor is not available at this time")

    def _broadcast(self, appt: AppointmentDto, event: str, payload: Any) -> None:
        # Issued in a fixed order, delivered independently per room
        for user_id in (appt.patient_id, appt.doctor_id):
            self.notifier.emit_to_room(personal_room(user_id), event, payload)
        for user_id in (appt.patient_id, appt.doctor_id):
            self.notifier.emit_to_room(personal_room(user_id), DASHBOARD_UPDATE, None)
