from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Dict, Any
from datetime import datetime, date

PENDING = "pending"
CONFIRMED = "confirmed"
COMPLETED = "completed"
CANCELLED = "cancelled"
REJECTED = "rejected"

VALID_STATUSES = (PENDING, CONFIRMED, COMPLETED, CANCELLED, REJECTED)
TERMINAL_STATUSES = (COMPLETED, CANCELLED, REJECTED)
APPOINTMENT_TYPES = ("in-person", "online")


def slot_start(appointment_date: date, appointment_time: str) -> datetime:
    hours, minutes = appointment_time.split(":")
    return datetime.combine(appointment_date, datetime.min.time()).replace(hour=int(hours), minute=int(minutes))


@dataclass
class AppointmentDto:
    id: str
    patient_id: str
    doctor_id: str
    appointment_date: date
    appointment_time: str
    reason: str
    type: str
    status: str
    notes: Optional[str] = None
    fee: Optional[float] = None
    documents: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def starts_at(self) -> datetime:
        return slot_start(self.appointment_date, self.appointment_time)


class AppointmentsRepository(Protocol):
    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        ...

    def find_confirmed_in_slot(self, doctor_id: str, appointment_date: date, appointment_time: str) -> Optional[AppointmentDto]:
        ...

    def exists_confirmed_between(self, patient_id: str, doctor_id: str) -> bool:
        ...

    def create(self, patient_id: str, doctor_id: str, appointment_date: date, appointment_time: str, reason: str, type: str, fee: Optional[float], documents: List[str]) -> AppointmentDto:
        """Persist a pending appointment."""
        ...

    def update(self, appointment_id: str, changes: Dict[str, Any]) -> AppointmentDto:
        """Apply field changes. Raises Conflict when a confirmed slot is already taken."""
        ...

    def delete(self, appointment_id: str) -> None:
        ...

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        ...

    def list_all(self) -> List[AppointmentDto]:
        ...

    def list_confirmed(self) -> List[AppointmentDto]:
        ...

    def confirmed_times(self, doctor_id: str, appointment_date: date) -> List[str]:
        ...
