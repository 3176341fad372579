from typing import Optional, Tuple

from ..ports.user_repo import UserRepository
from ..ports.appointments_repo import AppointmentsRepository


def patient_doctor_pair(users: UserRepository, user_a: str, user_b: str) -> Optional[Tuple[str, str]]:
    """Return (patient_id, doctor_id) when the two users are exactly one patient and one doctor."""
    if not user_a or not user_b or user_a == user_b:
        return None
    a = users.get_by_id(user_a)
    b = users.get_by_id(user_b)
    if not a or not b:
        return None
    if a.role == "patient" and b.role == "doctor":
        return a.id, b.id
    if a.role == "doctor" and b.role == "patient":
        return b.id, a.id
    return None


def can_communicate(users: UserRepository, appointments: AppointmentsRepository, user_a: str, user_b: str) -> bool:
    """True when a confirmed appointment links the two users as patient and doctor.

    Evaluated on every call: a confirmation can be revoked after a conversation exists.
    """
    pair = patient_doctor_pair(users, user_a, user_b)
    if pair is None:
        return False
    patient_id, doctor_id = pair
    return appointments.exists_confirmed_between(patient_id, doctor_id)
