from typing import Any, Dict, List, Optional
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from .....exceptions import Conflict, NotFound
from .....db.models import Appointment
from .....application.ports.appointments_repo import (
    CONFIRMED,
    AppointmentDto,
    AppointmentsRepository,
)
from .base import SqlRepository


class SqlAppointmentsRepository(SqlRepository, AppointmentsRepository):
    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            patient_id=a.patient_id,
            doctor_id=a.doctor_id,
            appointment_date=a.appointment_date,
            appointment_time=a.appointment_time,
            reason=a.reason,
            type=a.type,
            status=a.status,
            notes=a.notes,
            fee=a.fee,
            documents=list(a.documents or []),
            created_at=a.created_at,
            updated_at=a.updated_at,
        )

    def _commit(self, appt: Appointment) -> Appointment:
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError:
            # Partial unique index on confirmed slots lost a race
            self.session.rollback()
            raise Conflict("Doctor is not available at this time")
        self.session.refresh(appt)
        return appt

    def get_by_id(self, appointment_id: str) -> Optional[AppointmentDto]:
        with self._guard("appointment lookup"):
            a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
        return self._appt_to_dto(a) if a else None

    def find_confirmed_in_slot(self, doctor_id: str, appointment_date, appointment_time: str) -> Optional[AppointmentDto]:
        with self._guard("slot lookup"):
            a = self.session.exec(
                select(Appointment)
                .where(Appointment.doctor_id == doctor_id)
                .where(Appointment.appointment_date == appointment_date)
                .where(Appointment.appointment_time == appointment_time)
                .where(Appointment.status == CONFIRMED)
            ).first()
        return self._appt_to_dto(a) if a else None

    def exists_confirmed_between(self, patient_id: str, doctor_id: str) -> bool:
        with self._guard("appointment lookup"):
            a = self.session.exec(
                select(Appointment)
                .where(Appointment.patient_id == patient_id)
                .where(Appointment.doctor_id == doctor_id)
                .where(Appointment.status == CONFIRMED)
            ).first()
        return a is not None

    def create(self, patient_id: str, doctor_id: str, appointment_date, appointment_time: str, reason: str, type: str, fee: Optional[float], documents: List[str]) -> AppointmentDto:
        appt = Appointment(
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            reason=reason,
            type=type,
            fee=fee,
            documents=documents,
            status="pending",
        )
        with self._guard("appointment create"):
            appt = self._commit(appt)
        return self._appt_to_dto(appt)

    def update(self, appointment_id: str, changes: Dict[str, Any]) -> AppointmentDto:
        with self._guard("appointment update"):
            a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
            if not a:
                raise NotFound("Appointment not found")
            for key, value in changes.items():
                setattr(a, key, value)
            a = self._commit(a)
        return self._appt_to_dto(a)

    def delete(self, appointment_id: str) -> None:
        with self._guard("appointment delete"):
            a = self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()
            if not a:
                return
            self.session.delete(a)
            self.session.commit()

    def list_for_user(self, user_id: str) -> List[AppointmentDto]:
        with self._guard("appointment list"):
            rows = self.session.exec(
                select(Appointment)
                .where(or_(Appointment.patient_id == user_id, Appointment.doctor_id == user_id))
                .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            ).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_all(self) -> List[AppointmentDto]:
        with self._guard("appointment list"):
            rows = self.session.exec(
                select(Appointment)
                .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            ).all()
        return [self._appt_to_dto(r) for r in rows]

    def list_confirmed(self) -> List[AppointmentDto]:
        with self._guard("appointment list"):
            rows = self.session.exec(select(Appointment).where(Appointment.status == CONFIRMED)).all()
        return [self._appt_to_dto(r) for r in rows]

    def confirmed_times(self, doctor_id: str, appointment_date) -> List[str]:
        with self._guard("slot lookup"):
            rows = self.session.exec(
                select(Appointment.appointment_time)
                .where(Appointment.doctor_id == doctor_id)
                .where(Appointment.appointment_date == appointment_date)
                .where(Appointment.status == CONFIRMED)
            ).all()
        return list(rows)
