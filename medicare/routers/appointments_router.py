from typing import List
from fastapi import APIRouter, Depends
import logging

from ..application.actors import Actor
from ..application.services.appointments_service import AppointmentsService
from ..schemas.appointments.appointment import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    AvailableSlotsResponse,
)
from ..schemas.common.common import MessageResponse
from .deps import get_appointments_service, get_current_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


@router.get("", response_model=List[AppointmentResponse])
def list_appointments(
    current_actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    return [appt_service.describe(a) for a in appt_service.list_for(current_actor)]


@router.post("", response_model=AppointmentResponse, status_code=201)
def book_appointment(
    appointment_data: AppointmentCreate,
    current_actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.create(
        current_actor,
        doctor_id=appointment_data.doctor_id,
        appointment_date_str=appointment_data.appointment_date,
        appointment_time=appointment_data.appointment_time,
        reason=appointment_data.reason,
        type=appointment_data.type,
        fee=appointment_data.fee,
        documents=appointment_data.documents,
    )
    return appt_service.describe(appt)


@router.get("/available-slots/{doctor_id}/{appointment_date}", response_model=AvailableSlotsResponse)
def get_available_slots(
    doctor_id: str,
    appointment_date: str,
    current_actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    slots = appt_service.get_available_slots(doctor_id, appointment_date)
    return AvailableSlotsResponse(doctor_id=doctor_id, date=appointment_date, available_slots=slots)


@router.put("/{appointment_id}", response_model=AppointmentResponse)
def update_appointment(
    appointment_id: str,
    changes: AppointmentUpdate,
    current_actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.update(
        current_actor,
        appointment_id,
        status=changes.status,
        notes=changes.notes,
        appointment_date_str=changes.appointment_date,
        appointment_time=changes.appointment_time,
    )
    return appt_service.describe(appt)


@router.delete("/{appointment_id}", response_model=MessageResponse)
def delete_appointment(
    appointment_id: str,
    current_actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt_service.delete(current_actor, appointment_id)
    return MessageResponse(message="Appointment removed")
