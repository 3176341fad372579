from fastapi import APIRouter, Depends, Request

from ..application.actors import Actor
from ..application.services.appointments_service import AppointmentsService
from ..schemas.appointments.appointment import AdminStatusUpdate, AppointmentResponse
from .deps import get_appointments_service, get_current_actor

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.put("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: str,
    body: AdminStatusUpdate,
    request: Request,
    current_actor: Actor = Depends(get_current_actor),
    appt_service: AppointmentsService = Depends(get_appointments_service),
):
    appt = appt_service.admin_set_status(
        current_actor,
        appointment_id,
        body.status,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return appt_service.describe(appt)
