# medicare/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

from ..common.common import PartySummary


class AppointmentCreate(BaseModel):
    doctor_id: Optional[str] = None
    appointment_date: Optional[str] = None  # YYYY-MM-DD
    appointment_time: Optional[str] = None  # HH:MM
    reason: Optional[str] = None
    type: Optional[str] = None  # in-person | online
    fee: Optional[float] = Field(default=None, ge=0)
    documents: List[str] = []


class AppointmentUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None
    appointment_date: Optional[str] = None
    appointment_time: Optional[str] = None


class AdminStatusUpdate(BaseModel):
    status: str


class AppointmentResponse(BaseModel):
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
    documents: List[str] = []
    patient: Optional[PartySummary] = None
    doctor: Optional[PartySummary] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AvailableSlotsResponse(BaseModel):
    doctor_id: str
    date: str
    available_slots: List[str]
