# medicare/db/models/health/appointment.py
from typing import Optional, List
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, Index, JSON, text
from datetime import datetime, date
import uuid


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # At most one confirmed appointment per (doctor, date, time)
        Index(
            "uq_appointments_confirmed_slot",
            "doctor_id",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    patient_id: str = Field(foreign_key="users.id", index=True)
    doctor_id: str = Field(foreign_key="users.id", index=True)
    appointment_date: date
    appointment_time: str
    reason: str
    type: str  # in-person | online
    status: str = Field(default="pending", index=True)
    notes: Optional[str] = Field(default=None, max_length=500)
    fee: Optional[float] = Field(default=None)
    documents: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    # Naive UTC timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False))
