# medicare/db/models/users/user.py
from typing import Optional, List
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, DateTime, JSON
from datetime import datetime
import uuid


class User(SQLModel, table=True):
    __tablename__ = "users"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(max_length=100, unique=True, index=True)
    role: str = Field(default="patient", index=True)  # patient | doctor | admin
    status: str = Field(default="active")  # active | suspended | pending

    # Doctor-only attributes
    specialization: Optional[str] = Field(default=None)
    experience: Optional[int] = Field(default=None)
    consultation_fee: float = Field(default=0)
    availability: List[dict] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column=Column(DateTime, nullable=False))
