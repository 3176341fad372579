import os
import uuid
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

import pytest

# Must be set before anything imports medicare.config
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-medicare"
os.environ["RATE_LIMIT_PER_MINUTE"] = "100000"
os.environ["REMINDERS_ENABLED"] = "false"
os.environ.pop("REDIS_URL", None)

from medicare.application.actors import Admin, Doctor, Patient  # noqa: E402
from medicare.application.ports.appointments_repo import CONFIRMED, PENDING, AppointmentDto  # noqa: E402
from medicare.application.ports.chat_repo import ConversationDto, MessageDto, pair_key  # noqa: E402
from medicare.application.ports.user_repo import UserDto  # noqa: E402
from medicare.exceptions import Conflict, NotFound  # noqa: E402


class FakeUserRepo:
    def __init__(self):
        self.users: Dict[str, UserDto] = {}

    def add(self, user_id: str, role: str, name: Optional[str] = None) -> UserDto:
        user = UserDto(id=user_id, name=name or user_id, email=f"{user_id}@example.com", role=role)
        self.users[user_id] = user
        return user

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        return self.users.get(user_id)


class FakeApptRepo:
    def __init__(self):
        self._id = 1
        self.appts: List[AppointmentDto] = []

    def add(self, patient_id: str, doctor_id: str, status: str = PENDING, when: Optional[datetime] = None) -> AppointmentDto:
        when = when or datetime.now() + timedelta(days=2)
        appt = self.create(patient_id, doctor_id, when.date(), when.strftime("%H:%M"), "Recurring headaches", "in-person", None, [])
        appt.status = status
        return appt

    def get_by_id(self, appointment_id: str):
        return next((a for a in self.appts if a.id == appointment_id), None)

    def find_confirmed_in_slot(self, doctor_id: str, appointment_date: date, appointment_time: str):
        return next(
            (
                a for a in self.appts
                if a.doctor_id == doctor_id
                and a.appointment_date == appointment_date
                and a.appointment_time == appointment_time
                and a.status == CONFIRMED
            ),
            None,
        )

    def exists_confirmed_between(self, patient_id: str, doctor_id: str) -> bool:
        return any(a.patient_id == patient_id and a.doctor_id == doctor_id and a.status == CONFIRMED for a in self.appts)

    def create(self, patient_id, doctor_id, appointment_date, appointment_time, reason, type, fee, documents):
        a = AppointmentDto(
            id=f"a{self._id}",
            patient_id=patient_id,
            doctor_id=doctor_id,
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            reason=reason,
            type=type,
            status=PENDING,
            fee=fee,
            documents=list(documents),
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )
        self.appts.append(a)
        self._id += 1
        return a

    def update(self, appointment_id: str, changes):
        a = self.get_by_id(appointment_id)
        if not a:
            raise NotFound("Appointment not found")
        if changes.get("status") == CONFIRMED:
            date_ = changes.get("appointment_date", a.appointment_date)
            time_ = changes.get("appointment_time", a.appointment_time)
            taken = self.find_confirmed_in_slot(a.doctor_id, date_, time_)
            if taken and taken.id != a.id:
                raise Conflict("Doctor is not available at this time")
        for key, value in changes.items():
            setattr(a, key, value)
        return a

    def delete(self, appointment_id: str) -> None:
        self.appts = [a for a in self.appts if a.id != appointment_id]

    def list_for_user(self, user_id: str):
        return [a for a in self.appts if user_id in (a.patient_id, a.doctor_id)]

    def list_all(self):
        return list(self.appts)

    def list_confirmed(self):
        return [a for a in self.appts if a.status == CONFIRMED]

    def confirmed_times(self, doctor_id: str, appointment_date: date):
        return [
            a.appointment_time for a in self.appts
            if a.doctor_id == doctor_id and a.appointment_date == appointment_date and a.status == CONFIRMED
        ]


class FakeConversationsRepo:
    def __init__(self):
        self.conversations: Dict[str, ConversationDto] = {}
        self.messages: Dict[str, List[MessageDto]] = {}
        self.create_calls = 0

    def _copy(self, c: ConversationDto, with_messages: bool = False) -> ConversationDto:
        messages = list(self.messages[c.id]) if with_messages else []
        return ConversationDto(id=c.id, participants=c.participants, last_message_at=c.last_message_at, created_at=c.created_at, messages=messages)

    def get_by_id(self, conversation_id: str, with_messages: bool = False):
        c = self.conversations.get(conversation_id)
        return self._copy(c, with_messages) if c else None

    def find_between(self, user_a: str, user_b: str):
        key = pair_key(user_a, user_b)
        for c in self.conversations.values():
            if pair_key(*c.participants) == key:
                return self._copy(c)
        return None

    def create(self, user_a: str, user_b: str):
        self.create_calls += 1
        existing = self.find_between(user_a, user_b)
        if existing:
            return existing, False
        now = datetime.utcnow()
        c = ConversationDto(id=str(uuid.uuid4()), participants=(user_a, user_b), last_message_at=now, created_at=now)
        self.conversations[c.id] = c
        self.messages[c.id] = []
        return self._copy(c), True

    def list_for_user(self, user_id: str):
        rows = [c for c in self.conversations.values() if user_id in c.participants]
        return [self._copy(c) for c in sorted(rows, key=lambda c: c.last_message_at, reverse=True)]

    def append_message(self, conversation_id: str, sender_id: str, content: str, timestamp: datetime):
        message = MessageDto(id=str(uuid.uuid4()), sender_id=sender_id, content=content, timestamp=timestamp)
        self.messages[conversation_id].append(message)
        self.conversations[conversation_id].last_message_at = timestamp
        return message

    def list_messages(self, conversation_id: str):
        return list(self.messages.get(conversation_id, []))


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def emit_to_room(self, room, event, payload=None):
        self.events.append((room, event, payload))

    def to(self, room: str):
        return [(event, payload) for r, event, payload in self.events if r == room]

    def names(self):
        return [(room, event) for room, event, _ in self.events]


class FakeAudit:
    def __init__(self):
        self.entries = []

    def log(self, action, admin_id, user_id=None, details=None, ip_address=None, user_agent=None):
        self.entries.append({"action": action, "admin_id": admin_id, "details": details, "ip_address": ip_address})


@pytest.fixture
def users():
    repo = FakeUserRepo()
    repo.add("p1", "patient", "Pat")
    repo.add("p2", "patient", "Priya")
    repo.add("d1", "doctor", "House")
    repo.add("d2", "doctor", "Grey")
    repo.add("admin1", "admin", "Root")
    return repo


@pytest.fixture
def appts():
    return FakeApptRepo()


@pytest.fixture
def conversations():
    return FakeConversationsRepo()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit():
    return FakeAudit()


@pytest.fixture
def patient():
    return Patient(id="p1", name="Pat")


@pytest.fixture
def doctor():
    return Doctor(id="d1", name="House")


@pytest.fixture
def admin():
    return Admin(id="admin1", name="Root")


# ------------------------
# App-level fixtures
# ------------------------
SEED_USERS = (
    ("p1", "Pat", "patient"),
    ("p2", "Priya", "patient"),
    ("d1", "House", "doctor"),
    ("admin1", "Root", "admin"),
)


@pytest.fixture
def db_engine():
    from sqlmodel import Session, SQLModel

    from medicare.database import engine
    from medicare.db.models import User

    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        for user_id, name, role in SEED_USERS:
            session.add(User(id=user_id, name=name, email=f"{user_id}@example.com", role=role))
        session.commit()
    return engine


@pytest.fixture
def client(db_engine):
    from fastapi.testclient import TestClient

    from medicare.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def tokens(db_engine):
    from medicare.utils import create_access_token

    return {
        user_id: create_access_token(user_id, name, f"{user_id}@example.com", role)
        for user_id, name, role in SEED_USERS
    }


@pytest.fixture
def auth(tokens):
    def headers(user_id: str):
        return {"Authorization": f"Bearer {tokens[user_id]}"}
    return headers


@pytest.fixture
def confirmed_appointment(client, auth):
    """Book p1 with d1 three days out and have the doctor confirm it."""
    day = (date.today() + timedelta(days=3)).strftime("%Y-%m-%d")
    res = client.post(
        "/api/appointments",
        json={
            "doctor_id": "d1",
            "appointment_date": day,
            "appointment_time": "10:00",
            "reason": "Persistent lower back pain",
            "type": "in-person",
        },
        headers=auth("p1"),
    )
    assert res.status_code == 201
    appt = res.json()
    res = client.put(f"/api/appointments/{appt['id']}", json={"status": "confirmed"}, headers=auth("d1"))
    assert res.status_code == 200
    return res.json()
