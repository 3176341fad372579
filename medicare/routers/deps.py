import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Set, Tuple

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from ..config import settings
from ..database import engine, get_session
from ..exceptions import AuthError
from ..application.actors import Actor, actor_from_user
from ..application.ports.notifier import Notifier
from ..application.services.appointments_service import AppointmentsService
from ..application.services.chat_service import ChatService
from ..application.services.reminder_service import ReminderService
from ..infrastructure.audit.std_logger import StdAuditLogger
from ..infrastructure.auth.jwt_verifier import JwtTokenVerifier
from ..infrastructure.persistence.sqlalchemy.repositories.appointments_repository_sql import SqlAppointmentsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.audit_log_repository_sql import SqlAuditLogRepository
from ..infrastructure.persistence.sqlalchemy.repositories.chat_repository_sql import SqlConversationsRepository
from ..infrastructure.persistence.sqlalchemy.repositories.user_repository_sql import SqlUserRepository

logger = logging.getLogger(__name__)

# Auth scheme
oauth2_scheme = HTTPBearer(auto_error=False)
token_verifier = JwtTokenVerifier()


# ------------------------
# Service construction
# ------------------------
def build_chat_service(session: Session, notifier: Notifier) -> ChatService:
    return ChatService(
        conversations=SqlConversationsRepository(session),
        appointments=SqlAppointmentsRepository(session),
        users=SqlUserRepository(session),
        notifier=notifier,
        max_message_length=settings.MESSAGE_MAX_LENGTH,
    )


def build_appointments_service(session: Session, notifier: Notifier) -> AppointmentsService:
    return AppointmentsService(
        repo=SqlAppointmentsRepository(session),
        user_repo=SqlUserRepository(session),
        notifier=notifier,
        audit=StdAuditLogger(sink=SqlAuditLogRepository(session)),
        reason_min_length=settings.REASON_MIN_LENGTH,
        notes_max_length=settings.NOTES_MAX_LENGTH,
        slot_start_hour=settings.SLOT_START_HOUR,
        slot_end_hour=settings.SLOT_END_HOUR,
    )


@contextmanager
def chat_service_scope(notifier: Notifier) -> Iterator[ChatService]:
    """One session per realtime action."""
    with Session(engine) as session:
        yield build_chat_service(session, notifier)


def run_reminder_sweep(notifier: Optional[Notifier] = None, pushed: Optional[Set[Tuple[str, str]]] = None):
    with Session(engine) as session:
        service = ReminderService(
            repo=SqlAppointmentsRepository(session),
            user_repo=SqlUserRepository(session),
            notifier=notifier,
            pushed=pushed if pushed is not None else set(),
        )
        return service.sweep()


# ------------------------
# Request dependencies
# ------------------------
def get_notifier(request: Request) -> Notifier:
    return request.app.state.gateway


def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> Actor:
    token = credentials.credentials if credentials else None
    claims = token_verifier.verify(token)
    user = SqlUserRepository(session).get_by_id(claims.id)
    if not user:
        logger.warning(f"Token for unknown user {claims.id}")
        raise AuthError("User not found")
    return actor_from_user(user)


def get_chat_service(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> ChatService:
    return build_chat_service(session, notifier)


def get_appointments_service(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
) -> AppointmentsService:
    return build_appointments_service(session, notifier)
