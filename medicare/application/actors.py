from dataclasses import dataclass
from typing import Optional, Union

from ..exceptions import AuthError
from .ports.user_repo import UserDto


@dataclass(frozen=True)
class Patient:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Doctor:
    id: str
    name: str = ""


@dataclass(frozen=True)
class Admin:
    id: str
    name: str = ""


Actor = Union[Patient, Doctor, Admin]

_ROLE_TYPES = {
    "patient": Patient,
    "doctor": Doctor,
    "admin": Admin,
}


def actor_for(user_id: str, role: Optional[str], name: str = "") -> Actor:
    """Resolve the role claim once at request entry."""
    kind = _ROLE_TYPES.get(role or "")
    if kind is None:
        raise AuthError("Invalid token: unknown role")
    return kind(id=user_id, name=name)


def actor_from_user(user: UserDto) -> Actor:
    return actor_for(user.id, user.role, user.name)


def role_of(actor: Actor) -> str:
    if isinstance(actor, Doctor):
        return "doctor"
    if isinstance(actor, Admin):
        return "admin"
    return "patient"
