from dataclasses import dataclass
from typing import Protocol, Optional


@dataclass
class UserDto:
    id: str
    name: str
    email: str
    role: str
    status: str = "active"


class UserRepository(Protocol):
    """Identity lookup shared by the appointment and chat services."""

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        ...
