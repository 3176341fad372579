from typing import Optional
from sqlmodel import select

from .....db.models import User
from .....application.ports.user_repo import UserRepository, UserDto
from .base import SqlRepository


class SqlUserRepository(SqlRepository, UserRepository):
    def _to_dto(self, user: User) -> UserDto:
        return UserDto(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            status=getattr(user, "status", "active"),
        )

    def get_by_id(self, user_id: str) -> Optional[UserDto]:
        with self._guard("user lookup"):
            user = self.session.exec(select(User).where(User.id == user_id)).first()
        return self._to_dto(user) if user else None
