from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol


@dataclass
class Claims:
    id: str
    name: str
    email: str
    role: str
    expires_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class TokenVerifier(Protocol):
    def verify(self, token: Optional[str]) -> Claims:
        """Return the token's claims or raise AuthError."""
        ...
