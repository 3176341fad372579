import logging
from datetime import datetime
from typing import Optional

from ...exceptions import AuthError
from ...application.ports.token_verifier import Claims, TokenVerifier
from ...utils import decode_jwt_token

logger = logging.getLogger(__name__)


class JwtTokenVerifier(TokenVerifier):
    def verify(self, token: Optional[str]) -> Claims:
        if not token:
            raise AuthError("Authentication required")

        payload = decode_jwt_token(token)
        if not payload:
            logger.warning("JWT token decode failed - invalid or expired token")
            raise AuthError("Invalid or expired token")

        user_id = payload.get("id")
        if not user_id:
            logger.warning("JWT token missing user ID")
            raise AuthError("Invalid token: missing user ID")

        exp = payload.get("exp")
        return Claims(
            id=str(user_id),
            name=payload.get("name") or "",
            email=payload.get("email") or "",
            role=payload.get("role") or "",
            expires_at=datetime.utcfromtimestamp(exp) if exp else None,
        )
