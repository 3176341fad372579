import jwt
import uuid
from datetime import datetime, timedelta
from typing import Optional
from .config import settings


# =========================
# JWT Token Handling
# =========================
def create_access_token(user_id: str, name: str, email: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token carrying the four identity claims (30 days by default)"""
    expire = datetime.utcnow() + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {
        "id": user_id,
        "name": name,
        "email": email,
        "role": role,
        "exp": expire,
    }

    # Ensure SECRET_KEY is properly set
    if not settings.secret_key_configured:
        raise ValueError("SECRET_KEY not properly configured")

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token"""
    try:
        # Ensure SECRET_KEY is properly set
        if not settings.secret_key_configured:
            return None

        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def generate_id() -> str:
    """Generate a unique record ID"""
    return str(uuid.uuid4())
