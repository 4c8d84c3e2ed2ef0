"""JWT access tokens for the FIVLO API."""

import os
import jwt
from datetime import datetime, timedelta
from typing import Dict, Optional
from dotenv import load_dotenv

load_dotenv()

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production-fivlo-dev-secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRATION_HOURS = int(os.getenv("JWT_EXPIRATION_HOURS", "24"))


def create_access_token(user_id: str, email: Optional[str] = None, now: Optional[datetime] = None) -> str:
    """Issue a signed bearer token whose subject is the user id.

    Args:
        user_id: Encoded as the `sub` claim
        email: Optional informational claim
        now: Issue time (naive UTC); defaults to utcnow

    Returns:
        Encoded JWT string
    """
    issued_at = now or datetime.utcnow()
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=JWT_EXPIRATION_HOURS),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict]:
    """Decoded payload, or None for an expired, tampered or malformed token."""
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None


def get_user_id_from_token(token: str) -> Optional[str]:
    payload = decode_access_token(token)
    if payload:
        return payload.get("sub")
    return None
