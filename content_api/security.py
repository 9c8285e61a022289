"""
Password hashing (bcrypt) and bearer token issuance / validation (PyJWT).
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from content_api.config import settings
from content_api.errors import AuthenticationError


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    email: str


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(hashed: str, password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: int, email: str, expires_in: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    if expires_in is None:
        expires_in = timedelta(hours=settings.JWT_EXPIRATION_HOURS)
    payload = {
        "sub": str(user_id),
        "email": email,
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """Validate signature and expiry; raise ``AuthenticationError`` otherwise."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("invalid or expired token") from exc
    try:
        return TokenClaims(user_id=int(payload["sub"]), email=payload.get("email", ""))
    except ValueError as exc:
        raise AuthenticationError("invalid or expired token") from exc
