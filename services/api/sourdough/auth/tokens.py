# sourdough/auth/tokens.py — JWT helpers

from datetime import datetime, timedelta, timezone

import jwt
from pydantic import ValidationError

from sourdough.auth.models import AccessTokenPayload
from sourdough.settings import Settings


class JWTDecodeError(Exception):
    """Raised when a JWT cannot be decoded/validated."""


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def create_access_token(
    settings: Settings,
    *,
    user_id: int,
    username: str,
    expires_in_minutes: int | None = None,
) -> str:
    """Create an access token in the shape the bake routes expect."""
    now = _now_utc()
    minutes = settings.jwt_expires_minutes if expires_in_minutes is None else expires_in_minutes
    payload = {
        "sub": str(user_id),
        "userId": user_id,
        "username": username,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> AccessTokenPayload:
    """
    Decode and validate an access token.
    Raises JWTDecodeError for bad signatures, expiry and missing claims.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError as exc:
        raise JWTDecodeError(str(exc)) from exc

    try:
        return AccessTokenPayload(**payload)
    except ValidationError as exc:
        raise JWTDecodeError(f"Invalid JWT claims: {exc.error_count()} error(s)") from exc
