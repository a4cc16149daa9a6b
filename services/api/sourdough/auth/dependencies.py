# sourdough/auth/dependencies.py — get_current_user → CurrentUser

import logging

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sourdough.auth.models import CurrentUser
from sourdough.auth.tokens import JWTDecodeError, decode_access_token

logger = logging.getLogger("sourdough.auth")

security = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CurrentUser:
    """Resolve the caller from a bearer JWT.

    Missing token -> 401, invalid or expired token -> 403.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token is required.",
        )

    try:
        payload = decode_access_token(credentials.credentials, request.app.state.settings)
    except JWTDecodeError as exc:
        logger.info("Token verification failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Token is invalid or expired.",
        )

    return CurrentUser(user_id=payload.userId, username=payload.username)
