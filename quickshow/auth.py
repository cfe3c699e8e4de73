# quickshow/auth.py
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt

from quickshow.core.config import Settings
from quickshow.deps import get_settings


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_session_token(token: str, settings: Settings) -> dict:
    """Verify a session JWT issued by the identity provider and return its claims."""
    if not settings.auth_jwt_key:
        raise _unauthorized("Authentication is not configured")
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_key,
            algorithms=[settings.auth_jwt_algorithm],
            options={"verify_aud": False},
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token")


def get_current_user_id(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    """Return the `sub` claim of the bearer token on the request."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise _unauthorized("Not authenticated")

    claims = decode_session_token(authorization.split(" ", 1)[1].strip(), settings)
    user_id = claims.get("sub")
    if not user_id:
        raise _unauthorized("Invalid credentials")
    return str(user_id)
