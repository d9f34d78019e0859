"""FastAPI dependency utilities."""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from homenotify.infrastructure.security import decode_access_token

# Tokens are issued by the platform auth service; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_id(token: str = Depends(oauth2_scheme)) -> str:
    """Return the user id carried in the ``sub`` claim of the bearer token."""

    try:
        payload = decode_access_token(token)
    except ValueError as exc:
        raise _unauthorized() from exc

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise _unauthorized()
    return subject
