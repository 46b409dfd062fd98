"""
Bearer-token authentication.

Tokens are HS256 JWTs carrying ``sub`` (principal id) and ``role``.  The
lifecycle only ever sees the resulting :class:`Principal`; there is no
fallback identity when the header is missing.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from rideshare.config import settings
from rideshare.domain.entities import Principal
from rideshare.domain.enums import Role

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(
    subject: str, role: Role, expires_delta: Optional[timedelta] = None
) -> str:
    """Sign a token for *subject* with the configured secret."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims = {"sub": subject, "role": role.value, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Principal:
    if credentials is None:
        raise _unauthorized("Authentication required. No token provided.")
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise _unauthorized("Invalid or expired token.")

    subject = payload.get("sub")
    try:
        role = Role(payload.get("role"))
    except ValueError:
        raise _unauthorized("Invalid token payload.")
    if not subject:
        raise _unauthorized("Invalid token payload.")
    return Principal(id=subject, role=role)


def require_role(*roles: Role):
    """Dependency factory restricting an endpoint to *roles*."""

    async def _check(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. You do not have permission to access this resource.",
            )
        return principal

    return _check
