"""
Bearer token security for the fulfillment API.

Tokens are issued by the external auth service; this module only decodes them,
resolves the subject to an active User and gates routes by role.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.enums import Role
from app.dependencies import get_db
from app.models.user import User

bearer_scheme = HTTPBearer(auto_error=False)


class InvalidTokenError(Exception):
    """Raised when a token cannot be decoded or carries no subject."""
    pass


def create_access_token(user_id: str, role: Role, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a token. Used by tests and local tooling; production tokens come from the auth service."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": user_id,
        "role": Role(role).value,
        "exp": expire,
        "iat": now,
        "token_type": "access",
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e
    if not payload.get("sub"):
        raise InvalidTokenError("Token has no subject")
    return payload


async def resolve_user(token: str, db: AsyncSession) -> Optional[User]:
    """Return the active user behind a token, or None when the token or user is not usable."""
    try:
        payload = decode_token(token)
    except InvalidTokenError:
        return None
    user = await db.get(User, payload["sub"])
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await resolve_user(credentials.credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_roles(*roles: Role):
    """
    Dependency factory restricting a route to the given roles.
    Usage: user: User = Depends(require_roles(Role.ADMIN, Role.MANAGER))
    """
    allowed = {Role(r) for r in roles}

    async def _check(user: User = Depends(get_current_user)) -> User:
        if Role(user.role) not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role for this operation",
            )
        return user

    return _check
