"""JWT authentication and admin authorization dependencies."""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from api.dependencies import get_user_repo
from api.models import CurrentUser
from domain.model.user import ROLE_ADMIN
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_DAYS = 1

security = HTTPBearer(auto_error=False)


def _secret() -> str:
    if not JWT_SECRET_KEY:
        logger.error("JWT_SECRET_KEY is not configured")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication is not configured",
        )
    return JWT_SECRET_KEY


def create_access_token(login: str) -> str:
    """Create JWT access token whose subject is the user's login."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": login,
        "exp": now + timedelta(days=JWT_EXPIRATION_DAYS),
        "iat": now,
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def verify_token(token: str) -> Optional[str]:
    """Verify JWT token and extract the login."""
    try:
        payload = jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
        return payload.get("sub")
    except JWTError as e:
        logger.debug(f"JWT verification failed: {e}")
        return None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user_required(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user_repo: UserRepository = Depends(get_user_repo),
) -> CurrentUser:
    """Resolve the caller from the bearer token. Raises 401 if not authenticated."""
    if not credentials:
        raise _unauthorized("Not authenticated")

    login = verify_token(credentials.credentials)
    if not login:
        raise _unauthorized("Invalid authentication credentials")

    user = user_repo.find_with_authorities_by_login(login)
    if not user or not user.activated:
        raise _unauthorized("User not found")

    return CurrentUser(id=user.id, login=user.login, authorities=sorted(user.authorities))


def require_admin(current_user: CurrentUser = Depends(get_current_user_required)) -> CurrentUser:
    """Allow only callers holding ROLE_ADMIN. Raises 403 otherwise."""
    if ROLE_ADMIN not in current_user.authorities:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return current_user
