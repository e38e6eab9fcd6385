"""
JWT Token Authentication
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ..config import AuthConfig
from ..errors import UnauthorizedError
from ..models import User

security = HTTPBearer(auto_error=False)


def create_access_token(
    data: dict, config: AuthConfig, expires_delta: Optional[timedelta] = None
) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=config.access_token_expire_minutes)
    # Token expiry is checked by jose against wall-clock time
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, config.jwt_secret, algorithm=config.algorithm)


def token_for(user: User, config: AuthConfig) -> str:
    return create_access_token({"sub": user.id, "email": user.email}, config)


def decode_token(token: str, config: AuthConfig) -> dict:
    """Verify and decode a JWT token"""
    try:
        payload = jwt.decode(token, config.jwt_secret, algorithms=[config.algorithm])
    except JWTError:
        raise UnauthorizedError("Token is not valid")
    if not payload.get("sub"):
        raise UnauthorizedError("Token is not valid")
    return payload


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """Get the current authenticated user from the bearer token"""
    if credentials is None:
        raise UnauthorizedError("No token, authorization denied")

    payload = decode_token(credentials.credentials, request.app.state.config.auth)
    user = request.app.state.repos.users.get(payload["sub"])
    if user is None or not user.is_active:
        raise UnauthorizedError("Token is not valid")
    return user
