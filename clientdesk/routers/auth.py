"""
Email/password authentication
"""

import logging

from fastapi import APIRouter, Depends

from ..auth.jwt import get_current_user, token_for
from ..config import ServiceConfig
from ..dependencies import get_config, get_repos
from ..errors import UnauthorizedError, ValidationError
from ..models import User
from ..repositories import Repositories
from ..schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/register", status_code=201)
def register(
    body: RegisterRequest,
    repos: Repositories = Depends(get_repos),
    config: ServiceConfig = Depends(get_config),
):
    """Create a user and return a token for it"""
    if len(body.password) < config.auth.min_password_length:
        raise ValidationError(
            f"Password must be at least {config.auth.min_password_length} characters"
        )
    user = repos.users.create(body.name, body.email, body.password)
    logger.info(f"Registered user {user.email}")
    return {
        "message": "User registered successfully",
        "token": token_for(user, config.auth),
        "user": user.public(),
    }


@router.post("/login")
def login(
    body: LoginRequest,
    repos: Repositories = Depends(get_repos),
    config: ServiceConfig = Depends(get_config),
):
    user = repos.users.authenticate(body.email, body.password)
    if user is None:
        logger.warning(f"Failed login for {body.email}")
        raise UnauthorizedError("Invalid credentials")
    repos.users.update_last_login(user.id)
    return {
        "message": "Login successful",
        "token": token_for(user, config.auth),
        "user": user.public(),
    }


@router.get("/me")
def me(current_user: User = Depends(get_current_user)):
    return {"user": current_user.public()}
