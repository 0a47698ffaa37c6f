"""Registration, login and the current-user endpoint."""

import logging

from fastapi import APIRouter, Depends, status

from src.domain.user import User
from src.interface.auth import get_current_user, issue_token
from src.interface.schemas import AuthResponse, CredentialsRequest
from src.services import user_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(body: CredentialsRequest) -> AuthResponse:
    """Create an account and log it in."""
    user = await user_service.register_user(name=body.name, password=body.password)
    return AuthResponse(token=issue_token(user.id), user=user)


@router.post("/login")
async def login(body: CredentialsRequest) -> AuthResponse:
    """Exchange a name and password for a bearer token."""
    user = await user_service.authenticate(name=body.name, password=body.password)
    logger.info("User logged in", extra={"user_id": user.id})
    return AuthResponse(token=issue_token(user.id), user=user)


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> User:
    """The authenticated caller."""
    return user
