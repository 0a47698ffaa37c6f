"""Bearer-token issuing and the current-user dependency."""

import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from src.core.config import settings
from src.core.errors import AuthenticationError, NotFoundError
from src.domain.user import User
from src.services import user_service


logger = logging.getLogger(__name__)

serializer = URLSafeTimedSerializer(str(settings.secret_key), salt="auth-token")

bearer_scheme = HTTPBearer(auto_error=False)


def issue_token(user_id: str) -> str:
    """Sign a bearer token for `user_id`."""
    return serializer.dumps({"uid": str(user_id)})


def read_token(token: str) -> str:
    """Return the user id inside a bearer token, or raise AuthenticationError."""
    try:
        payload = serializer.loads(token, max_age=settings.token_max_age_seconds)
    except SignatureExpired as err:
        logger.warning("auth_token_expired")
        msg = "Your session has expired"
        raise AuthenticationError(msg) from err
    except BadSignature as err:
        logger.warning("auth_token_tampered")
        msg = "Invalid authentication token"
        raise AuthenticationError(msg) from err
    return payload["uid"]


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> User:
    """Resolve the caller from the Authorization header, re-read from storage on every request."""
    if credentials is None:
        msg = "Authentication required"
        raise AuthenticationError(msg)

    user_id = read_token(credentials.credentials)
    try:
        return await user_service.get_user_by_id(user_id=user_id)
    except NotFoundError as err:
        msg = "Account no longer exists"
        raise AuthenticationError(msg) from err
