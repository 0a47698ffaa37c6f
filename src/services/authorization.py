"""Capability checks applied uniformly before every lifecycle operation."""

import logging

from src.core.errors import AuthorizationError, NotFoundError
from src.core.logging import log_with_user_context
from src.domain.user import User, UserRole


logger = logging.getLogger(__name__)


def require_family_member(actor: User) -> str:
    """Return the actor's family id, or raise AuthorizationError if they have none."""
    if not actor.family_id:
        log_with_user_context(logger, "warning", "authorization_denied_no_family", user_id=actor.id)
        msg = "You must belong to a family"
        raise AuthorizationError(msg)
    return actor.family_id


def require_role(actor: User, role: UserRole) -> str:
    """Require family membership and `role`; return the actor's family id."""
    family_id = require_family_member(actor)
    if actor.role != role:
        log_with_user_context(
            logger,
            "warning",
            "authorization_denied_role",
            user_id=actor.id,
            required_role=str(role),
            actual_role=str(actor.role),
        )
        msg = f"Only {role.lower()}s can do this"
        raise AuthorizationError(msg)
    return family_id


def require_admin(actor: User) -> str:
    """Shorthand for require_role(actor, UserRole.ADMIN)."""
    return require_role(actor, UserRole.ADMIN)


def require_same_family(record: dict, family_id: str, *, collection: str) -> dict:
    """Hide records of other families behind a NotFoundError."""
    if str(record.get("family_id")) != str(family_id):
        msg = f"Record not found in {collection}: {record.get('id')}"
        raise NotFoundError(msg)
    return record
