"""User service for registration, roles and score bookkeeping."""

import hashlib
import logging
import secrets
from typing import Any

from src.core import db_client
from src.core.clock import now_ms
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.errors import AuthenticationError, AuthorizationError, NotFoundError, StorageError, ValidationError
from src.core.logging import span
from src.domain.user import User, UserRole, validate_display_name
from src.modules.tasks.points import level_for
from src.services.authorization import require_admin


logger = logging.getLogger(__name__)


def _hash_password(password: str, *, salt: str | None = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac(
        "sha256", password.encode("utf-8"), salt.encode("utf-8"), constants.PASSWORD_HASH_ITERATIONS
    )
    return f"pbkdf2_sha256${constants.PASSWORD_HASH_ITERATIONS}${salt}${digest.hex()}"


def _verify_password(password: str, stored_hash: str) -> bool:
    try:
        _, iterations, salt, expected = stored_hash.split("$")
    except ValueError:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), int(iterations))
    return secrets.compare_digest(digest.hex(), expected)


def to_user(record: dict[str, Any]) -> User:
    """Build a User from a users row, dropping the credential."""
    return User.model_validate({k: v for k, v in record.items() if k not in {"password_hash", "name_key"}})


async def register_user(*, name: str, password: str) -> User:
    """Register a new account.

    Args:
        name: Display name, unique case-insensitively
        password: Plain-text password (only its salted hash is stored)

    Returns:
        The new user (MEMBER, score 0, level 1, no family)

    Raises:
        ValidationError: If the name is unusable, taken, or the password too short
    """
    with span("user_service.register_user"):
        try:
            clean_name = validate_display_name(name or "")
        except ValueError as e:
            raise ValidationError(str(e)) from e

        if not password or len(password) < constants.MIN_PASSWORD_LENGTH:
            msg = f"Password must be at least {constants.MIN_PASSWORD_LENGTH} characters"
            raise ValidationError(msg)

        name_key = clean_name.casefold()
        existing = await db_client.get_first_record_by(collection="users", field="name_key", value=name_key)
        if existing:
            msg = "That name is already taken"
            raise ValidationError(msg)

        created_at = now_ms()
        try:
            record = await db_client.create_record(
                collection="users",
                data={
                    "name": clean_name,
                    "name_key": name_key,
                    "password_hash": _hash_password(password),
                    "role": UserRole.MEMBER,
                    "score": 0,
                    "level": 1,
                    "avatar": constants.DEFAULT_AVATAR_URL.format(seed=created_at),
                    "created_at": created_at,
                },
            )
        except StorageError as e:
            # Lost a race on the unique name_key index
            if "UNIQUE" in str(e):
                msg = "That name is already taken"
                raise ValidationError(msg) from e
            raise

        logger.info("Registered user %s", clean_name, extra={"user_id": record["id"]})
        return to_user(record)


async def authenticate(*, name: str, password: str) -> User:
    """Return the user whose name and password match, or raise AuthenticationError."""
    with span("user_service.authenticate"):
        record = await db_client.get_first_record_by(
            collection="users", field="name_key", value=(name or "").strip().casefold()
        )
        if record is None or not _verify_password(password or "", record["password_hash"]):
            logger.warning("login_failed", extra={"user_name": name})
            msg = "Wrong user name or password"
            raise AuthenticationError(msg)
        return to_user(record)


async def get_user_by_id(*, user_id: str) -> User:
    """Get user by ID.

    Raises:
        NotFoundError: If user not found
    """
    return to_user(await db_client.get_record(collection="users", record_id=user_id))


async def list_family_members(*, family_id: str) -> list[User]:
    """All users of a family, in account creation order."""
    records = await db_client.list_records(
        collection="users",
        filter_query=f'family_id = "{sanitize_param(family_id)}"',
        sort="+created_at,+id",
    )
    return [to_user(record) for record in records]


async def credit_points(*, user_id: str, points: int) -> User:
    """Add points to a user's score and recompute their level.

    Call inside the same transaction as the status transition that earns the points.
    """
    with span("user_service.credit_points"):
        record = await db_client.increment_field(collection="users", record_id=user_id, field="score", amount=points)
        level = level_for(record["score"])
        if level != record["level"]:
            record = await db_client.update_record(collection="users", record_id=user_id, data={"level": level})

        logger.info(
            "Credited points",
            extra={"user_id": user_id, "points": points, "score": record["score"], "level": record["level"]},
        )
        return to_user(record)


async def _get_family_member(*, family_id: str, user_id: str) -> User:
    try:
        target = await get_user_by_id(user_id=user_id)
    except NotFoundError:
        target = None
    if target is None or target.family_id != family_id:
        msg = "That user does not belong to your family"
        raise AuthorizationError(msg)
    return target


async def update_user_role(*, actor: User, target_user_id: str, role: UserRole) -> User:
    """Change a family member's role (admin-only, same family)."""
    with span("user_service.update_user_role"):
        family_id = require_admin(actor)
        await _get_family_member(family_id=family_id, user_id=target_user_id)

        record = await db_client.update_record(collection="users", record_id=target_user_id, data={"role": role})
        logger.info("Updated role of user %s to %s by admin %s", target_user_id, role, actor.id)
        return to_user(record)


async def reset_member_score(*, actor: User, target_user_id: str) -> User:
    """Reset a family member's score to zero and level to one (admin-only)."""
    with span("user_service.reset_member_score"):
        family_id = require_admin(actor)
        await _get_family_member(family_id=family_id, user_id=target_user_id)

        record = await db_client.update_record(
            collection="users",
            record_id=target_user_id,
            data={"score": 0, "level": level_for(0)},
        )
        logger.info("Reset score of user %s by admin %s", target_user_id, actor.id)
        return to_user(record)
