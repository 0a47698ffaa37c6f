"""Family service for creating, joining and reading families."""

import logging
import secrets
import string
from typing import Any

from src.core import db_client
from src.core.clock import now_ms
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.errors import NotFoundError, StorageError, ValidationError
from src.core.logging import span
from src.domain.family import Family, FamilyRoster
from src.domain.user import User, UserRole
from src.services import user_service


logger = logging.getLogger(__name__)

_INVITE_ALPHABET = string.ascii_uppercase + string.digits


def generate_invite_code() -> str:
    """Random upper-case alphanumeric invite code."""
    return "".join(secrets.choice(_INVITE_ALPHABET) for _ in range(constants.INVITE_CODE_LENGTH))


def _to_family(record: dict[str, Any]) -> Family:
    return Family.model_validate(record)


async def _insert_family(*, name: str) -> dict[str, Any]:
    """Insert a family, regenerating the invite code when it collides with an existing one."""
    for attempt in range(1, constants.INVITE_CODE_MAX_ATTEMPTS + 1):
        code = generate_invite_code()
        taken = await db_client.get_first_record_by(collection="families", field="invite_code", value=code)
        if taken:
            logger.info("Invite code collision, regenerating", extra={"attempt": attempt})
            continue
        return await db_client.create_record(
            collection="families",
            data={"name": name, "invite_code": code, "created_at": now_ms()},
        )

    msg = "Could not generate a unique invite code"
    raise StorageError(msg)


async def create_family(*, actor: User, name: str) -> tuple[Family, User]:
    """Create a family and make its creator the first ADMIN.

    Returns:
        The new family and the updated creator
    """
    with span("family_service.create_family"):
        name = (name or "").strip()
        if not name:
            msg = "Family name is required"
            raise ValidationError(msg)

        async with db_client.transaction():
            family_record = await _insert_family(name=name)
            user_record = await db_client.update_record(
                collection="users",
                record_id=actor.id,
                data={"family_id": int(family_record["id"]), "role": UserRole.ADMIN},
            )

        logger.info("Created family %s", name, extra={"family_id": family_record["id"], "user_id": actor.id})
        return _to_family(family_record), user_service.to_user(user_record)


async def join_family(*, actor: User, code: str) -> tuple[Family, User]:
    """Join the family with invite `code` (case-insensitive).

    The first joiner of a family with no members becomes ADMIN; everyone else joins as MEMBER.

    Raises:
        ValidationError: If no code is given
        NotFoundError: If no family has that code
    """
    with span("family_service.join_family"):
        code = (code or "").strip().upper()
        if not code:
            msg = "An invite code is required"
            raise ValidationError(msg)

        family_record = await db_client.get_first_record_by(collection="families", field="invite_code", value=code)
        if family_record is None:
            msg = "No family with that code was found"
            raise NotFoundError(msg)

        async with db_client.transaction():
            member_count = await db_client.count_records(
                collection="users",
                filter_query=f'family_id = "{sanitize_param(family_record["id"])}"',
            )
            role = UserRole.ADMIN if member_count == 0 else UserRole.MEMBER
            user_record = await db_client.update_record(
                collection="users",
                record_id=actor.id,
                data={"family_id": int(family_record["id"]), "role": role},
            )

        logger.info(
            "User joined family",
            extra={"family_id": family_record["id"], "user_id": actor.id, "role": str(role)},
        )
        return _to_family(family_record), user_service.to_user(user_record)


async def get_family(*, family_id: str) -> Family:
    """Get family by ID (NotFoundError if missing)."""
    return _to_family(await db_client.get_record(collection="families", record_id=family_id))


async def get_current_family(*, actor: User) -> FamilyRoster | None:
    """The actor's family with its members, or None before onboarding."""
    with span("family_service.get_current_family"):
        if not actor.family_id:
            return None
        try:
            family = await get_family(family_id=actor.family_id)
        except NotFoundError:
            return None
        members = await user_service.list_family_members(family_id=family.id)
        return FamilyRoster(family=family, members=members)
