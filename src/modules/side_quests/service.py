"""Side quest service: zero-point personal challenges with read-time expiry."""

import logging
from typing import Any

from src.core import db_client
from src.core.clock import now_ms
from src.core.config import constants, settings
from src.core.db_client import sanitize_param
from src.core.errors import AuthorizationError, InvalidStateError, ValidationError
from src.core.logging import span
from src.domain.side_quest import SideQuest, SideQuestProposal, SideQuestStatus, SideQuestView
from src.domain.user import User
from src.modules.tasks.service import validate_title
from src.services import user_service
from src.services.authorization import require_admin, require_family_member, require_same_family


logger = logging.getLogger(__name__)


def effective_status(quest: SideQuest, now: int | None = None) -> SideQuestStatus:
    """Stored status, except a PENDING quest past its expiry reads as EXPIRED."""
    now = now_ms() if now is None else now
    if quest.status == SideQuestStatus.PENDING and now > quest.expires_at:
        return SideQuestStatus.EXPIRED
    return quest.status


def to_view(quest: SideQuest, now: int | None = None) -> SideQuestView:
    """Attach the effective status to a quest for display."""
    return SideQuestView(**quest.model_dump(), effective_status=effective_status(quest, now))


def _validate_duration(duration_hours: Any) -> float:
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, int | float):
        msg = "duration_hours must be a number"
        raise ValidationError(msg)
    if not 0 < duration_hours <= constants.MAX_SIDE_QUEST_HOURS:
        msg = f"duration_hours must be greater than 0 and at most {constants.MAX_SIDE_QUEST_HOURS}"
        raise ValidationError(msg)
    return duration_hours


async def _require_targets_in_family(*, family_id: str, assigned_to: list[str]) -> list[str]:
    targets = list(dict.fromkeys(str(user_id) for user_id in assigned_to or []))
    if not targets:
        msg = "At least one family member must be chosen"
        raise ValidationError(msg)

    member_ids = {member.id for member in await user_service.list_family_members(family_id=family_id)}
    outsiders = [user_id for user_id in targets if user_id not in member_ids]
    if outsiders:
        msg = f"Not members of your family: {', '.join(outsiders)}"
        raise ValidationError(msg)
    return targets


async def _fan_out(
    *,
    family_id: str,
    assigned_to: list[str],
    title: str,
    description: str,
    duration_hours: float,
) -> list[SideQuest]:
    """Insert one PENDING quest per target; callers wrap this in a transaction."""
    created_at = now_ms()
    expires_at = created_at + int(duration_hours * constants.MS_PER_HOUR)

    quests = []
    for user_id in assigned_to:
        record = await db_client.create_record(
            collection="side_quests",
            data={
                "family_id": int(family_id),
                "assigned_to": int(user_id),
                "title": title,
                "description": description or "",
                "status": SideQuestStatus.PENDING,
                "created_at": created_at,
                "expires_at": expires_at,
            },
        )
        quests.append(SideQuest.model_validate(record))
    return quests


async def create_side_quests(
    *,
    actor: User,
    assigned_to: list[str],
    title: str,
    duration_hours: float,
    description: str = "",
) -> list[SideQuest]:
    """Create one independent PENDING side quest per target user.

    Args:
        actor: Admin creating the quests
        assigned_to: Target user IDs; each must belong to the admin's family
        title: Quest title
        duration_hours: Time to respond before the quest expires
        description: Quest description

    Returns:
        The created quests, one per distinct target

    Raises:
        ValidationError: If title, targets or duration are invalid
    """
    with span("side_quest_service.create_side_quests"):
        family_id = require_admin(actor)
        title = validate_title(title)
        duration_hours = _validate_duration(duration_hours)
        targets = await _require_targets_in_family(family_id=family_id, assigned_to=assigned_to)

        async with db_client.transaction():
            quests = await _fan_out(
                family_id=family_id,
                assigned_to=targets,
                title=title,
                description=description,
                duration_hours=duration_hours,
            )

        logger.info("Created side quests: %s", title, extra={"family_id": family_id, "targets": targets})
        return quests


async def get_side_quest(*, actor: User, quest_id: str) -> SideQuest:
    """Get a side quest of the actor's family (NotFoundError otherwise)."""
    family_id = require_family_member(actor)
    record = await db_client.get_record(collection="side_quests", record_id=quest_id)
    return SideQuest.model_validate(require_same_family(record, family_id, collection="side_quests"))


def _require_assignee(actor: User, quest: SideQuest) -> None:
    if quest.assigned_to != actor.id:
        logger.warning("side_quest_not_assignee", extra={"quest_id": quest.id, "user_id": actor.id})
        msg = "Only the assigned member can act on this side quest"
        raise AuthorizationError(msg)


async def _transition(*, quest: SideQuest, expected: SideQuestStatus, target: SideQuestStatus) -> SideQuest:
    """Conditional `expected -> target` update; InvalidStateError if the quest moved on."""
    updated = await db_client.update_record_if(
        collection="side_quests",
        record_id=quest.id,
        data={"status": target},
        filter_query=f'status = "{expected}"',
    )
    if updated is None:
        current = await db_client.get_record(collection="side_quests", record_id=quest.id)
        msg = f"Side quest {quest.id} is {current['status']}, expected {expected}"
        raise InvalidStateError(msg)

    logger.info("Side quest %s: %s -> %s", quest.id, expected, target)
    return SideQuest.model_validate(updated)


async def respond_to_side_quest(*, actor: User, quest_id: str, accepted: bool) -> SideQuest:
    """Accept (PENDING -> ACTIVE) or decline (PENDING -> REJECTED) a side quest."""
    with span("side_quest_service.respond_to_side_quest"):
        quest = await get_side_quest(actor=actor, quest_id=quest_id)
        _require_assignee(actor, quest)

        if settings.reject_expired_side_quest_responses and effective_status(quest) == SideQuestStatus.EXPIRED:
            msg = f"Side quest {quest.id} has expired"
            raise InvalidStateError(msg)

        target = SideQuestStatus.ACTIVE if accepted else SideQuestStatus.REJECTED
        return await _transition(quest=quest, expected=SideQuestStatus.PENDING, target=target)


async def complete_side_quest(*, actor: User, quest_id: str) -> SideQuest:
    """Finish an ACTIVE side quest. Awards no points."""
    with span("side_quest_service.complete_side_quest"):
        quest = await get_side_quest(actor=actor, quest_id=quest_id)
        _require_assignee(actor, quest)
        return await _transition(quest=quest, expected=SideQuestStatus.ACTIVE, target=SideQuestStatus.COMPLETED)


async def delete_side_quest(*, actor: User, quest_id: str) -> None:
    """Admin hard delete, in any state."""
    with span("side_quest_service.delete_side_quest"):
        require_admin(actor)
        quest = await get_side_quest(actor=actor, quest_id=quest_id)

        await db_client.delete_record(collection="side_quests", record_id=quest.id)
        logger.info("Deleted side quest %s", quest.id, extra={"status": str(quest.status)})


async def list_side_quests(*, actor: User) -> list[SideQuestView]:
    """All side quests of the family, newest first, with effective status."""
    with span("side_quest_service.list_side_quests"):
        family_id = require_family_member(actor)
        records = await db_client.list_records(
            collection="side_quests",
            filter_query=f'family_id = "{sanitize_param(family_id)}"',
            sort="-created_at,-id",
        )
        now = now_ms()
        return [to_view(SideQuest.model_validate(record), now) for record in records]


async def list_side_quests_for_user(
    *,
    actor: User,
    user_id: str,
    status: SideQuestStatus | None = None,
    include_expired: bool = False,
) -> list[SideQuestView]:
    """Quests assigned to `user_id`, oldest first.

    Args:
        actor: Family member asking
        user_id: Assignee to filter on
        status: Keep only quests with this effective status
        include_expired: Keep expired PENDING quests (ignored when status is EXPIRED)
    """
    family_id = require_family_member(actor)
    records = await db_client.list_records(
        collection="side_quests",
        filter_query=f'family_id = "{sanitize_param(family_id)}" && assigned_to = "{sanitize_param(user_id)}"',
        sort="+created_at,+id",
    )

    now = now_ms()
    views = [to_view(SideQuest.model_validate(record), now) for record in records]
    if status is not None:
        return [view for view in views if view.effective_status == status]
    if not include_expired:
        views = [view for view in views if view.effective_status != SideQuestStatus.EXPIRED]
    return views


async def next_pending_side_quest(*, actor: User) -> SideQuestView | None:
    """The one quest to surface to the actor: their oldest unexpired PENDING quest."""
    pending = await list_side_quests_for_user(actor=actor, user_id=actor.id, status=SideQuestStatus.PENDING)
    return pending[0] if pending else None


async def submit_side_quest_proposal(
    *,
    actor: User,
    title: str,
    description: str = "",
    suggested_for: str | None = None,
) -> SideQuestProposal:
    """Suggest a side quest, optionally for a specific member (any family member)."""
    with span("side_quest_service.submit_side_quest_proposal"):
        family_id = require_family_member(actor)
        if suggested_for:
            await _require_targets_in_family(family_id=family_id, assigned_to=[suggested_for])

        record = await db_client.create_record(
            collection="side_quest_proposals",
            data={
                "family_id": int(family_id),
                "title": validate_title(title),
                "description": description or "",
                "suggested_for": int(suggested_for) if suggested_for else None,
                "proposed_by": int(actor.id),
                "created_at": now_ms(),
            },
        )
        logger.info("Side quest proposal submitted", extra={"proposal_id": record["id"], "user_id": actor.id})
        return SideQuestProposal.model_validate(record)


async def list_side_quest_proposals(*, actor: User) -> list[SideQuestProposal]:
    """Pending side quest proposals of the family, oldest first."""
    family_id = require_family_member(actor)
    records = await db_client.list_records(
        collection="side_quest_proposals",
        filter_query=f'family_id = "{sanitize_param(family_id)}"',
        sort="+created_at,+id",
    )
    return [SideQuestProposal.model_validate(record) for record in records]


async def _get_side_quest_proposal(*, family_id: str, proposal_id: str) -> SideQuestProposal:
    record = await db_client.get_record(collection="side_quest_proposals", record_id=proposal_id)
    return SideQuestProposal.model_validate(
        require_same_family(record, family_id, collection="side_quest_proposals")
    )


async def approve_side_quest_proposal(
    *,
    actor: User,
    proposal_id: str,
    duration_hours: float,
    assigned_to: list[str] | None = None,
) -> list[SideQuest]:
    """Fan a proposal out into side quests and remove it, all-or-nothing.

    Targets default to the proposal's suggested member.
    """
    with span("side_quest_service.approve_side_quest_proposal"):
        family_id = require_admin(actor)
        proposal = await _get_side_quest_proposal(family_id=family_id, proposal_id=proposal_id)

        if not assigned_to:
            assigned_to = [proposal.suggested_for] if proposal.suggested_for else []
        duration_hours = _validate_duration(duration_hours)
        targets = await _require_targets_in_family(family_id=family_id, assigned_to=assigned_to)

        async with db_client.transaction():
            quests = await _fan_out(
                family_id=family_id,
                assigned_to=targets,
                title=proposal.title,
                description=proposal.description,
                duration_hours=duration_hours,
            )
            await db_client.delete_record(collection="side_quest_proposals", record_id=proposal.id)

        logger.info("Side quest proposal approved", extra={"proposal_id": proposal.id, "targets": targets})
        return quests


async def reject_side_quest_proposal(*, actor: User, proposal_id: str) -> None:
    """Discard a side quest proposal."""
    with span("side_quest_service.reject_side_quest_proposal"):
        family_id = require_admin(actor)
        proposal = await _get_side_quest_proposal(family_id=family_id, proposal_id=proposal_id)

        await db_client.delete_record(collection="side_quest_proposals", record_id=proposal.id)
        logger.info("Side quest proposal rejected", extra={"proposal_id": proposal.id})
