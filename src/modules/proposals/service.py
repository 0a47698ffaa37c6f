"""Proposal service: members suggest tasks, admins approve or reject them."""

import logging
from typing import Any

from src.core import db_client
from src.core.clock import now_ms
from src.core.config import constants
from src.core.db_client import sanitize_param
from src.core.logging import span
from src.domain.proposal import TaskProposal
from src.domain.task import Task
from src.domain.user import User
from src.modules.tasks import service as task_service
from src.services.authorization import require_admin, require_family_member, require_same_family


logger = logging.getLogger(__name__)


async def submit_proposal(
    *,
    actor: User,
    title: str,
    suggested_points: int,
    description: str = "",
) -> TaskProposal:
    """Submit a task idea for admin review (any family member)."""
    with span("proposal_service.submit_proposal"):
        family_id = require_family_member(actor)

        record = await db_client.create_record(
            collection="task_proposals",
            data={
                "family_id": int(family_id),
                "title": task_service.validate_title(title),
                "description": description or "",
                "suggested_points": task_service.validate_points(suggested_points, field="suggested_points"),
                "proposed_by": int(actor.id),
                "created_at": now_ms(),
            },
        )
        logger.info("Proposal submitted: %s", record["title"], extra={"user_id": actor.id, "family_id": family_id})
        return TaskProposal.model_validate(record)


async def list_proposals(*, actor: User) -> list[TaskProposal]:
    """Pending proposals of the actor's family, oldest first."""
    family_id = require_family_member(actor)
    records = await db_client.list_records(
        collection="task_proposals",
        filter_query=f'family_id = "{sanitize_param(family_id)}"',
        sort="+created_at,+id",
    )
    return [TaskProposal.model_validate(record) for record in records]


async def _get_proposal(*, family_id: str, proposal_id: str) -> TaskProposal:
    record = await db_client.get_record(collection="task_proposals", record_id=proposal_id)
    return TaskProposal.model_validate(require_same_family(record, family_id, collection="task_proposals"))


async def approve_proposal(
    *,
    actor: User,
    proposal_id: str,
    final_points: int | None = None,
    user_points_override: dict[str, int] | None = None,
    booking_deadline: int | None = None,
    completion_deadline: int | None = None,
    is_boss_task: bool = False,
) -> Task:
    """Turn a proposal into an OPEN task and remove the proposal, all-or-nothing.

    Args:
        actor: Reviewing admin
        proposal_id: Proposal to approve
        final_points: Task points (defaults to the suggested points)
        user_points_override: Per-user overrides for the new task
        booking_deadline: Defaults to now + 24h
        completion_deadline: Defaults to now + 48h
        is_boss_task: Boss flag for the new task

    Returns:
        The created task
    """
    with span("proposal_service.approve_proposal"):
        family_id = require_admin(actor)
        proposal = await _get_proposal(family_id=family_id, proposal_id=proposal_id)

        now = now_ms()
        task_fields: dict[str, Any] = {
            "title": proposal.title,
            "description": proposal.description,
            "base_points": proposal.suggested_points if final_points is None else final_points,
            "user_points_override": user_points_override,
            "booking_deadline": (
                now + constants.PROPOSAL_BOOKING_WINDOW_MS if booking_deadline is None else booking_deadline
            ),
            "completion_deadline": (
                now + constants.PROPOSAL_COMPLETION_WINDOW_MS if completion_deadline is None else completion_deadline
            ),
            "is_boss_task": is_boss_task,
        }

        async with db_client.transaction():
            task = await task_service.create_task(actor=actor, **task_fields)
            await db_client.delete_record(collection="task_proposals", record_id=proposal.id)

        logger.info(
            "Proposal approved",
            extra={"proposal_id": proposal.id, "task_id": task.id, "points": task.base_points},
        )
        return task


async def reject_proposal(*, actor: User, proposal_id: str) -> None:
    """Discard a proposal without creating anything."""
    with span("proposal_service.reject_proposal"):
        family_id = require_admin(actor)
        proposal = await _get_proposal(family_id=family_id, proposal_id=proposal_id)

        await db_client.delete_record(collection="task_proposals", record_id=proposal.id)
        logger.info("Proposal rejected", extra={"proposal_id": proposal.id, "user_id": actor.id})
