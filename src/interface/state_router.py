"""Scoreboard and the read-model snapshot the client polls."""

import logging

from fastapi import APIRouter, Depends

from src.core.clock import now_ms
from src.core.logging import span
from src.domain.monster import LockStatus
from src.domain.task import TaskStatus
from src.domain.user import User
from src.interface.auth import get_current_user
from src.interface.schemas import StateSnapshot, TaskWithLock
from src.modules.proposals import service as proposal_service
from src.modules.side_quests import service as side_quest_service
from src.modules.tasks import service as task_service
from src.modules.tasks.progression import MONSTERS, lock_status
from src.services import family_service, scoreboard_service
from src.services.scoreboard_service import ScoreboardEntry


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["state"])


@router.get("/scoreboard")
async def get_scoreboard(user: User = Depends(get_current_user)) -> list[ScoreboardEntry]:
    """Ranked family members with their next gate."""
    return await scoreboard_service.get_family_scoreboard(actor=user)


@router.get("/state")
async def get_state(user: User = Depends(get_current_user)) -> StateSnapshot:
    """Everything the client needs to render, in one call.

    A caller without a family gets only their own user record.
    """
    with span("state_router.get_state"):
        roster = await family_service.get_current_family(actor=user)
        if roster is None:
            return StateSnapshot(user=user, monsters=list(MONSTERS), server_time=now_ms())

        tasks = await task_service.list_tasks(actor=user)
        now = now_ms()
        snapshot = StateSnapshot(
            user=user,
            family=roster.family,
            scoreboard=scoreboard_service.build_scoreboard(roster.members),
            tasks=[
                TaskWithLock(
                    **task.model_dump(),
                    lock=lock_status(task, user) if task.status == TaskStatus.OPEN else LockStatus(locked=False),
                    booking_expired=task_service.is_booking_expired(task, now),
                    overdue=task_service.is_overdue(task, now),
                )
                for task in tasks
            ],
            proposals=await proposal_service.list_proposals(actor=user),
            side_quests=await side_quest_service.list_side_quests(actor=user),
            side_quest_proposals=await side_quest_service.list_side_quest_proposals(actor=user),
            pending_side_quest=await side_quest_service.next_pending_side_quest(actor=user),
            monsters=list(MONSTERS),
            server_time=now,
        )
        logger.debug("Built state snapshot", extra={"user_id": user.id, "tasks": len(tasks)})
        return snapshot
