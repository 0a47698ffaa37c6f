"""Side quest and side quest proposal endpoints."""

from fastapi import APIRouter, Depends, Query, Response, status

from src.domain.side_quest import SideQuest, SideQuestProposal, SideQuestStatus, SideQuestView
from src.domain.user import User
from src.interface.auth import get_current_user
from src.interface.schemas import (
    ApproveSideQuestProposalRequest,
    CreateSideQuestsRequest,
    RespondSideQuestRequest,
    SubmitSideQuestProposalRequest,
)
from src.modules.side_quests import service as side_quest_service


router = APIRouter(prefix="/api", tags=["side-quests"])


@router.get("/side-quests")
async def list_side_quests(user: User = Depends(get_current_user)) -> list[SideQuestView]:
    """All side quests of the family with their effective status."""
    return await side_quest_service.list_side_quests(actor=user)


@router.get("/side-quests/mine")
async def list_my_side_quests(
    status_filter: SideQuestStatus | None = Query(default=None, alias="status"),
    include_expired: bool = Query(default=False, alias="includeExpired"),
    user: User = Depends(get_current_user),
) -> list[SideQuestView]:
    """The caller's side quests, oldest first."""
    return await side_quest_service.list_side_quests_for_user(
        actor=user,
        user_id=user.id,
        status=status_filter,
        include_expired=include_expired,
    )


@router.get("/side-quests/next")
async def next_pending_side_quest(user: User = Depends(get_current_user)) -> SideQuestView | None:
    """The one pending quest to pop up for the caller, if any."""
    return await side_quest_service.next_pending_side_quest(actor=user)


@router.post("/side-quests", status_code=status.HTTP_201_CREATED)
async def create_side_quests(body: CreateSideQuestsRequest, user: User = Depends(get_current_user)) -> list[SideQuest]:
    """Create side quests, one per target member (admin)."""
    return await side_quest_service.create_side_quests(actor=user, **body.model_dump())


@router.post("/side-quests/{quest_id}/respond")
async def respond_to_side_quest(
    quest_id: str,
    body: RespondSideQuestRequest,
    user: User = Depends(get_current_user),
) -> SideQuest:
    """Accept or decline a side quest (assignee)."""
    return await side_quest_service.respond_to_side_quest(actor=user, quest_id=quest_id, accepted=body.accepted)


@router.post("/side-quests/{quest_id}/complete")
async def complete_side_quest(quest_id: str, user: User = Depends(get_current_user)) -> SideQuest:
    """Finish an accepted side quest (assignee)."""
    return await side_quest_service.complete_side_quest(actor=user, quest_id=quest_id)


@router.delete("/side-quests/{quest_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_side_quest(quest_id: str, user: User = Depends(get_current_user)) -> Response:
    """Delete a side quest (admin)."""
    await side_quest_service.delete_side_quest(actor=user, quest_id=quest_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/sq-proposals")
async def list_side_quest_proposals(user: User = Depends(get_current_user)) -> list[SideQuestProposal]:
    """Pending side quest proposals."""
    return await side_quest_service.list_side_quest_proposals(actor=user)


@router.post("/sq-proposals", status_code=status.HTTP_201_CREATED)
async def submit_side_quest_proposal(
    body: SubmitSideQuestProposalRequest,
    user: User = Depends(get_current_user),
) -> SideQuestProposal:
    """Suggest a side quest."""
    return await side_quest_service.submit_side_quest_proposal(actor=user, **body.model_dump())


@router.post("/sq-proposals/{proposal_id}/approve", status_code=status.HTTP_201_CREATED)
async def approve_side_quest_proposal(
    proposal_id: str,
    body: ApproveSideQuestProposalRequest,
    user: User = Depends(get_current_user),
) -> list[SideQuest]:
    """Approve a side quest proposal (admin)."""
    return await side_quest_service.approve_side_quest_proposal(
        actor=user,
        proposal_id=proposal_id,
        duration_hours=body.duration_hours,
        assigned_to=body.assigned_to,
    )


@router.delete("/sq-proposals/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reject_side_quest_proposal(proposal_id: str, user: User = Depends(get_current_user)) -> Response:
    """Reject a side quest proposal (admin)."""
    await side_quest_service.reject_side_quest_proposal(actor=user, proposal_id=proposal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
