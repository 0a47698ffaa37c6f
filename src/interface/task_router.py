"""Task and task proposal endpoints."""

from fastapi import APIRouter, Depends, Query, Response, status

from src.domain.proposal import TaskProposal
from src.domain.task import Task, TaskStatus
from src.domain.user import User
from src.interface.auth import get_current_user
from src.interface.schemas import (
    ApproveProposalRequest,
    CompleteTaskRequest,
    CreateTaskRequest,
    DescribeTaskRequest,
    DescriptionResponse,
    EditTaskRequest,
    SubmitProposalRequest,
)
from src.modules.proposals import service as proposal_service
from src.modules.tasks import service as task_service
from src.services import description_service


router = APIRouter(prefix="/api", tags=["tasks"])


@router.get("/tasks")
async def list_tasks(
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    user: User = Depends(get_current_user),
) -> list[Task]:
    """Tasks of the caller's family, newest first."""
    return await task_service.list_tasks(actor=user, status=status_filter)


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(body: CreateTaskRequest, user: User = Depends(get_current_user)) -> Task:
    """Create a task (admin)."""
    return await task_service.create_task(actor=user, **body.model_dump())


@router.post("/tasks/describe")
async def describe_task(body: DescribeTaskRequest, _user: User = Depends(get_current_user)) -> DescriptionResponse:
    """Generate a quest description for a title."""
    return DescriptionResponse(description=await description_service.generate_task_description(title=body.title))


@router.patch("/tasks/{task_id}")
async def edit_task(task_id: str, body: EditTaskRequest, user: User = Depends(get_current_user)) -> Task:
    """Edit a task's descriptive fields (admin)."""
    return await task_service.edit_task(actor=user, task_id=task_id, fields=body.changes())


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, user: User = Depends(get_current_user)) -> Response:
    """Delete a task (admin)."""
    await task_service.delete_task(actor=user, task_id=task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/tasks/{task_id}/claim")
async def claim_task(task_id: str, user: User = Depends(get_current_user)) -> Task:
    """Claim an open task."""
    return await task_service.claim_task(actor=user, task_id=task_id)


@router.post("/tasks/{task_id}/complete")
async def complete_task(
    task_id: str,
    body: CompleteTaskRequest | None = None,
    user: User = Depends(get_current_user),
) -> Task:
    """Complete an assigned task and collect its points."""
    body = body or CompleteTaskRequest()
    return await task_service.complete_task(
        actor=user,
        task_id=task_id,
        completion_image=body.completion_image,
        image_match_score=body.image_match_score,
    )


@router.post("/tasks/{task_id}/verify")
async def verify_task(task_id: str, user: User = Depends(get_current_user)) -> Task:
    """Confirm an assigned task (admin)."""
    return await task_service.verify_task(actor=user, task_id=task_id)


@router.get("/proposals")
async def list_proposals(user: User = Depends(get_current_user)) -> list[TaskProposal]:
    """Pending task proposals."""
    return await proposal_service.list_proposals(actor=user)


@router.post("/proposals", status_code=status.HTTP_201_CREATED)
async def submit_proposal(body: SubmitProposalRequest, user: User = Depends(get_current_user)) -> TaskProposal:
    """Suggest a task."""
    return await proposal_service.submit_proposal(
        actor=user,
        title=body.title,
        suggested_points=body.suggested_points,
        description=body.description,
    )


@router.post("/proposals/{proposal_id}/approve", status_code=status.HTTP_201_CREATED)
async def approve_proposal(
    proposal_id: str,
    body: ApproveProposalRequest | None = None,
    user: User = Depends(get_current_user),
) -> Task:
    """Approve a proposal into a task (admin)."""
    body = body or ApproveProposalRequest()
    return await proposal_service.approve_proposal(actor=user, proposal_id=proposal_id, **body.model_dump())


@router.delete("/proposals/{proposal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def reject_proposal(proposal_id: str, user: User = Depends(get_current_user)) -> Response:
    """Reject a proposal (admin)."""
    await proposal_service.reject_proposal(actor=user, proposal_id=proposal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
