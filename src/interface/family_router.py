"""Family membership and member management endpoints."""

from fastapi import APIRouter, Depends, status

from src.domain.user import User
from src.interface.auth import get_current_user
from src.interface.schemas import CreateFamilyRequest, FamilyResponse, JoinFamilyRequest, UpdateRoleRequest
from src.services import family_service, user_service


router = APIRouter(prefix="/api/families", tags=["families"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_family(body: CreateFamilyRequest, user: User = Depends(get_current_user)) -> FamilyResponse:
    """Create a family; the caller becomes its admin."""
    family, updated = await family_service.create_family(actor=user, name=body.name)
    return FamilyResponse(family=family, members=[updated], user=updated)


@router.post("/join")
async def join_family(body: JoinFamilyRequest, user: User = Depends(get_current_user)) -> FamilyResponse:
    """Join a family by invite code."""
    family, updated = await family_service.join_family(actor=user, code=body.code)
    members = await user_service.list_family_members(family_id=family.id)
    return FamilyResponse(family=family, members=members, user=updated)


@router.get("/current")
async def get_current_family(user: User = Depends(get_current_user)) -> FamilyResponse | None:
    """The caller's family and its members, or null before onboarding."""
    roster = await family_service.get_current_family(actor=user)
    if roster is None:
        return None
    return FamilyResponse(family=roster.family, members=roster.members)


@router.patch("/members/{user_id}/role")
async def update_member_role(user_id: str, body: UpdateRoleRequest, user: User = Depends(get_current_user)) -> User:
    """Promote or demote a family member (admin)."""
    return await user_service.update_user_role(actor=user, target_user_id=user_id, role=body.role)


@router.post("/members/{user_id}/reset-score")
async def reset_member_score(user_id: str, user: User = Depends(get_current_user)) -> User:
    """Reset a member's score and level (admin)."""
    return await user_service.reset_member_score(actor=user, target_user_id=user_id)
