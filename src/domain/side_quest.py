"""Side quest domain models and enums."""

from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from src.domain.base import DomainModel


class SideQuestStatus(StrEnum):
    """Side quest lifecycle state.

    EXPIRED is never stored; it is derived when a PENDING quest is read after expires_at.
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class SideQuest(DomainModel):
    """Personal zero-point challenge assigned to one user."""

    id: str = Field(..., description="Unique side quest ID")
    family_id: str = Field(..., description="Owning family ID")
    assigned_to: str = Field(..., description="User the quest is assigned to")
    title: str = Field(..., description="Quest title")
    description: str = Field(default="", description="Quest description")
    status: SideQuestStatus = Field(default=SideQuestStatus.PENDING, description="Stored lifecycle state")
    created_at: int = Field(..., description="Creation time (epoch ms)")
    expires_at: int = Field(..., description="Expiry time for an unanswered quest (epoch ms)")

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        """Treat NULL descriptions as empty."""
        return v or ""


class SideQuestView(SideQuest):
    """Side quest as shown to clients, with its status evaluated at read time."""

    effective_status: SideQuestStatus = Field(..., description="Status with expiry applied")


class SideQuestProposal(DomainModel):
    """A member-submitted side quest idea awaiting admin review."""

    id: str = Field(..., description="Unique proposal ID")
    family_id: str = Field(..., description="Owning family ID")
    title: str = Field(..., description="Proposed quest title")
    description: str = Field(default="", description="Proposed quest description")
    suggested_for: str | None = Field(default=None, description="Member the quest is suggested for")
    proposed_by: str = Field(..., description="Member who submitted the proposal")
    created_at: int = Field(..., description="Submission time (epoch ms)")

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        """Treat NULL descriptions as empty."""
        return v or ""
