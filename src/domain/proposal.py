"""Task proposal domain model."""

from typing import Any

from pydantic import Field, field_validator

from src.domain.base import DomainModel


class TaskProposal(DomainModel):
    """A member-submitted task idea awaiting admin review."""

    id: str = Field(..., description="Unique proposal ID")
    family_id: str = Field(..., description="Owning family ID")
    title: str = Field(..., description="Proposed task title")
    description: str = Field(default="", description="Proposed task description")
    suggested_points: int = Field(..., description="Points suggested by the proposer")
    proposed_by: str = Field(..., description="Member who submitted the proposal")
    created_at: int = Field(..., description="Submission time (epoch ms)")

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        """Treat NULL descriptions as empty."""
        return v or ""
