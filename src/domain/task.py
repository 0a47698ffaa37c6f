"""Task domain models and enums."""

import json
from enum import StrEnum
from typing import Any

from pydantic import Field, field_validator

from src.domain.base import DomainModel


class TaskStatus(StrEnum):
    """Task lifecycle state.

    COMPLETED is kept for wire compatibility; completion goes straight to VERIFIED.
    """

    OPEN = "OPEN"
    ASSIGNED = "ASSIGNED"
    COMPLETED = "COMPLETED"
    VERIFIED = "VERIFIED"


def _decode_json_mapping(v: Any) -> Any:
    if v is None or v == "":
        return {}
    if isinstance(v, str):
        return json.loads(v)
    return v


class Task(DomainModel):
    """Task data transfer object."""

    id: str = Field(..., description="Unique task ID")
    family_id: str = Field(..., description="Owning family ID")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    base_points: int = Field(..., ge=1, description="Points awarded unless overridden for a user")
    user_points_override: dict[str, int] = Field(
        default_factory=dict,
        description="Per-user points replacing base_points for that user only",
    )
    status: TaskStatus = Field(default=TaskStatus.OPEN, description="Current lifecycle state")
    assignee_id: str | None = Field(default=None, description="User who claimed the task")
    created_by: str = Field(..., description="Admin who created the task")
    created_at: int = Field(..., description="Creation time (epoch ms)")
    booking_deadline: int = Field(default=0, description="Epoch ms after which an OPEN task can't be booked (0 = none)")
    completion_deadline: int = Field(default=0, description="Epoch ms after which an ASSIGNED task is overdue (0 = none)")
    is_boss_task: bool = Field(default=False, description="Informational boss-task flag")
    reference_image: str | None = Field(default=None, description="Reference image payload")
    completion_image: str | None = Field(default=None, description="Completion image payload")
    image_match_score: int | None = Field(default=None, description="Similarity score (0-100) supplied by the client")

    @field_validator("user_points_override", mode="before")
    @classmethod
    def decode_override(cls, v: Any) -> Any:
        """Accept the JSON text stored in SQLite."""
        return _decode_json_mapping(v)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        """Treat NULL descriptions as empty."""
        return v or ""
