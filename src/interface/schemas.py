"""Request and response bodies for the REST API (camelCase on the wire)."""

from typing import Any

from pydantic import Field

from src.domain.base import DomainModel
from src.domain.family import Family
from src.domain.monster import LockStatus, Monster
from src.domain.proposal import TaskProposal
from src.domain.side_quest import SideQuestProposal, SideQuestView
from src.domain.task import Task
from src.domain.user import User, UserRole
from src.services.scoreboard_service import ScoreboardEntry


class CredentialsRequest(DomainModel):
    """Register or log in."""

    name: str
    password: str


class AuthResponse(DomainModel):
    """Issued bearer token and the authenticated user."""

    token: str
    user: User


class CreateFamilyRequest(DomainModel):
    """Create a family."""

    name: str


class JoinFamilyRequest(DomainModel):
    """Join a family by invite code."""

    code: str


class FamilyResponse(DomainModel):
    """A family, its members and (after create/join) the updated caller."""

    family: Family
    members: list[User] = Field(default_factory=list)
    user: User | None = None


class UpdateRoleRequest(DomainModel):
    """Change a member's role."""

    role: UserRole


class CreateTaskRequest(DomainModel):
    """Create a task."""

    title: str
    base_points: int
    description: str = ""
    user_points_override: dict[str, int] = Field(default_factory=dict)
    booking_deadline: int = 0
    completion_deadline: int = 0
    is_boss_task: bool = False
    reference_image: str | None = None


class EditTaskRequest(DomainModel):
    """Partial task update; only the fields sent are applied."""

    title: str | None = None
    description: str | None = None
    base_points: int | None = None
    user_points_override: dict[str, int] | None = None
    booking_deadline: int | None = None
    completion_deadline: int | None = None
    is_boss_task: bool | None = None
    reference_image: str | None = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly present in the request, keyed by attribute name."""
        return self.model_dump(exclude_unset=True)


class CompleteTaskRequest(DomainModel):
    """Completion payload; the image and its match score are opaque."""

    completion_image: str | None = None
    image_match_score: int | None = Field(default=None, ge=0, le=100)


class DescribeTaskRequest(DomainModel):
    """Ask for a generated quest description."""

    title: str


class DescriptionResponse(DomainModel):
    """Generated description text."""

    description: str


class SubmitProposalRequest(DomainModel):
    """Submit a task proposal."""

    title: str
    suggested_points: int
    description: str = ""


class ApproveProposalRequest(DomainModel):
    """Review step choices when approving a proposal."""

    final_points: int | None = None
    user_points_override: dict[str, int] = Field(default_factory=dict)
    booking_deadline: int | None = None
    completion_deadline: int | None = None
    is_boss_task: bool = False


class CreateSideQuestsRequest(DomainModel):
    """Create side quests for one or more members."""

    assigned_to: list[str]
    title: str
    duration_hours: float
    description: str = ""


class RespondSideQuestRequest(DomainModel):
    """Accept or decline a side quest."""

    accepted: bool


class SubmitSideQuestProposalRequest(DomainModel):
    """Suggest a side quest."""

    title: str
    description: str = ""
    suggested_for: str | None = None


class ApproveSideQuestProposalRequest(DomainModel):
    """Targets and duration for an approved side quest proposal."""

    duration_hours: float
    assigned_to: list[str] = Field(default_factory=list)


class TaskWithLock(Task):
    """A task plus its lock status for the caller and its deadline flags."""

    lock: LockStatus
    booking_expired: bool = False
    overdue: bool = False


class StateSnapshot(DomainModel):
    """Everything the client renders, fetched in one poll."""

    user: User
    family: Family | None = None
    scoreboard: list[ScoreboardEntry] = Field(default_factory=list)
    tasks: list[TaskWithLock] = Field(default_factory=list)
    proposals: list[TaskProposal] = Field(default_factory=list)
    side_quests: list[SideQuestView] = Field(default_factory=list)
    side_quest_proposals: list[SideQuestProposal] = Field(default_factory=list)
    pending_side_quest: SideQuestView | None = None
    monsters: list[Monster] = Field(default_factory=list)
    server_time: int
