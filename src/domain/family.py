"""Family domain models."""

from pydantic import Field

from src.domain.base import DomainModel
from src.domain.user import User


class Family(DomainModel):
    """Family data transfer object."""

    id: str = Field(..., description="Unique family ID")
    name: str = Field(..., description="Family display name")
    invite_code: str = Field(..., description="Six character invite code (stored upper-case)")
    created_at: int = Field(default=0, description="Creation time (epoch ms)")


class FamilyRoster(DomainModel):
    """A family together with its current members."""

    family: Family
    members: list[User] = Field(default_factory=list)

    @property
    def member_ids(self) -> set[str]:
        """IDs of all members."""
        return {member.id for member in self.members}
