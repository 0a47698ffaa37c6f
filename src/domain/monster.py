"""Monster gate configuration model."""

from pydantic import Field

from src.domain.base import DomainModel


class Monster(DomainModel):
    """A milestone on the game board guarding a score threshold."""

    level: int = Field(..., description="Gate number, ascending along the board")
    name: str = Field(..., description="Display name")
    min_score: int = Field(..., description="Score at which the gate sits")
    min_task_value: int = Field(..., description="Minimum task value needed to pass the gate when in range")
    image: str = Field(default="", description="Artwork URL")
    description: str = Field(default="", description="Flavour text")


class LockStatus(DomainModel):
    """Whether a task can be claimed by a user given their next gate."""

    locked: bool
    reason: str | None = None
    required_points: int | None = None
