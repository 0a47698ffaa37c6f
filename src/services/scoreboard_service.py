"""Family scoreboard: ranking and distance to the next monster gate."""

import logging
from collections.abc import Iterable

from pydantic import Field

from src.core.config import constants
from src.core.logging import span
from src.domain.base import DomainModel
from src.domain.monster import Monster
from src.domain.user import User
from src.modules.tasks.progression import MONSTERS, next_gate
from src.services import user_service
from src.services.authorization import require_family_member


logger = logging.getLogger(__name__)


class ScoreboardEntry(DomainModel):
    """One ranked family member."""

    position: int = Field(..., ge=1, description="1-based rank")
    user: User
    board_score: int = Field(..., description="Score clamped to the end of the board")
    next_gate: Monster | None = Field(default=None, description="Lowest gate still ahead")
    points_to_next_gate: int | None = Field(default=None, description="Distance to that gate")


def rank(users: Iterable[User]) -> list[User]:
    """Order users by score descending, then earliest account, then id."""
    return sorted(users, key=lambda user: (-user.score, user.created_at, user.id.zfill(20)))


def build_scoreboard(users: Iterable[User], monsters: Iterable[Monster] = MONSTERS) -> list[ScoreboardEntry]:
    """Rank users and attach each one's next gate."""
    monsters = tuple(monsters)
    entries = []
    for position, user in enumerate(rank(users), start=1):
        gate = next_gate(user.score, monsters)
        entries.append(
            ScoreboardEntry(
                position=position,
                user=user,
                board_score=min(user.score, constants.MAX_GAME_SCORE),
                next_gate=gate,
                points_to_next_gate=gate.min_score - user.score if gate else None,
            )
        )
    return entries


async def get_family_scoreboard(*, actor: User) -> list[ScoreboardEntry]:
    """Ranked scoreboard of the actor's family, recomputed from current scores."""
    with span("scoreboard_service.get_family_scoreboard"):
        family_id = require_family_member(actor)
        members = await user_service.list_family_members(family_id=family_id)
        logger.debug("Built scoreboard", extra={"family_id": family_id, "members": len(members)})
        return build_scoreboard(members)
