"""Progression gates: monster milestones that demand a high-value task when in range.

A user approaching a gate (within GATE_PROXIMITY_POINTS of its min_score) may only
claim tasks worth at least the gate's min_task_value, so the milestone can't be
crossed by grinding small chores.
"""

from collections.abc import Iterable

from src.core.config import constants
from src.domain.monster import LockStatus, Monster
from src.domain.task import Task
from src.domain.user import User
from src.modules.tasks.points import points_for


MONSTERS: tuple[Monster, ...] = (
    Monster(
        level=1,
        name="Dust Bunny Rex",
        min_score=50,
        min_task_value=30,
        image="https://picsum.photos/seed/monster1/200/200",
        description="A giant dust bunny blocks the road! Only a proper clean-up gets you past.",
    ),
    Monster(
        level=2,
        name="Dish Mountain",
        min_score=100,
        min_task_value=40,
        image="https://picsum.photos/seed/monster2/200/200",
        description="A mountain of dirty dishes is about to collapse. Only a hero can wash it away!",
    ),
    Monster(
        level=3,
        name="Chaos Troll",
        min_score=150,
        min_task_value=50,
        image="https://picsum.photos/seed/monster3/200/200",
        description="He makes a mess faster than you can tidy. Prove your speed!",
    ),
)


def next_gate(score: int, monsters: Iterable[Monster] = MONSTERS) -> Monster | None:
    """Return the lowest gate strictly above `score`, or None once every gate is passed."""
    ahead = [monster for monster in monsters if monster.min_score > score]
    return min(ahead, key=lambda monster: monster.min_score) if ahead else None


def lock_status(
    task: Task,
    user: User,
    monsters: Iterable[Monster] = MONSTERS,
    proximity: int = constants.GATE_PROXIMITY_POINTS,
) -> LockStatus:
    """Decide whether `task` is locked for `user` by their next gate.

    Args:
        task: Task being considered
        user: Prospective claimant (their current score is used)
        monsters: Gate configuration
        proximity: Distance at or below which a gate is in range

    Returns:
        LockStatus; when locked, `reason` names the gate and `required_points` is its min_task_value
    """
    gate = next_gate(user.score, monsters)
    if gate is None:
        return LockStatus(locked=False)

    if gate.min_score - user.score > proximity:
        return LockStatus(locked=False)

    if points_for(task, user.id) >= gate.min_task_value:
        return LockStatus(locked=False)

    return LockStatus(
        locked=True,
        reason=(
            f"You are approaching {gate.name}! To get past, complete a task worth "
            f"at least {gate.min_task_value} points."
        ),
        required_points=gate.min_task_value,
    )


def lock_status_in_roster(task: Task, user_id: str, roster: Iterable[User]) -> LockStatus:
    """Look `user_id` up in the family roster and evaluate the lock; unknown users are never locked."""
    user = next((member for member in roster if member.id == str(user_id)), None)
    if user is None:
        return LockStatus(locked=False)
    return lock_status(task, user)
