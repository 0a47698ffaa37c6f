"""Points policy: what a task is worth to a user and what level a score implies."""

from src.core.config import constants
from src.domain.task import Task


def points_for(task: Task, user_id: str) -> int:
    """Points `user_id` would earn for `task`: their override if set, else the base points."""
    override = task.user_points_override.get(str(user_id))
    return task.base_points if override is None else override


def level_for(score: int, thresholds: tuple[int, ...] = constants.LEVEL_THRESHOLDS) -> int:
    """Return the 1-based level for a cumulative score.

    The level is the number of thresholds the score has reached. Scores beyond the
    last threshold stay on the final level; negative scores count as zero.
    """
    score = max(score, 0)
    return max(1, sum(1 for threshold in thresholds if score >= threshold))
