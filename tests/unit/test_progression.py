"""Unit tests for monster gates and task locking."""

import pytest

from src.domain.monster import Monster
from src.domain.task import Task
from src.domain.user import User
from src.modules.tasks.progression import MONSTERS, lock_status, lock_status_in_roster, next_gate


GATE_AT_100 = (Monster(level=2, name="Dish Mountain", min_score=100, min_task_value=40),)


def _task(base_points: int, overrides: dict[str, int] | None = None) -> Task:
    return Task(
        id="1",
        family_id="1",
        title="Clean the garage",
        base_points=base_points,
        user_points_override=overrides or {},
        created_by="1",
        created_at=0,
    )


def _user(score: int, user_id: str = "5") -> User:
    return User(id=user_id, name="Bob", score=score)


@pytest.mark.unit
class TestNextGate:
    """Tests for next_gate."""

    def test_lowest_gate_above_score(self):
        """The next gate is the closest one strictly above the score."""
        assert next_gate(0).name == "Dust Bunny Rex"
        assert next_gate(50).name == "Dish Mountain"
        assert next_gate(120).name == "Chaos Troll"

    def test_no_gate_after_last(self):
        """Past every gate there is nothing ahead."""
        assert next_gate(150) is None
        assert next_gate(999) is None

    def test_monsters_ordered_by_min_score(self):
        """Default configuration is ascending."""
        scores = [monster.min_score for monster in MONSTERS]
        assert scores == sorted(scores)


@pytest.mark.unit
class TestLockStatus:
    """Tests for lock_status."""

    def test_locked_when_in_range_and_task_too_small(self):
        """Score 92 near a 100/40 gate cannot claim a 30 point task."""
        result = lock_status(_task(30), _user(92), GATE_AT_100)

        assert result.locked is True
        assert result.required_points == 40
        assert "Dish Mountain" in result.reason
        assert "40" in result.reason

    def test_unlocked_when_task_big_enough(self):
        """A 45 point task breaks through."""
        assert lock_status(_task(45), _user(92), GATE_AT_100).locked is False

    def test_exact_min_task_value_unlocks(self):
        """Equal to min_task_value is enough."""
        assert lock_status(_task(40), _user(92), GATE_AT_100).locked is False

    @pytest.mark.parametrize("points", [1, 30, 45, 100])
    def test_out_of_range_never_locked(self, points):
        """Score 80 is 20 away from the gate, so nothing is locked."""
        assert lock_status(_task(points), _user(80), GATE_AT_100).locked is False

    def test_distance_of_exactly_ten_is_in_range(self):
        """The proximity bound is inclusive."""
        assert lock_status(_task(5), _user(90), GATE_AT_100).locked is True
        assert lock_status(_task(5), _user(89), GATE_AT_100).locked is False

    def test_override_counts_for_its_user(self):
        """Lock evaluation uses the user's own points."""
        task = _task(10, {"5": 45})

        assert lock_status(task, _user(92, "5"), GATE_AT_100).locked is False
        assert lock_status(task, _user(92, "6"), GATE_AT_100).locked is True

    def test_no_gate_ahead_is_unlocked(self):
        """Beyond the last gate nothing is locked."""
        assert lock_status(_task(1), _user(160)).locked is False


@pytest.mark.unit
class TestLockStatusInRoster:
    """Tests for lock_status_in_roster."""

    def test_looks_up_user_in_roster(self):
        """The roster entry's score decides."""
        roster = [_user(45, "1"), _user(10, "2")]

        assert lock_status_in_roster(_task(5), "1", roster).locked is True
        assert lock_status_in_roster(_task(5), "2", roster).locked is False

    def test_unknown_user_is_unlocked(self):
        """Users outside the roster are never locked."""
        assert lock_status_in_roster(_task(5), "99", [_user(45, "1")]).locked is False
