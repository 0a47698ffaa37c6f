"""Tests for ranking and the family scoreboard."""

import pytest

from src.domain.user import User
from src.services import scoreboard_service, user_service


def _user(user_id: str, score: int, created_at: int) -> User:
    return User(id=user_id, name=f"User {user_id}", score=score, created_at=created_at)


@pytest.mark.unit
class TestRank:
    """Tests for rank."""

    def test_score_descending(self):
        """Highest score first."""
        ranked = scoreboard_service.rank([_user("1", 10, 1), _user("2", 30, 2), _user("3", 20, 3)])

        assert [u.id for u in ranked] == ["2", "3", "1"]

    def test_ties_broken_by_account_age_then_id(self):
        """Earlier accounts win ties; ids settle identical timestamps."""
        ranked = scoreboard_service.rank([_user("10", 5, 2), _user("9", 5, 2), _user("3", 5, 1)])

        assert [u.id for u in ranked] == ["3", "9", "10"]

    def test_score_above_board_still_ranks(self):
        """Ranking uses the uncapped score."""
        ranked = scoreboard_service.rank([_user("1", 200, 1), _user("2", 350, 2)])

        assert ranked[0].id == "2"


@pytest.mark.unit
class TestBuildScoreboard:
    """Tests for build_scoreboard."""

    def test_entries_have_position_and_gate(self):
        """Each entry names the next gate and the distance to it."""
        entries = scoreboard_service.build_scoreboard([_user("1", 92, 1), _user("2", 260, 2)])

        top, second = entries
        assert (top.position, top.user.id, top.board_score) == (1, "2", 200)
        assert top.next_gate is None
        assert top.points_to_next_gate is None
        assert (second.position, second.next_gate.name, second.points_to_next_gate) == (2, "Dish Mountain", 8)


@pytest.mark.unit
class TestGetFamilyScoreboard:
    """Tests for get_family_scoreboard."""

    async def test_ranks_current_scores(self, family):
        """The scoreboard is recomputed from stored scores."""
        await user_service.credit_points(user_id=family["carol"].id, points=40)
        await user_service.credit_points(user_id=family["bob"].id, points=10)

        entries = await scoreboard_service.get_family_scoreboard(actor=family["bob"])

        assert [e.user.name for e in entries] == ["Carol", "Bob", "Alice"]
        assert [e.position for e in entries] == [1, 2, 3]
